"""MediCore clinic package exposing the Flask application factory."""

from __future__ import annotations

import os
from pathlib import Path

from flask import Flask, jsonify

from .blueprints import register_blueprints
from .cli import register_cli
from .extensions import init_store

APP_HOST = "127.0.0.1"
APP_PORT = 8080


def _data_root(base_dir: Path, override: Path | None = None) -> Path:
    root = override if override else base_dir / "data"
    root.mkdir(parents=True, exist_ok=True)
    for sub in ("backups", "logs"):
        (root / sub).mkdir(parents=True, exist_ok=True)
    return root


def _int_env(name: str) -> int | None:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else None


def create_app() -> Flask:
    repo_root = Path(__file__).resolve().parent.parent
    override = os.getenv("MEDICORE_DATA_ROOT")
    data_root = _data_root(repo_root, Path(override) if override else None)

    app = Flask(__name__)

    secret_key = os.getenv("MEDICORE_SECRET_KEY")
    if not secret_key:
        secret_key = os.urandom(32)

    queue_scope = os.getenv("MEDICORE_QUEUE_SCOPE", "doctor").lower()
    if queue_scope not in {"doctor", "clinic"}:
        queue_scope = "doctor"

    app.config.update(
        SECRET_KEY=secret_key,
        DATA_ROOT=str(data_root),
        BACKUP_DIR=str(data_root / "backups"),
        SNAPSHOT_QUOTA_BYTES=_int_env("MEDICORE_SNAPSHOT_QUOTA_BYTES"),
        QUEUE_SCOPE=queue_scope,
        AUTO_REMINDERS_ON_TICK=os.getenv("MEDICORE_AUTO_REMINDERS", "1") == "1",
    )

    init_store(app)
    register_blueprints(app)
    register_cli(app)

    @app.errorhandler(400)
    def handle_bad_request(e):
        return jsonify({"success": False, "errors": [str(e.description)]}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"success": False, "errors": ["Not found"]}), 404

    return app


__all__ = ["create_app", "APP_HOST", "APP_PORT"]
