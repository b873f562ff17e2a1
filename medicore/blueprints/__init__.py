"""Blueprint registration."""

from __future__ import annotations

from flask import Flask


def register_blueprints(app: Flask) -> None:
    from .appointments import bp as appointments_bp
    from .core import bp as core_bp

    app.register_blueprint(appointments_bp)
    app.register_blueprint(core_bp)
