"""Dashboard tick, finance breakdown and backup download/restore."""

from __future__ import annotations

import io
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.exceptions import BadRequest

from medicore.blueprints.responses import HANDLED_ERRORS, error_response
from medicore.extensions import get_store
from medicore.services.backups import backup_filename, restore_backup
from medicore.services.dashboard import dashboard_tick
from medicore.services.errors import record_exception
from medicore.services.finances import finance_summary, period_range

bp = Blueprint("core", __name__)


@bp.route("/dashboard", methods=["GET"])
def dashboard():
    """Polled by the UI; every call is one reminder sweep tick."""
    try:
        summary = dashboard_tick(
            get_store(),
            doctor_id=request.args.get("doctor_id") or None,
            run_reminders=current_app.config["AUTO_REMINDERS_ON_TICK"],
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    except Exception as exc:
        record_exception("dashboard.tick", exc)
        return jsonify({"success": False, "error": "Internal server error"}), 500
    return jsonify({"success": True, "dashboard": summary.to_dict()})


@bp.route("/finances", methods=["GET"])
def finances():
    """``?period=today|7d|30d|all|custom&start=&end=&by=doctor|specialty``"""
    try:
        start, end = period_range(
            request.args.get("period") or "30d",
            start=request.args.get("start") or None,
            end=request.args.get("end") or None,
        )
        summary = finance_summary(get_store(), start, end, by=request.args.get("by") or "doctor")
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "finances": summary.to_dict()})


@bp.route("/backup", methods=["GET"])
def backup_download():
    image = get_store().export_snapshot()
    return send_file(
        io.BytesIO(image),
        mimetype="application/vnd.sqlite3",
        as_attachment=True,
        download_name=backup_filename(),
    )


@bp.route("/backup/restore", methods=["POST"])
def backup_restore():
    upload = request.files.get("backup")
    image = upload.read() if upload else request.get_data()
    if not image:
        raise BadRequest("Missing backup file")
    try:
        counts = restore_backup(get_store(), image, Path(current_app.config["BACKUP_DIR"]))
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    current_app.logger.warning("Clinic data restored from backup; clients must reload")
    return jsonify({"success": True, "tables": counts, "reload_required": True})
