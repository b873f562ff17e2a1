"""Appointment JSON API: slots, booking, status and payment changes."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest, HTTPException

from medicore.blueprints.responses import HANDLED_ERRORS, error_response
from medicore.extensions import get_store
from medicore.services.appointments import (
    book_appointment,
    change_status,
    get_appointment,
    list_appointments,
    record_payment,
    update_appointment,
)
from medicore.services.errors import record_exception
from medicore.services.lifecycle import valid_transitions
from medicore.services.payments import parse_money
from medicore.services.scheduling import check_availability

bp = Blueprint("appointments", __name__, url_prefix="/appointments")


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    if not isinstance(payload, dict):
        raise BadRequest("Expected a JSON object")
    return payload


def _text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequest(f"Field {key} must be a string")
    return value


def _money_field(payload: dict, key: str):
    if key not in payload or payload[key] in (None, ""):
        return None
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise BadRequest(f"Field {key} must be a number")
    return parse_money(value)


def _serialize(appt) -> dict:
    data = appt.to_dict()
    data["allowed_transitions"] = [status.value for status in valid_transitions(appt.status)]
    return data


@bp.route("/slots", methods=["GET"])
def slots():
    doctor_id = (request.args.get("doctor_id") or "").strip()
    day = request.args.get("day") or date.today().isoformat()
    if not doctor_id:
        raise BadRequest("Missing required field: doctor_id")
    try:
        result = check_availability(
            get_store(),
            doctor_id,
            day,
            emergency=_flag(request.args.get("emergency")),
            exclude_id=request.args.get("exclude_id") or None,
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "day": day, "slots": result.slots, "reason": result.reason})


@bp.route("", methods=["GET"])
def index():
    try:
        rows = list_appointments(
            get_store(),
            day=request.args.get("day") or None,
            doctor_id=request.args.get("doctor_id") or None,
            status=request.args.get("status") or None,
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "appointments": [_serialize(appt) for appt in rows]})


@bp.route("", methods=["POST"])
def create():
    payload = _payload()
    missing = [key for key in ("doctor_id", "patient_id", "day", "time") if not _text(payload, key)]
    if missing:
        raise BadRequest("Missing required fields: " + ", ".join(missing))
    try:
        amount_paid = _money_field(payload, "amount_paid") or 0
        appt = book_appointment(
            get_store(),
            doctor_id=payload["doctor_id"],
            patient_id=payload["patient_id"],
            day=payload["day"],
            time=payload["time"],
            appointment_type=_text(payload, "type") or "Consultation",
            total_fee=_money_field(payload, "total_fee"),
            amount_paid=amount_paid,
            payment_note=_text(payload, "payment_note"),
            notes=_text(payload, "notes"),
            emergency=_flag(payload.get("emergency")),
            queue_scope=current_app.config["QUEUE_SCOPE"],
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    except HTTPException:
        raise
    except Exception as exc:
        record_exception("appointment.create", exc)
        return jsonify({"success": False, "error": "Internal server error"}), 500
    return jsonify({"success": True, "appointment": _serialize(appt)}), 201


@bp.route("/<appt_id>", methods=["GET"])
def show(appt_id: str):
    try:
        appt = get_appointment(get_store(), appt_id)
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "appointment": _serialize(appt)})


@bp.route("/<appt_id>", methods=["PATCH"])
def edit(appt_id: str):
    payload = _payload()
    try:
        appt = update_appointment(
            get_store(),
            appt_id,
            doctor_id=_text(payload, "doctor_id") or None,
            patient_id=_text(payload, "patient_id") or None,
            day=_text(payload, "day") or None,
            time=_text(payload, "time") or None,
            appointment_type=_text(payload, "type") or None,
            notes=_text(payload, "notes"),
            total_fee=_money_field(payload, "total_fee"),
            amount_paid=_money_field(payload, "amount_paid"),
            payment_note=_text(payload, "payment_note"),
            queue_scope=current_app.config["QUEUE_SCOPE"],
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "appointment": _serialize(appt)})


@bp.route("/<appt_id>/status", methods=["POST"])
def set_status(appt_id: str):
    status = (_text(_payload(), "status") or "").strip()
    if not status:
        raise BadRequest("Missing required field: status")
    try:
        appt = change_status(get_store(), appt_id, status)
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "appointment": _serialize(appt)})


@bp.route("/<appt_id>/payment", methods=["POST"])
def set_payment(appt_id: str):
    payload = _payload()
    try:
        amount_paid = _money_field(payload, "amount_paid")
        if amount_paid is None:
            raise BadRequest("Missing required field: amount_paid")
        appt = record_payment(
            get_store(),
            appt_id,
            amount_paid,
            _text(payload, "payment_note"),
            total_fee=_money_field(payload, "total_fee"),
        )
    except HANDLED_ERRORS as exc:
        return error_response(exc)
    return jsonify({"success": True, "appointment": _serialize(appt)})
