"""Patient lookups and append-only medical history."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date

from medicore.models import MedicalRecord, Patient
from medicore.services.errors import RecordNotFound
from medicore.services.store import RecordStore


def get_patient(store: RecordStore, patient_id: str) -> Patient:
    patient = store.get("patients", patient_id)
    if patient is None:
        raise RecordNotFound(f"patient:{patient_id}")
    return patient


def add_medical_record(
    store: RecordStore,
    patient_id: str,
    *,
    condition: str,
    treatment: str,
    allergies: str | None = None,
    medications: str | None = None,
    day: str | None = None,
) -> MedicalRecord:
    condition = (condition or "").strip()
    if not condition:
        raise ValueError("condition_required")
    with store.locked():
        patient = get_patient(store, patient_id)
        entry = MedicalRecord(
            id=str(uuid.uuid4()),
            date=day or date.today().isoformat(),
            condition=condition,
            treatment=(treatment or "").strip(),
            allergies=allergies or None,
            medications=medications or None,
        )
        store.upsert("patients", patient_id, replace(patient, history=[*patient.history, entry]))
    return entry
