"""First-boot seed data so a fresh store is immediately usable."""

from __future__ import annotations

from functools import lru_cache

from werkzeug.security import generate_password_hash

from medicore.models import (
    Doctor,
    EmailTemplates,
    Gender,
    MedicalRecord,
    Patient,
    Role,
    Settings,
    User,
    weekly_schedule,
)
from medicore.services.store import RecordStore

DEFAULT_SPECIALTIES = sorted(
    [
        "Anesthesiology", "Cardiology", "Dermatology", "Emergency Medicine", "Endocrinology",
        "ENT (Otolaryngology)", "Gastroenterology", "General Practice", "General Surgery",
        "Geriatrics", "Hematology", "Infectious Diseases", "Internal Medicine", "Nephrology",
        "Neurology", "Obstetrics & Gynecology", "Oncology", "Ophthalmology", "Orthopedics",
        "Pediatrics", "Physical Medicine & Rehab", "Psychiatry", "Pulmonology", "Radiology",
        "Rheumatology", "Urology",
    ]
)

REMINDER_TEMPLATE = (
    "Dear {patient_name},\n\n"
    "This is a reminder for your appointment with {doctor_name} on {date} at {time}.\n\n"
    "Please arrive 10 minutes early.\n\n"
    "Regards,\n{clinic_name}"
)

FOLLOWUP_TEMPLATE = (
    "Dear {patient_name},\n\n"
    "We hope you are recovering well after your recent visit with {doctor_name}.\n\n"
    "Please let us know if you have any questions.\n\n"
    "Regards,\n{clinic_name}"
)


def default_settings() -> Settings:
    return Settings(
        clinic_name="MediCore Clinic",
        email_templates=EmailTemplates(reminder=REMINDER_TEMPLATE, followup=FOLLOWUP_TEMPLATE),
        primary_color="#0f766e",
        secondary_color="#0d9488",
        enable_auto_reminders=True,
        specialties=list(DEFAULT_SPECIALTIES),
    )


def default_doctors() -> list[Doctor]:
    return [
        Doctor(
            id="d1",
            name="Dr. Sarah Smith",
            specialty="Cardiology",
            email="sarah.smith@medicore.com",
            phone="555-0101",
            consultation_fee=500,
            schedule=weekly_schedule(("Mon", "Tue", "Wed", "Thu"), "09:00", "17:00"),
            bio="Senior Cardiologist with 15 years experience.",
        ),
        Doctor(
            id="d2",
            name="Dr. James Wilson",
            specialty="Pediatrics",
            email="james.wilson@medicore.com",
            phone="555-0102",
            consultation_fee=350,
            schedule=weekly_schedule(("Mon", "Wed", "Fri"), "10:00", "16:00"),
            bio="Specialist in child healthcare and development.",
        ),
        Doctor(
            id="d3",
            name="Dr. Emily Chen",
            specialty="Orthopedics",
            email="emily.chen@medicore.com",
            phone="555-0103",
            consultation_fee=600,
            schedule=weekly_schedule(("Tue", "Thu"), "08:00", "14:00"),
        ),
    ]


def default_patients() -> list[Patient]:
    return [
        Patient(
            id="p1",
            name="John Doe",
            email="john@example.com",
            phone="01012345678",
            age=34,
            gender=Gender.MALE,
            address="123 Cairo St",
            history=[
                MedicalRecord(
                    id="h1",
                    date="2023-10-01",
                    condition="Hypertension",
                    treatment="Prescribed medication",
                    allergies="Penicillin",
                )
            ],
        ),
        Patient(
            id="p2",
            name="Jane Roe",
            email="jane@example.com",
            phone="01123456789",
            age=28,
            gender=Gender.FEMALE,
            address="456 Giza Ave",
        ),
    ]


@lru_cache(maxsize=None)
def _seed_hash(password: str) -> str:
    return generate_password_hash(password)


def default_users() -> list[User]:
    return [
        User(id="u1", name="Super Admin", username="Admin",
             password_hash=_seed_hash("admin123"), role=Role.ADMIN),
        User(id="u2", name="Front Desk", username="Reception",
             password_hash=_seed_hash("user123"), role=Role.RECEPTIONIST),
        User(id="u3", name="Dr. Sarah Smith", username="Doctor",
             password_hash=_seed_hash("doc123"), role=Role.DOCTOR, related_id="d1"),
    ]


def seed_defaults(store: RecordStore) -> None:
    """Insert the seed records. Existing ids are overwritten."""

    items: list[tuple[str, object]] = [("settings", default_settings())]
    items += [("doctors", doctor) for doctor in default_doctors()]
    items += [("patients", patient) for patient in default_patients()]
    items += [("users", user) for user in default_users()]
    store.upsert_many(items)  # type: ignore[arg-type]
