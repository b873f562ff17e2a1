"""Typed records persisted in the clinic record store."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any

SCHEMA_VERSION = 1
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
SETTINGS_ID = "clinic"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Role(str, Enum):
    ADMIN = "Admin"
    RECEPTIONIST = "Receptionist"
    DOCTOR = "Doctor"
    NURSE = "Nurse"
    BILLING = "Billing"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    CHECKED_IN = "Checked In"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class AppointmentType(str, Enum):
    FIRST_VISIT = "First Visit"
    CONSULTATION = "Consultation"
    FOLLOW_UP = "Follow-up"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"


class NotificationType(str, Enum):
    AUTO = "Auto"
    MANUAL = "Manual"


def _dump(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {f.name: _dump(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


class Record:
    """Mixin giving dataclass records a JSON-friendly dict form."""

    id: str

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass
class DaySchedule(Record):
    day: str
    start_time: str = "09:00"
    end_time: str = "17:00"
    is_working: bool = False

    def __post_init__(self) -> None:
        if self.day not in WEEKDAYS:
            raise ValueError(f"unknown_weekday:{self.day}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DaySchedule":
        return cls(
            day=data["day"],
            start_time=data.get("start_time", "09:00"),
            end_time=data.get("end_time", "17:00"),
            is_working=bool(data.get("is_working", False)),
        )


def weekly_schedule(
    working_days: list[str] | tuple[str, ...],
    start_time: str,
    end_time: str,
) -> list[DaySchedule]:
    """Build a full Mon..Sun schedule, working only on ``working_days``."""

    return [
        DaySchedule(day=day, start_time=start_time, end_time=end_time, is_working=day in working_days)
        for day in WEEKDAYS
    ]


@dataclass
class Doctor(Record):
    id: str
    name: str
    specialty: str
    consultation_fee: float = 0
    email: str = ""
    phone: str = ""
    schedule: list[DaySchedule] = field(default_factory=list)
    bio: str | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for entry in self.schedule:
            if entry.day in seen:
                raise ValueError(f"duplicate_schedule_day:{entry.day}")
            seen.add(entry.day)

    def schedule_for(self, day_label: str) -> DaySchedule | None:
        return next((entry for entry in self.schedule if entry.day == day_label), None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Doctor":
        return cls(
            id=data["id"],
            name=data["name"],
            specialty=data.get("specialty", ""),
            consultation_fee=data.get("consultation_fee", 0),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            schedule=[DaySchedule.from_dict(item) for item in data.get("schedule", [])],
            bio=data.get("bio"),
        )


@dataclass
class MedicalRecord(Record):
    id: str
    date: str
    condition: str
    treatment: str
    allergies: str | None = None
    medications: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MedicalRecord":
        return cls(
            id=data["id"],
            date=data["date"],
            condition=data.get("condition", ""),
            treatment=data.get("treatment", ""),
            allergies=data.get("allergies"),
            medications=data.get("medications"),
        )


@dataclass
class Patient(Record):
    id: str
    name: str
    email: str = ""
    phone: str = ""
    age: int | None = None
    gender: Gender = Gender.OTHER
    address: str = ""
    date_of_birth: str | None = None
    history: list[MedicalRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Patient":
        return cls(
            id=data["id"],
            name=data["name"],
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            age=data.get("age"),
            gender=Gender(data.get("gender", Gender.OTHER.value)),
            address=data.get("address", ""),
            date_of_birth=data.get("date_of_birth"),
            history=[MedicalRecord.from_dict(item) for item in data.get("history", [])],
        )


@dataclass
class Appointment(Record):
    id: str
    doctor_id: str
    patient_id: str
    date: str
    time: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    type: AppointmentType = AppointmentType.CONSULTATION
    total_fee: float = 0
    amount_paid: float = 0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: str | None = None
    queue_number: int | None = None
    payment_note: str | None = None
    reminder_sent: bool = False
    emergency: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Appointment":
        return cls(
            id=data["id"],
            doctor_id=data["doctor_id"],
            patient_id=data["patient_id"],
            date=data["date"],
            time=data["time"],
            status=AppointmentStatus(data.get("status", AppointmentStatus.SCHEDULED.value)),
            type=AppointmentType(data.get("type", AppointmentType.CONSULTATION.value)),
            total_fee=data.get("total_fee", 0),
            amount_paid=data.get("amount_paid", 0),
            payment_status=PaymentStatus(data.get("payment_status", PaymentStatus.PENDING.value)),
            notes=data.get("notes"),
            queue_number=data.get("queue_number"),
            payment_note=data.get("payment_note"),
            reminder_sent=bool(data.get("reminder_sent", False)),
            emergency=bool(data.get("emergency", False)),
        )


@dataclass
class User(Record):
    id: str
    name: str
    username: str
    password_hash: str
    role: Role = Role.RECEPTIONIST
    related_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            name=data["name"],
            username=data["username"],
            password_hash=data["password_hash"],
            role=Role(data.get("role", Role.RECEPTIONIST.value)),
            related_id=data.get("related_id"),
        )


@dataclass
class EmailTemplates:
    reminder: str
    followup: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailTemplates":
        return cls(reminder=data["reminder"], followup=data["followup"])


@dataclass
class Settings(Record):
    clinic_name: str
    email_templates: EmailTemplates
    primary_color: str = "#0f766e"
    secondary_color: str = "#0d9488"
    enable_auto_reminders: bool = True
    specialties: list[str] = field(default_factory=list)
    logo: str | None = None
    id: str = SETTINGS_ID

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        return cls(
            id=data.get("id", SETTINGS_ID),
            clinic_name=data["clinic_name"],
            email_templates=EmailTemplates.from_dict(data["email_templates"]),
            primary_color=data.get("primary_color", "#0f766e"),
            secondary_color=data.get("secondary_color", "#0d9488"),
            enable_auto_reminders=bool(data.get("enable_auto_reminders", True)),
            specialties=list(data.get("specialties", [])),
            logo=data.get("logo"),
        )


@dataclass
class NotificationLog(Record):
    id: str
    date: str
    recipient_email: str
    subject: str
    message: str
    type: NotificationType = NotificationType.MANUAL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationLog":
        return cls(
            id=data["id"],
            date=data["date"],
            recipient_email=data["recipient_email"],
            subject=data["subject"],
            message=data["message"],
            type=NotificationType(data.get("type", NotificationType.MANUAL.value)),
        )


# Table name -> record type. Every table has the same (id, data) row shape.
TABLE_MODELS: dict[str, type] = {
    "doctors": Doctor,
    "patients": Patient,
    "appointments": Appointment,
    "users": User,
    "settings": Settings,
    "notifications": NotificationLog,
}
