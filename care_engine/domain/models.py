"""
Domain models for medication adherence and appointment tracking.

These models represent the stored entities and the values derived from them.
They are framework-agnostic and use Pydantic for validation. All dates and
times are naive local calendar values; time-of-day is always the zero-padded
24-hour "HH:MM" text the store exchanges, so string order is clock order.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

TimeOfDay = Annotated[str, Field(pattern=TIME_OF_DAY_PATTERN, description="HH:MM, 24-hour")]


class MedicationStatus(str, Enum):
    """Lifecycle status derived from a medication's fields and today's date."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"


class SlotStatus(str, Enum):
    """Urgency of a schedule slot relative to the current time."""

    TAKEN = "taken"
    UPCOMING = "upcoming"
    CURRENT = "current"
    OVERDUE = "overdue"


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    TEST = "test"
    FOLLOWUP = "followup"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"  # legacy, only reachable by external writes


class RecurrencePattern(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Medication(BaseModel):
    """A prescribed medication with its daily dosing times."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    dosage: str = ""
    frequency: str = Field(default="", description="Display label, never parsed")
    time_of_day: list[TimeOfDay] = Field(default_factory=list)
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    instructions: str | None = None
    doctor_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("end_date", mode="before")
    @classmethod
    def empty_end_date(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def end_not_before_start(self) -> "Medication":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MedicationIntake(BaseModel):
    """One completed dose event for a (medication, time-of-day) slot."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    medication_id: str
    scheduled_time: TimeOfDay
    taken_at: datetime
    notes: str | None = None


class Appointment(BaseModel):
    """A scheduled consultation, lab test or follow-up visit."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    appointment_type: AppointmentType
    appointment_date: date
    appointment_time: TimeOfDay
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    # Recurrence fields are only ever written together
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_end_date: date | None = None

    parent_appointment_id: str | None = None
    previous_appointment_id: str | None = None

    location_name: str | None = None
    location_address: str | None = None
    location_phone: str | None = None
    doctor_name: str | None = None
    doctor_specialization: str | None = None
    lab_name: str | None = None
    test_name: str | None = None
    referring_doctor: str | None = None
    notes: str | None = None

    # Owned by the external notifier
    reminder_24h_sent: bool = False
    reminder_1h_sent: bool = False

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("recurrence_pattern", "recurrence_end_date", mode="before")
    @classmethod
    def empty_recurrence(cls, v: Any) -> Any:
        return _blank_to_none(v)


class AppointmentDocumentLink(BaseModel):
    """Association between a follow-up appointment and a stored document."""

    model_config = ConfigDict(frozen=True)

    appointment_id: str
    document_id: str


class ScheduleSlot(BaseModel):
    """One (medication, time-of-day) pair for today. Derived, never stored."""

    model_config = ConfigDict(frozen=True)

    medication_id: str
    medication_name: str
    dosage: str
    scheduled_time: TimeOfDay
    taken: bool
    taken_at: datetime | None = None
    instructions: str | None = None


class TimedSlot(BaseModel):
    """A schedule slot paired with its urgency at a given instant."""

    model_config = ConfigDict(frozen=True)

    slot: ScheduleSlot
    status: SlotStatus


class RecurrenceSettings(BaseModel):
    """Normalized recurrence fields ready to be persisted together."""

    model_config = ConfigDict(frozen=True)

    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_end_date: date | None = None


class MedicationDraft(BaseModel):
    """Medication fields as submitted by the user, before validation."""

    name: str
    dosage: str = ""
    frequency: str = ""
    time_of_day: list[str] = Field(default_factory=list)
    start_date: date
    end_date: date | None = None
    instructions: str | None = None
    doctor_name: str | None = None

    @field_validator("end_date", mode="before")
    @classmethod
    def empty_end_date(cls, v: Any) -> Any:
        return _blank_to_none(v)


class AppointmentDraft(BaseModel):
    """Appointment fields as submitted by the user, before validation."""

    title: str
    appointment_type: AppointmentType
    appointment_date: date
    appointment_time: TimeOfDay

    is_recurring: bool = False
    recurrence_pattern: str | None = None
    recurrence_end_date: date | None = None
    custom_recurrence_date: date | None = None

    location_name: str | None = None
    location_address: str | None = None
    location_phone: str | None = None
    doctor_name: str | None = None
    doctor_specialization: str | None = None
    lab_name: str | None = None
    test_name: str | None = None
    referring_doctor: str | None = None
    previous_appointment_id: str | None = None
    notes: str | None = None

    linked_documents: list[str] | None = Field(
        default=None, description="Full replacement set; None leaves links untouched"
    )

    @field_validator("recurrence_end_date", "custom_recurrence_date", mode="before")
    @classmethod
    def empty_dates(cls, v: Any) -> Any:
        return _blank_to_none(v)


class MedicationStats(BaseModel):
    """Medication counts for dashboard summaries."""

    total: int = 0
    active: int = 0
    completed: int = 0
    todays_taken: int = 0
    todays_total: int = 0


class AppointmentStats(BaseModel):
    """Appointment counts for dashboard summaries."""

    total: int = 0
    upcoming: int = 0
    completed: int = 0
    cancelled: int = 0
    past: int = 0


class DashboardSummary(BaseModel):
    """Everything the dashboard shows about today's care plan."""

    today: date
    pending: list[TimedSlot]
    pending_total: int = Field(ge=0)
    overdue_count: int = Field(ge=0)
    upcoming_appointments: list[Appointment]
    medication_stats: MedicationStats
    appointment_stats: AppointmentStats
    generated_at: datetime
