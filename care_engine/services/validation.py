"""
Submission validation for appointments and medications.

Everything here runs before a write is attempted. A failure raises
ValidationError naming the offending field and nothing is persisted.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time

from care_engine.domain.errors import ValidationError
from care_engine.domain.models import (
    TIME_OF_DAY_PATTERN,
    AppointmentDraft,
    AppointmentType,
    MedicationDraft,
    RecurrencePattern,
    RecurrenceSettings,
)
from care_engine.services.clock import TimeContext
from care_engine.services.store import Record

_TIME_OF_DAY = re.compile(TIME_OF_DAY_PATTERN)

_APPOINTMENT_TEXT_FIELDS = (
    "location_name",
    "location_address",
    "location_phone",
    "doctor_name",
    "doctor_specialization",
    "lab_name",
    "test_name",
    "referring_doctor",
    "previous_appointment_id",
    "notes",
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_time_of_day(value: str) -> time:
    """Parse zero-padded "HH:MM" text into a time."""
    if not _TIME_OF_DAY.match(value):
        raise ValidationError(f"Invalid time of day: {value!r} (expected HH:MM)", "time_of_day")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


class RecurrenceValidator:
    """
    Validates and normalizes recurrence configuration before persistence.

    A custom pattern runs until exactly one date, which is stored in the same
    recurrence_end_date field the weekly and monthly patterns use as an
    optional cut-off. Instances are never generated here.
    """

    @staticmethod
    def validate(
        is_recurring: bool,
        pattern: str | None,
        appointment_date: date,
        end_date: date | None = None,
        custom_date: date | None = None,
    ) -> RecurrenceSettings:
        if not is_recurring:
            return RecurrenceSettings()

        raw_pattern = (pattern or "").strip()
        if not raw_pattern:
            raise ValidationError("Please select a recurrence pattern", "recurrence_pattern")
        try:
            recurrence = RecurrencePattern(raw_pattern)
        except ValueError:
            raise ValidationError(
                f"Unknown recurrence pattern: {raw_pattern!r}", "recurrence_pattern"
            ) from None

        if recurrence is RecurrencePattern.CUSTOM:
            if custom_date is None:
                raise ValidationError(
                    "Please select a custom recurrence date", "custom_recurrence_date"
                )
            if custom_date <= appointment_date:
                raise ValidationError(
                    "Custom recurrence date must be after appointment date",
                    "custom_recurrence_date",
                )
            return RecurrenceSettings(
                is_recurring=True,
                recurrence_pattern=recurrence,
                recurrence_end_date=custom_date,
            )

        if end_date is not None and end_date <= appointment_date:
            raise ValidationError(
                "Recurrence end date must be after appointment date", "recurrence_end_date"
            )
        return RecurrenceSettings(
            is_recurring=True,
            recurrence_pattern=recurrence,
            recurrence_end_date=end_date,
        )


@dataclass(frozen=True)
class ValidatedAppointment:
    """Store-ready appointment fields plus the document set to link, if any."""

    fields: Record
    linked_documents: list[str] | None


class AppointmentSubmissionValidator:
    """Required-field, not-in-the-past and recurrence checks for appointment forms."""

    def __init__(self, clock: TimeContext) -> None:
        self.clock = clock

    def validate(self, draft: AppointmentDraft) -> ValidatedAppointment:
        title = _clean(draft.title)
        if title is None:
            raise ValidationError("Title is required", "title")

        starts_at = datetime.combine(
            draft.appointment_date, parse_time_of_day(draft.appointment_time)
        )
        if starts_at < self.clock.now():
            raise ValidationError(
                "Appointment date and time cannot be in the past", "appointment_date"
            )

        recurrence = RecurrenceValidator.validate(
            is_recurring=draft.is_recurring,
            pattern=draft.recurrence_pattern,
            appointment_date=draft.appointment_date,
            end_date=draft.recurrence_end_date,
            custom_date=draft.custom_recurrence_date,
        )

        fields: Record = {
            "title": title,
            "appointment_type": draft.appointment_type.value,
            "appointment_date": draft.appointment_date.isoformat(),
            "appointment_time": draft.appointment_time,
            **recurrence.model_dump(mode="json"),
        }
        for name in _APPOINTMENT_TEXT_FIELDS:
            fields[name] = _clean(getattr(draft, name))

        # Documents are only linked to follow-ups
        linked_documents = None
        if (
            draft.appointment_type is AppointmentType.FOLLOWUP
            and draft.linked_documents is not None
        ):
            linked_documents = list(dict.fromkeys(draft.linked_documents))

        return ValidatedAppointment(fields=fields, linked_documents=linked_documents)


class MedicationSubmissionValidator:
    """Required-field and date-window checks for medication forms."""

    @staticmethod
    def validate(draft: MedicationDraft) -> Record:
        name = _clean(draft.name)
        if name is None:
            raise ValidationError("Medication name is required", "name")

        times = [t.strip() for t in draft.time_of_day if t.strip()]
        if not times:
            raise ValidationError("Please specify at least one time of day", "time_of_day")
        for value in times:
            parse_time_of_day(value)

        if draft.end_date is not None and draft.end_date <= draft.start_date:
            raise ValidationError("End date must be after start date", "end_date")

        return {
            "name": name,
            "dosage": draft.dosage.strip(),
            "frequency": draft.frequency,
            "time_of_day": times,
            "start_date": draft.start_date.isoformat(),
            "end_date": draft.end_date.isoformat() if draft.end_date else None,
            "instructions": _clean(draft.instructions),
            "doctor_name": _clean(draft.doctor_name),
            "is_active": True,
        }
