"""
Today's medication schedule.

Key rules:
- One slot per (active medication, time-of-day) pair
- A slot is taken when a same-day intake matches its medication id and exact
  "HH:MM" text
- Pending slots are listed before taken ones, each group in clock order
- Pending slots are classified against a fixed +/-30 minute due window
"""

from collections.abc import Iterable
from datetime import date, datetime

import structlog

from care_engine.domain.models import (
    Medication,
    MedicationIntake,
    ScheduleSlot,
    SlotStatus,
    TimedSlot,
)
from care_engine.services.clock import TimeContext, day_bounds
from care_engine.services.medication_status import MedicationStatusResolver
from care_engine.services.medications import MedicationService
from care_engine.services.store import (
    EntityStore,
    EntityType,
    Result,
    StoreFilter,
    parse_records,
    read_records,
)
from care_engine.services.validation import parse_time_of_day

logger = structlog.get_logger(__name__)

DUE_WINDOW_MINUTES = 30


def build_schedule(
    medications: Iterable[Medication],
    intakes: Iterable[MedicationIntake],
    today: date,
) -> list[ScheduleSlot]:
    """Pure: the same medications, intakes and date always give the same slots."""
    taken: dict[tuple[str, str], MedicationIntake] = {}
    for intake in intakes:
        if intake.taken_at.date() != today:
            continue
        taken.setdefault((intake.medication_id, intake.scheduled_time), intake)

    slots: list[ScheduleSlot] = []
    for medication in medications:
        if not MedicationStatusResolver.is_active_on(medication, today):
            continue
        for scheduled_time in medication.time_of_day:
            intake = taken.get((medication.id, scheduled_time))
            slots.append(
                ScheduleSlot(
                    medication_id=medication.id,
                    medication_name=medication.name,
                    dosage=medication.dosage,
                    scheduled_time=scheduled_time,
                    taken=intake is not None,
                    taken_at=intake.taken_at if intake else None,
                    instructions=medication.instructions,
                )
            )

    # Zero-padded HH:MM sorts chronologically; the sort is stable for equal times
    return sorted(slots, key=lambda s: (s.taken, s.scheduled_time))


def classify_slot(slot: ScheduleSlot, now: datetime) -> SlotStatus:
    """Urgency of a slot at `now`. Taken slots are simply taken."""
    if slot.taken:
        return SlotStatus.TAKEN

    scheduled_at = datetime.combine(now.date(), parse_time_of_day(slot.scheduled_time))
    diff_minutes = (now - scheduled_at).total_seconds() / 60

    if diff_minutes < -DUE_WINDOW_MINUTES:
        return SlotStatus.UPCOMING
    if diff_minutes <= DUE_WINDOW_MINUTES:
        return SlotStatus.CURRENT
    return SlotStatus.OVERDUE


def count_overdue(slots: Iterable[ScheduleSlot], now: datetime) -> int:
    return sum(1 for slot in slots if classify_slot(slot, now) is SlotStatus.OVERDUE)


def format_time(value: str) -> str:
    """12-hour display text for "HH:MM". Unparseable input comes back unchanged."""
    try:
        hours, minutes = value.split(":")
        hour = int(hours)
    except (AttributeError, ValueError):
        return value
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


class ScheduleAggregator:
    """Reads a caller's medications and today's intakes and builds the schedule."""

    def __init__(self, store: EntityStore, clock: TimeContext) -> None:
        self.store = store
        self.clock = clock
        self.medications = MedicationService(store, clock)
        self.logger = logger.bind(component="schedule_aggregator")

    def todays_intakes(self, owner_id: str) -> Result[list[MedicationIntake], Exception]:
        start, end = day_bounds(self.clock.today())
        result = read_records(
            self.store,
            EntityType.MEDICATION_INTAKES,
            StoreFilter(eq={"user_id": owner_id}, gte={"taken_at": start}, lt={"taken_at": end}),
        )
        if result.is_err():
            return Result.err(result.unwrap_err())
        return Result.ok(parse_records(MedicationIntake, result.unwrap()))

    def todays_schedule(self, owner_id: str | None) -> list[ScheduleSlot]:
        """Today's slots, or an empty schedule when anything could not be read."""
        today = self.clock.today()
        medications = self.medications.list_active(owner_id)
        if not owner_id or not medications:
            return []

        intakes = self.todays_intakes(owner_id)
        if intakes.is_err():
            self.logger.warning("schedule_read_failed", error=str(intakes.unwrap_err()))
            return []

        slots = build_schedule(medications, intakes.unwrap(), today)
        self.logger.debug(
            "schedule_built",
            medications=len(medications),
            slots=len(slots),
            taken=sum(1 for s in slots if s.taken),
        )
        return slots

    def timed_schedule(self, owner_id: str | None) -> list[TimedSlot]:
        now = self.clock.now()
        return [
            TimedSlot(slot=slot, status=classify_slot(slot, now))
            for slot in self.todays_schedule(owner_id)
        ]
