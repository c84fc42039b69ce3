"""
Dashboard rollups over medications, today's schedule and appointments.

The appointment "upcoming" and "past" counts are not a partition: a cancelled
appointment dated in the future is not upcoming and is counted as past.
"""

from collections.abc import Sequence
from datetime import date

from care_engine.domain.models import (
    Appointment,
    AppointmentStats,
    AppointmentStatus,
    Medication,
    MedicationStats,
    MedicationStatus,
    ScheduleSlot,
)
from care_engine.services.appointments import AppointmentLifecycle, AppointmentService
from care_engine.services.clock import TimeContext
from care_engine.services.medication_status import MedicationStatusResolver
from care_engine.services.schedule import ScheduleAggregator
from care_engine.services.store import EntityStore

_CURRENT_STATUSES = (MedicationStatus.ACTIVE, MedicationStatus.UPCOMING)


def medication_stats(
    medications: Sequence[Medication], schedule: Sequence[ScheduleSlot], today: date
) -> MedicationStats:
    total = len(medications)
    active = sum(
        1 for m in medications if MedicationStatusResolver.resolve(m, today) in _CURRENT_STATUSES
    )
    return MedicationStats(
        total=total,
        active=active,
        completed=total - active,
        todays_taken=sum(1 for slot in schedule if slot.taken),
        todays_total=len(schedule),
    )


def appointment_stats(appointments: Sequence[Appointment], today: date) -> AppointmentStats:
    past = [a for a in appointments if AppointmentLifecycle.is_past(a, today)]
    return AppointmentStats(
        total=len(appointments),
        upcoming=sum(1 for a in appointments if AppointmentLifecycle.is_upcoming(a, today)),
        past=len(past),
        completed=sum(1 for a in past if a.status is AppointmentStatus.COMPLETED),
        cancelled=sum(1 for a in past if a.status is AppointmentStatus.CANCELLED),
    )


class StatisticsAggregator:
    """Fetches a caller's records and rolls them up. Read failures count as zero."""

    def __init__(self, store: EntityStore, clock: TimeContext) -> None:
        self.clock = clock
        self.schedule = ScheduleAggregator(store, clock)
        self.appointments = AppointmentService(store, clock)

    def medication_stats(
        self, owner_id: str | None, schedule: Sequence[ScheduleSlot] | None = None
    ) -> MedicationStats:
        if schedule is None:
            schedule = self.schedule.todays_schedule(owner_id)
        medications = self.schedule.medications.list_all(owner_id)
        return medication_stats(medications, schedule, self.clock.today())

    def appointment_stats(self, owner_id: str | None) -> AppointmentStats:
        return appointment_stats(self.appointments.list_all(owner_id), self.clock.today())
