"""
Core services for the care engine.

This package contains the schedule, intake, appointment, validation and
statistics services, plus the store protocol they are built on.
"""

from .appointments import AppointmentLifecycle, AppointmentService
from .clock import FixedTimeContext, SystemTimeContext, TimeContext
from .dashboard import DashboardService
from .intake import IntakeToggle
from .medication_status import MedicationStatusResolver
from .medications import MedicationService
from .schedule import (
    ScheduleAggregator,
    build_schedule,
    classify_slot,
    count_overdue,
    format_time,
)
from .statistics import StatisticsAggregator, appointment_stats, medication_stats
from .store import EntityStore, EntityType, Result, StoreFilter
from .validation import (
    AppointmentSubmissionValidator,
    MedicationSubmissionValidator,
    RecurrenceValidator,
)

__all__ = [
    "AppointmentLifecycle",
    "AppointmentService",
    "AppointmentSubmissionValidator",
    "DashboardService",
    "EntityStore",
    "EntityType",
    "FixedTimeContext",
    "IntakeToggle",
    "MedicationService",
    "MedicationStatusResolver",
    "MedicationSubmissionValidator",
    "RecurrenceValidator",
    "Result",
    "ScheduleAggregator",
    "StatisticsAggregator",
    "StoreFilter",
    "SystemTimeContext",
    "TimeContext",
    "appointment_stats",
    "build_schedule",
    "classify_slot",
    "count_overdue",
    "format_time",
    "medication_stats",
]
