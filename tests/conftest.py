"""
Shared fixtures for the care engine test suite.

The clock is pinned to 2025-03-15 10:00 and the in-memory store stamps
records with the same clock, so every date boundary is deterministic.
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

import pytest

from adapters.memory.store import InMemoryEntityStore
from care_engine.domain.models import Appointment, Medication, MedicationIntake
from care_engine.services.clock import FixedTimeContext
from care_engine.services.store import EntityType

OWNER = "user-1"
OTHER_OWNER = "user-2"

FIXED_NOW = datetime(2025, 3, 15, 10, 0)


@pytest.fixture
def clock() -> FixedTimeContext:
    return FixedTimeContext(FIXED_NOW)


@pytest.fixture
def today(clock: FixedTimeContext) -> date:
    return clock.today()


@pytest.fixture
def store(clock: FixedTimeContext) -> InMemoryEntityStore:
    return InMemoryEntityStore(now_factory=clock.now)


@pytest.fixture
def add_medication(
    store: InMemoryEntityStore, today: date
) -> Callable[..., Medication]:
    """Insert a medication row in wire format; defaults give an active twice-daily dose."""

    def _add(**overrides: Any) -> Medication:
        record: dict[str, Any] = {
            "user_id": OWNER,
            "name": "Metformin",
            "dosage": "500mg",
            "frequency": "twice daily",
            "time_of_day": ["08:00", "20:00"],
            "start_date": (today - timedelta(days=5)).isoformat(),
            "end_date": None,
            "is_active": True,
        }
        record.update(overrides)
        return Medication.model_validate(store.insert(EntityType.MEDICATIONS, record))

    return _add


@pytest.fixture
def add_intake(
    store: InMemoryEntityStore, clock: FixedTimeContext
) -> Callable[..., MedicationIntake]:
    def _add(medication: Medication, scheduled_time: str, **overrides: Any) -> MedicationIntake:
        record: dict[str, Any] = {
            "user_id": medication.user_id,
            "medication_id": medication.id,
            "scheduled_time": scheduled_time,
            "taken_at": clock.now().isoformat(),
        }
        record.update(overrides)
        return MedicationIntake.model_validate(store.insert(EntityType.MEDICATION_INTAKES, record))

    return _add


@pytest.fixture
def add_appointment(
    store: InMemoryEntityStore, today: date
) -> Callable[..., Appointment]:
    """Insert an appointment row directly, bypassing submission validation."""

    def _add(**overrides: Any) -> Appointment:
        record: dict[str, Any] = {
            "user_id": OWNER,
            "title": "Check-up",
            "appointment_type": "consultation",
            "appointment_date": today.isoformat(),
            "appointment_time": "15:00",
            "status": "scheduled",
            "is_recurring": False,
        }
        record.update(overrides)
        return Appointment.model_validate(store.insert(EntityType.APPOINTMENTS, record))

    return _add
