"""
Tests for today's medication schedule.

Covers:
- Pending-before-taken ordering (a dose moves down once taken)
- Slot count equals the time entries of today's active medications
- build_schedule is pure
- Due-window classification at the +/-30 minute boundaries
- 12-hour display formatting
- Degrading to an empty schedule on read failure or missing identity
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from adapters.memory.store import InMemoryEntityStore
from care_engine.domain.models import (
    Medication,
    MedicationIntake,
    ScheduleSlot,
    SlotStatus,
)
from care_engine.services.clock import FixedTimeContext
from care_engine.services.medication_status import MedicationStatusResolver
from care_engine.services.schedule import (
    ScheduleAggregator,
    build_schedule,
    classify_slot,
    count_overdue,
    format_time,
)
from care_engine.services.store import EntityType

OWNER = "user-1"
TODAY = date(2025, 3, 15)

times_of_day = st.builds(
    lambda h, m: f"{h:02d}:{m:02d}",
    st.integers(min_value=0, max_value=23),
    st.integers(min_value=0, max_value=59),
)

medications = st.builds(
    lambda i, start, length, active, times: Medication(
        id=f"med-{i}",
        user_id=OWNER,
        name=f"Medication {i}",
        time_of_day=times,
        start_date=TODAY + timedelta(days=start),
        end_date=TODAY + timedelta(days=start + length) if length is not None else None,
        is_active=active,
    ),
    st.integers(min_value=0, max_value=10_000),
    st.integers(min_value=-30, max_value=30),
    st.one_of(st.none(), st.integers(min_value=0, max_value=60)),
    st.booleans(),
    st.lists(times_of_day, min_size=1, max_size=4, unique=True),
)


def _slot(scheduled_time: str, taken: bool = False) -> ScheduleSlot:
    return ScheduleSlot(
        medication_id="med-1",
        medication_name="Metformin",
        dosage="500mg",
        scheduled_time=scheduled_time,
        taken=taken,
    )


class TestTodaysSchedule:
    def test_no_intakes_lists_pending_slots_in_clock_order(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
    ) -> None:
        add_medication(time_of_day=["20:00", "08:00"])

        slots = ScheduleAggregator(store, clock).todays_schedule(OWNER)

        assert [s.scheduled_time for s in slots] == ["08:00", "20:00"]
        assert not any(s.taken for s in slots)

    def test_taken_dose_moves_below_pending(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
        add_intake: Callable[..., MedicationIntake],
    ) -> None:
        medication = add_medication()
        intake = add_intake(medication, "08:00")

        slots = ScheduleAggregator(store, clock).todays_schedule(OWNER)

        assert [(s.scheduled_time, s.taken) for s in slots] == [
            ("20:00", False),
            ("08:00", True),
        ]
        assert slots[1].taken_at == intake.taken_at

    def test_yesterdays_intake_does_not_count(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
        add_intake: Callable[..., MedicationIntake],
    ) -> None:
        medication = add_medication()
        add_intake(medication, "08:00", taken_at="2025-03-14T08:05:00")

        slots = ScheduleAggregator(store, clock).todays_schedule(OWNER)

        assert not any(s.taken for s in slots)

    def test_intake_late_in_the_day_counts(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
        add_intake: Callable[..., MedicationIntake],
    ) -> None:
        medication = add_medication()
        add_intake(medication, "20:00", taken_at="2025-03-15T23:59:59.500000")

        slots = ScheduleAggregator(store, clock).todays_schedule(OWNER)

        assert [s.scheduled_time for s in slots if s.taken] == ["20:00"]

    def test_only_active_medications_contribute(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        today: date,
        add_medication: Callable[..., Medication],
    ) -> None:
        add_medication(name="Active", time_of_day=["09:00"])
        add_medication(name="Completed", time_of_day=["10:00"], is_active=False)
        add_medication(
            name="Upcoming",
            time_of_day=["11:00"],
            start_date=(today + timedelta(days=1)).isoformat(),
        )
        add_medication(
            name="Expired",
            time_of_day=["12:00"],
            start_date=(today - timedelta(days=10)).isoformat(),
            end_date=(today - timedelta(days=1)).isoformat(),
        )

        slots = ScheduleAggregator(store, clock).todays_schedule(OWNER)

        assert [s.medication_name for s in slots] == ["Active"]

    def test_other_owners_medications_are_invisible(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
    ) -> None:
        add_medication(user_id="user-2")

        assert ScheduleAggregator(store, clock).todays_schedule(OWNER) == []

    def test_missing_identity_gives_empty_schedule(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
    ) -> None:
        add_medication()

        assert ScheduleAggregator(store, clock).todays_schedule(None) == []

    @pytest.mark.parametrize(
        "entity_type", [EntityType.MEDICATIONS, EntityType.MEDICATION_INTAKES]
    )
    def test_read_failure_gives_empty_schedule(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
        entity_type: EntityType,
    ) -> None:
        add_medication()
        store.fail_on("find", entity_type)

        assert ScheduleAggregator(store, clock).todays_schedule(OWNER) == []

    def test_timed_schedule_classifies_each_slot(
        self,
        store: InMemoryEntityStore,
        clock: FixedTimeContext,
        add_medication: Callable[..., Medication],
    ) -> None:
        add_medication(time_of_day=["08:00", "10:15", "20:00"])

        timed = ScheduleAggregator(store, clock).timed_schedule(OWNER)

        assert [t.status for t in timed] == [
            SlotStatus.OVERDUE,
            SlotStatus.CURRENT,
            SlotStatus.UPCOMING,
        ]


class TestBuildSchedule:
    @given(meds=st.lists(medications, max_size=6, unique_by=lambda m: m.id))
    def test_slot_count_matches_active_time_entries(self, meds: list[Medication]) -> None:
        """Property: one slot per time entry of every medication active today."""
        expected = sum(
            len(m.time_of_day) for m in meds if MedicationStatusResolver.is_active_on(m, TODAY)
        )

        assert len(build_schedule(meds, [], TODAY)) == expected

    @given(meds=st.lists(medications, max_size=6, unique_by=lambda m: m.id))
    def test_building_twice_gives_identical_output(self, meds: list[Medication]) -> None:
        assert build_schedule(meds, [], TODAY) == build_schedule(meds, [], TODAY)

    @given(meds=st.lists(medications, min_size=1, max_size=6, unique_by=lambda m: m.id))
    def test_pending_slots_precede_taken_slots(self, meds: list[Medication]) -> None:
        intakes = [
            MedicationIntake(
                id=f"intake-{m.id}",
                user_id=OWNER,
                medication_id=m.id,
                scheduled_time=m.time_of_day[0],
                taken_at=datetime(2025, 3, 15, 7, 0),
            )
            for m in meds
        ]

        slots = build_schedule(meds, intakes, TODAY)
        taken_flags = [s.taken for s in slots]

        assert taken_flags == sorted(taken_flags)
        pending = [s.scheduled_time for s in slots if not s.taken]
        assert pending == sorted(pending)


class TestClassifySlot:
    NOW = datetime(2025, 3, 15, 10, 0)

    @pytest.mark.parametrize(
        ("scheduled_time", "expected"),
        [
            ("10:31", SlotStatus.UPCOMING),
            ("10:30", SlotStatus.CURRENT),
            ("10:00", SlotStatus.CURRENT),
            ("09:30", SlotStatus.CURRENT),
            ("09:29", SlotStatus.OVERDUE),
            ("00:00", SlotStatus.OVERDUE),
            ("23:59", SlotStatus.UPCOMING),
        ],
    )
    def test_due_window_boundaries(self, scheduled_time: str, expected: SlotStatus) -> None:
        assert classify_slot(_slot(scheduled_time), self.NOW) is expected

    def test_taken_slot_is_taken_whatever_the_time(self) -> None:
        assert classify_slot(_slot("06:00", taken=True), self.NOW) is SlotStatus.TAKEN

    def test_count_overdue_ignores_taken_slots(self) -> None:
        slots = [_slot("06:00"), _slot("07:00", taken=True), _slot("09:45"), _slot("08:00")]

        assert count_overdue(slots, self.NOW) == 2


class TestFormatTime:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("00:00", "12:00 AM"),
            ("08:05", "8:05 AM"),
            ("12:00", "12:00 PM"),
            ("13:30", "1:30 PM"),
            ("23:59", "11:59 PM"),
        ],
    )
    def test_twelve_hour_display(self, value: str, expected: str) -> None:
        assert format_time(value) == expected

    @pytest.mark.parametrize("value", ["", "noon", "8"])
    def test_unparseable_text_is_returned_unchanged(self, value: str) -> None:
        assert format_time(value) == value
