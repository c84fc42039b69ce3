"""
Recording and undoing doses for one schedule slot.

toggle() is a flip: a duplicated "mark taken" request turns the slot back to
pending. Callers that cannot rule out duplicate submissions should use the
explicit set_taken() / set_pending() operations, which are safe to retry.
"""

import structlog

from care_engine.domain.errors import ValidationError
from care_engine.domain.models import Medication, MedicationIntake
from care_engine.services.clock import TimeContext, day_bounds
from care_engine.services.medications import MedicationService
from care_engine.services.store import EntityStore, EntityType, Record, StoreFilter, require_caller

logger = structlog.get_logger(__name__)


class IntakeToggle:
    """The only writer of intake records. At most one intake per slot per day."""

    def __init__(self, store: EntityStore, clock: TimeContext) -> None:
        self.store = store
        self.clock = clock
        self.medications = MedicationService(store, clock)
        self.logger = logger.bind(component="intake_toggle")

    def toggle(
        self,
        owner_id: str | None,
        medication_id: str,
        scheduled_time: str,
        notes: str | None = None,
    ) -> bool:
        """Flip the slot and return whether it is now taken."""
        owner_id = require_caller(owner_id)
        medication = self.medications.get(owner_id, medication_id)

        existing = self._todays_intakes(owner_id, medication_id, scheduled_time)
        if existing:
            self._remove(existing)
            return False

        self._record(owner_id, medication, scheduled_time, notes)
        return True

    def set_taken(
        self,
        owner_id: str | None,
        medication_id: str,
        scheduled_time: str,
        notes: str | None = None,
    ) -> MedicationIntake:
        """Mark the slot taken; a slot that is already taken is left as it is."""
        owner_id = require_caller(owner_id)
        medication = self.medications.get(owner_id, medication_id)

        existing = self._todays_intakes(owner_id, medication_id, scheduled_time)
        if existing:
            return MedicationIntake.model_validate(existing[0])
        return self._record(owner_id, medication, scheduled_time, notes)

    def set_pending(self, owner_id: str | None, medication_id: str, scheduled_time: str) -> bool:
        """Mark the slot pending. Returns False when there was nothing to undo."""
        owner_id = require_caller(owner_id)
        self.medications.get(owner_id, medication_id)

        existing = self._todays_intakes(owner_id, medication_id, scheduled_time)
        if not existing:
            return False
        self._remove(existing)
        return True

    def _todays_intakes(
        self, owner_id: str, medication_id: str, scheduled_time: str
    ) -> list[Record]:
        start, end = day_bounds(self.clock.today())
        return self.store.find(
            EntityType.MEDICATION_INTAKES,
            StoreFilter(
                eq={
                    "user_id": owner_id,
                    "medication_id": medication_id,
                    "scheduled_time": scheduled_time,
                },
                gte={"taken_at": start},
                lt={"taken_at": end},
            ),
        )

    def _record(
        self,
        owner_id: str,
        medication: Medication,
        scheduled_time: str,
        notes: str | None,
    ) -> MedicationIntake:
        if scheduled_time not in medication.time_of_day:
            raise ValidationError(
                f"{scheduled_time!r} is not a scheduled time for {medication.name}",
                "scheduled_time",
            )

        record = self.store.insert(
            EntityType.MEDICATION_INTAKES,
            {
                "user_id": owner_id,
                "medication_id": medication.id,
                "scheduled_time": scheduled_time,
                "taken_at": self.clock.now().isoformat(),
                "notes": notes or None,
            },
        )
        intake = MedicationIntake.model_validate(record)
        self.logger.info(
            "intake_recorded",
            medication_id=medication.id,
            scheduled_time=scheduled_time,
        )
        return intake

    def _remove(self, intakes: list[Record]) -> None:
        # Duplicates from earlier races are cleared along with the intake
        for record in intakes:
            self.store.delete(EntityType.MEDICATION_INTAKES, record["id"])
        self.logger.info(
            "intake_removed",
            medication_id=intakes[0].get("medication_id"),
            scheduled_time=intakes[0].get("scheduled_time"),
            removed=len(intakes),
        )
