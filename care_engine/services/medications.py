"""
Owner-scoped medication reads and writes.

Reads degrade to an empty list when the store fails or no caller identity is
present. Writes require an identity and propagate store failures unchanged.
"""

from datetime import datetime

import structlog

from care_engine.domain.models import Medication, MedicationDraft
from care_engine.services.clock import TimeContext
from care_engine.services.medication_status import MedicationStatusResolver
from care_engine.services.store import (
    EntityStore,
    EntityType,
    StoreFilter,
    load_owned,
    parse_records,
    read_records,
    require_caller,
)
from care_engine.services.validation import MedicationSubmissionValidator

logger = structlog.get_logger(__name__)


def _recency(medication: Medication) -> datetime:
    return medication.updated_at or medication.created_at or datetime.min


class MedicationService:
    """Lists, creates and transitions a caller's medications."""

    def __init__(self, store: EntityStore, clock: TimeContext) -> None:
        self.store = store
        self.clock = clock
        self.logger = logger.bind(component="medication_service")

    def _read(self, owner_id: str | None, **eq: object) -> list[Medication]:
        if not owner_id:
            self.logger.warning("medication_read_without_identity")
            return []
        records = read_records(
            self.store, EntityType.MEDICATIONS, StoreFilter.owned_by(owner_id, **eq)
        ).unwrap_or([])
        return parse_records(Medication, records)

    def list_all(self, owner_id: str | None) -> list[Medication]:
        """Every medication, newest first."""
        medications = self._read(owner_id)
        return sorted(medications, key=lambda m: m.created_at or datetime.min, reverse=True)

    def list_active(self, owner_id: str | None) -> list[Medication]:
        """Medications resolving active today, ordered by name."""
        today = self.clock.today()
        medications = [
            m
            for m in self._read(owner_id, is_active=True)
            if MedicationStatusResolver.is_active_on(m, today)
        ]
        return sorted(medications, key=lambda m: m.name)

    def list_past(self, owner_id: str | None) -> list[Medication]:
        """Completed or expired medications, most recently changed first."""
        today = self.clock.today()
        medications = [
            m for m in self._read(owner_id) if MedicationStatusResolver.is_past(m, today)
        ]
        return sorted(medications, key=_recency, reverse=True)

    def get(self, owner_id: str | None, medication_id: str) -> Medication:
        owner_id = require_caller(owner_id)
        record = load_owned(self.store, EntityType.MEDICATIONS, owner_id, medication_id)
        return Medication.model_validate(record)

    def add(self, owner_id: str | None, draft: MedicationDraft) -> Medication:
        owner_id = require_caller(owner_id)
        fields = MedicationSubmissionValidator.validate(draft)
        record = self.store.insert(EntityType.MEDICATIONS, {**fields, "user_id": owner_id})
        medication = Medication.model_validate(record)
        self.logger.info("medication_added", medication_id=medication.id)
        return medication

    def update(
        self, owner_id: str | None, medication_id: str, draft: MedicationDraft
    ) -> Medication:
        """Replace the editable fields. Saving the form also marks the medication active."""
        owner_id = require_caller(owner_id)
        fields = MedicationSubmissionValidator.validate(draft)
        load_owned(self.store, EntityType.MEDICATIONS, owner_id, medication_id)
        record = self.store.update(EntityType.MEDICATIONS, medication_id, fields)
        self.logger.info("medication_updated", medication_id=medication_id)
        return Medication.model_validate(record)

    def complete(self, owner_id: str | None, medication_id: str) -> Medication:
        return self._set_active(owner_id, medication_id, False)

    def reactivate(self, owner_id: str | None, medication_id: str) -> Medication:
        return self._set_active(owner_id, medication_id, True)

    def _set_active(self, owner_id: str | None, medication_id: str, active: bool) -> Medication:
        owner_id = require_caller(owner_id)
        load_owned(self.store, EntityType.MEDICATIONS, owner_id, medication_id)
        record = self.store.update(EntityType.MEDICATIONS, medication_id, {"is_active": active})
        self.logger.info(
            "medication_reactivated" if active else "medication_completed",
            medication_id=medication_id,
        )
        return Medication.model_validate(record)

    def delete(self, owner_id: str | None, medication_id: str) -> None:
        owner_id = require_caller(owner_id)
        load_owned(self.store, EntityType.MEDICATIONS, owner_id, medication_id)
        self.store.delete(EntityType.MEDICATIONS, medication_id)
        self.logger.info("medication_deleted", medication_id=medication_id)
