"""Medication lifecycle status derived from stored fields and today's date."""

from datetime import date

from care_engine.domain.models import Medication, MedicationStatus


class MedicationStatusResolver:
    """
    Resolves upcoming / active / expired / completed.

    Rules are evaluated in order. A medication the user marked complete stays
    completed whatever its date window says.
    """

    @staticmethod
    def resolve(medication: Medication, today: date) -> MedicationStatus:
        if not medication.is_active:
            return MedicationStatus.COMPLETED
        if today < medication.start_date:
            return MedicationStatus.UPCOMING
        if medication.end_date is not None and today > medication.end_date:
            return MedicationStatus.EXPIRED
        return MedicationStatus.ACTIVE

    @classmethod
    def is_active_on(cls, medication: Medication, today: date) -> bool:
        return cls.resolve(medication, today) is MedicationStatus.ACTIVE

    @classmethod
    def is_past(cls, medication: Medication, today: date) -> bool:
        """Completed by the user or past its end date."""
        return cls.resolve(medication, today) in (
            MedicationStatus.COMPLETED,
            MedicationStatus.EXPIRED,
        )
