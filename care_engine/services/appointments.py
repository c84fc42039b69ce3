"""
Appointment lifecycle and owner-scoped appointment storage.

State machine:
    scheduled -> completed | cancelled
    completed -> scheduled   (reactivate, only offered while the date is today or later)
    cancelled is terminal; rescheduled is a legacy state set outside the engine

Date checks compare calendar days only, so an appointment earlier today stays
editable until midnight.
"""

from collections import deque
from collections.abc import Callable
from datetime import date

import structlog

from care_engine.domain.errors import LinkageInconsistency
from care_engine.domain.models import (
    Appointment,
    AppointmentDocumentLink,
    AppointmentDraft,
    AppointmentStatus,
)
from care_engine.services.clock import TimeContext
from care_engine.services.store import (
    EntityStore,
    EntityType,
    StoreFilter,
    load_owned,
    parse_records,
    read_records,
    require_caller,
)
from care_engine.services.validation import AppointmentSubmissionValidator

logger = structlog.get_logger(__name__)


class AppointmentLifecycle:
    """Pure transitions and eligibility predicates."""

    @staticmethod
    def complete(appointment: Appointment) -> Appointment:
        # Callers gate on status; the transition itself is not guarded
        return appointment.model_copy(update={"status": AppointmentStatus.COMPLETED})

    @staticmethod
    def cancel(appointment: Appointment) -> Appointment:
        return appointment.model_copy(update={"status": AppointmentStatus.CANCELLED})

    @staticmethod
    def reactivate(appointment: Appointment) -> Appointment:
        return appointment.model_copy(update={"status": AppointmentStatus.SCHEDULED})

    @staticmethod
    def can_edit(appointment: Appointment, today: date) -> bool:
        return appointment.appointment_date >= today

    @staticmethod
    def can_reactivate(appointment: Appointment, today: date) -> bool:
        return (
            appointment.status is AppointmentStatus.COMPLETED
            and appointment.appointment_date >= today
        )

    @staticmethod
    def is_upcoming(appointment: Appointment, today: date) -> bool:
        return (
            appointment.status is AppointmentStatus.SCHEDULED
            and appointment.appointment_date >= today
        )

    @staticmethod
    def is_past(appointment: Appointment, today: date) -> bool:
        """
        Dated before today, or already completed or cancelled.

        A cancelled appointment dated in the future therefore counts as past.
        """
        return appointment.appointment_date < today or appointment.status in (
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        )


def _chronological(appointment: Appointment) -> tuple[date, str]:
    return appointment.appointment_date, appointment.appointment_time


class AppointmentService:
    """
    Reads and writes a caller's appointments and their document links.

    An appointment write and its document-link replacement are two separate
    store operations. When the link write fails the appointment write stands
    and the inconsistency is logged.
    """

    def __init__(self, store: EntityStore, clock: TimeContext) -> None:
        self.store = store
        self.clock = clock
        self.validator = AppointmentSubmissionValidator(clock)
        self.logger = logger.bind(component="appointment_service")

    # Reads

    def _read(self, owner_id: str | None, **eq: object) -> list[Appointment]:
        if not owner_id:
            self.logger.warning("appointment_read_without_identity")
            return []
        records = read_records(
            self.store, EntityType.APPOINTMENTS, StoreFilter.owned_by(owner_id, **eq)
        ).unwrap_or([])
        return parse_records(Appointment, records)

    def list_all(self, owner_id: str | None) -> list[Appointment]:
        return sorted(self._read(owner_id), key=_chronological)

    def list_upcoming(self, owner_id: str | None, limit: int | None = None) -> list[Appointment]:
        today = self.clock.today()
        upcoming = sorted(
            (a for a in self._read(owner_id) if AppointmentLifecycle.is_upcoming(a, today)),
            key=_chronological,
        )
        return upcoming[:limit] if limit is not None else upcoming

    def list_past(self, owner_id: str | None) -> list[Appointment]:
        today = self.clock.today()
        return sorted(
            (a for a in self._read(owner_id) if AppointmentLifecycle.is_past(a, today)),
            key=_chronological,
            reverse=True,
        )

    def chain(self, owner_id: str | None, root_id: str) -> list[Appointment]:
        """The root appointment and every follow-up reachable from it, oldest first."""
        appointments = self._read(owner_id)
        by_id = {a.id: a for a in appointments}
        if root_id not in by_id:
            return []

        followups: dict[str, list[Appointment]] = {}
        for appointment in appointments:
            if appointment.previous_appointment_id:
                followups.setdefault(appointment.previous_appointment_id, []).append(appointment)

        seen = {root_id}
        queue = deque([root_id])
        while queue:
            for followup in followups.get(queue.popleft(), []):
                if followup.id not in seen:
                    seen.add(followup.id)
                    queue.append(followup.id)

        return sorted((by_id[i] for i in seen), key=_chronological)

    def linked_documents(self, owner_id: str | None, appointment_id: str) -> list[str]:
        if not owner_id:
            return []
        # Links carry no owner column; ownership is checked through the appointment
        if not self._read(owner_id, id=appointment_id):
            return []
        records = read_records(
            self.store,
            EntityType.APPOINTMENT_DOCUMENTS,
            StoreFilter(eq={"appointment_id": appointment_id}),
        ).unwrap_or([])
        return [link.document_id for link in parse_records(AppointmentDocumentLink, records)]

    def get(self, owner_id: str | None, appointment_id: str) -> Appointment:
        owner_id = require_caller(owner_id)
        record = load_owned(self.store, EntityType.APPOINTMENTS, owner_id, appointment_id)
        return Appointment.model_validate(record)

    # Writes

    def create(self, owner_id: str | None, draft: AppointmentDraft) -> Appointment:
        owner_id = require_caller(owner_id)
        validated = self.validator.validate(draft)

        record = self.store.insert(
            EntityType.APPOINTMENTS, {**validated.fields, "user_id": owner_id}
        )
        appointment = Appointment.model_validate(record)
        self.logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            appointment_type=appointment.appointment_type.value,
            is_recurring=appointment.is_recurring,
        )

        if validated.linked_documents:
            self._link_documents(appointment.id, validated.linked_documents)
        return appointment

    def update(
        self, owner_id: str | None, appointment_id: str, draft: AppointmentDraft
    ) -> Appointment:
        owner_id = require_caller(owner_id)
        validated = self.validator.validate(draft)
        load_owned(self.store, EntityType.APPOINTMENTS, owner_id, appointment_id)

        record = self.store.update(EntityType.APPOINTMENTS, appointment_id, validated.fields)
        appointment = Appointment.model_validate(record)
        self.logger.info("appointment_updated", appointment_id=appointment_id)

        if validated.linked_documents is not None:
            self._replace_links(appointment_id, validated.linked_documents)
        return appointment

    def complete(self, owner_id: str | None, appointment_id: str) -> Appointment:
        return self._transition(owner_id, appointment_id, AppointmentLifecycle.complete)

    def cancel(self, owner_id: str | None, appointment_id: str) -> Appointment:
        return self._transition(owner_id, appointment_id, AppointmentLifecycle.cancel)

    def reactivate(self, owner_id: str | None, appointment_id: str) -> Appointment:
        """Set back to scheduled. Callers offer this only when can_reactivate() holds."""
        return self._transition(owner_id, appointment_id, AppointmentLifecycle.reactivate)

    def delete(self, owner_id: str | None, appointment_id: str) -> None:
        owner_id = require_caller(owner_id)
        load_owned(self.store, EntityType.APPOINTMENTS, owner_id, appointment_id)
        self.store.delete(EntityType.APPOINTMENTS, appointment_id)
        self.logger.info("appointment_deleted", appointment_id=appointment_id)

    def _transition(
        self,
        owner_id: str | None,
        appointment_id: str,
        transition: Callable[[Appointment], Appointment],
    ) -> Appointment:
        current = self.get(owner_id, appointment_id)
        target = transition(current)
        record = self.store.update(
            EntityType.APPOINTMENTS, appointment_id, {"status": target.status.value}
        )
        self.logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            from_status=current.status.value,
            to_status=target.status.value,
        )
        return Appointment.model_validate(record)

    def _replace_links(self, appointment_id: str, document_ids: list[str]) -> None:
        try:
            existing = self.store.find(
                EntityType.APPOINTMENT_DOCUMENTS,
                StoreFilter(eq={"appointment_id": appointment_id}),
            )
            for link in existing:
                self.store.delete(EntityType.APPOINTMENT_DOCUMENTS, link["id"])
        except Exception as e:
            self._log_inconsistency(LinkageInconsistency(appointment_id, e))
            return

        if document_ids:
            self._link_documents(appointment_id, document_ids)

    def _link_documents(self, appointment_id: str, document_ids: list[str]) -> None:
        try:
            for document_id in document_ids:
                self.store.insert(
                    EntityType.APPOINTMENT_DOCUMENTS,
                    {"appointment_id": appointment_id, "document_id": document_id},
                )
        except Exception as e:
            self._log_inconsistency(LinkageInconsistency(appointment_id, e))
            return
        self.logger.info(
            "documents_linked", appointment_id=appointment_id, documents=len(document_ids)
        )

    def _log_inconsistency(self, inconsistency: LinkageInconsistency) -> None:
        self.logger.warning(
            "document_link_failed",
            appointment_id=inconsistency.appointment_id,
            error=str(inconsistency.cause),
        )
