"""
In-memory implementation of the EntityStore protocol.

Behaves like the hosted store as far as the engine can tell:
- Records are plain dicts in wire format ("YYYY-MM-DD", "HH:MM", ISO timestamps)
- Ids are generated on insert; created_at/updated_at are stamped
- Range predicates compare the stored text, as the hosted store does for ISO values
- Failures can be injected per (operation, table) to exercise error paths
"""

import copy
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

import structlog

from care_engine.domain.errors import StoreError
from care_engine.services.store import EntityType, Record, StoreFilter

logger = structlog.get_logger(__name__)

Operation = Literal["find", "insert", "update", "delete"]


def _matches(record: Record, store_filter: StoreFilter) -> bool:
    for field, expected in store_filter.eq.items():
        if record.get(field) != expected:
            return False

    comparisons: list[tuple[dict[str, Any], Callable[[Any, Any], bool]]] = [
        (store_filter.gt, lambda a, b: a > b),
        (store_filter.gte, lambda a, b: a >= b),
        (store_filter.lt, lambda a, b: a < b),
        (store_filter.lte, lambda a, b: a <= b),
    ]
    for predicates, compare in comparisons:
        for field, bound in predicates.items():
            value = record.get(field)
            if value is None or not compare(value, bound):
                return False
    return True


class InMemoryEntityStore:
    """Dict-backed tables keyed by record id."""

    def __init__(self, now_factory: Callable[[], datetime] = datetime.now) -> None:
        self.now_factory = now_factory
        self.tables: dict[EntityType, dict[str, Record]] = {t: {} for t in EntityType}
        self._failures: dict[tuple[Operation, EntityType], StoreError] = {}
        self.logger = logger.bind(component="memory_store")

    def fail_on(
        self, operation: Operation, entity_type: EntityType, error: StoreError | None = None
    ) -> None:
        """Make every later `operation` on `entity_type` raise until cleared."""
        self._failures[(operation, entity_type)] = error or StoreError(
            f"{operation} on {entity_type.value} failed"
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def _check(self, operation: Operation, entity_type: EntityType) -> None:
        error = self._failures.get((operation, entity_type))
        if error is not None:
            self.logger.debug("injected_failure", operation=operation, table=entity_type.value)
            raise error

    def find(self, entity_type: EntityType, store_filter: StoreFilter) -> list[Record]:
        self._check("find", entity_type)
        return [
            copy.deepcopy(record)
            for record in self.tables[entity_type].values()
            if _matches(record, store_filter)
        ]

    def insert(self, entity_type: EntityType, record: Record) -> Record:
        self._check("insert", entity_type)
        stamp = self.now_factory().isoformat()
        stored = {"created_at": stamp, "updated_at": stamp, **copy.deepcopy(record)}
        stored["id"] = str(record.get("id") or uuid.uuid4())
        if stored["id"] in self.tables[entity_type]:
            raise StoreError(f"duplicate key {stored['id']} in {entity_type.value}")
        self.tables[entity_type][stored["id"]] = stored
        return copy.deepcopy(stored)

    def update(self, entity_type: EntityType, record_id: str, changes: Record) -> Record:
        self._check("update", entity_type)
        current = self.tables[entity_type].get(record_id)
        if current is None:
            raise StoreError(f"{entity_type.value} record {record_id} not found")
        current.update(copy.deepcopy(changes))
        current["id"] = record_id
        current["updated_at"] = self.now_factory().isoformat()
        return copy.deepcopy(current)

    def delete(self, entity_type: EntityType, record_id: str) -> None:
        self._check("delete", entity_type)
        self.tables[entity_type].pop(record_id, None)
