"""
Entity store contract and the read/write conventions built on it.

Key patterns:
- Protocol-based dependency injection for the hosted relational store
- Generic Result type so read paths can degrade instead of raising
- Every query is scoped by the caller's owner id
"""

from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from care_engine.domain.errors import NotAuthenticatedError, StoreError

logger = structlog.get_logger(__name__)

Record = dict[str, Any]

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)
ModelT = TypeVar("ModelT", bound=BaseModel)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Makes error paths visible in type system, forces handling decisions.
    When to use: Read paths that fall back to an empty value on store failure.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class EntityType(str, Enum):
    """Tables the engine reads and writes."""

    MEDICATIONS = "medications"
    MEDICATION_INTAKES = "medication_intakes"
    APPOINTMENTS = "appointments"
    APPOINTMENT_DOCUMENTS = "appointment_documents"


class StoreFilter(BaseModel):
    """Conjunction of equality and range predicates on record fields."""

    model_config = ConfigDict(frozen=True)

    eq: dict[str, Any] = Field(default_factory=dict)
    gt: dict[str, Any] = Field(default_factory=dict)
    gte: dict[str, Any] = Field(default_factory=dict)
    lt: dict[str, Any] = Field(default_factory=dict)
    lte: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def owned_by(cls, owner_id: str, **eq: Any) -> "StoreFilter":
        return cls(eq={"user_id": owner_id, **eq})


class EntityStore(Protocol):
    """
    Protocol for the hosted relational store.

    Each call is a single all-or-nothing operation on one table. Failures are
    raised as StoreError and never retried by the engine.
    """

    def find(self, entity_type: EntityType, store_filter: StoreFilter) -> list[Record]: ...

    def insert(self, entity_type: EntityType, record: Record) -> Record: ...

    def update(self, entity_type: EntityType, record_id: str, changes: Record) -> Record: ...

    def delete(self, entity_type: EntityType, record_id: str) -> None: ...


def require_caller(owner_id: str | None) -> str:
    """Return the caller's owner id or refuse the operation."""
    if not owner_id:
        raise NotAuthenticatedError()
    return owner_id


def read_records(
    store: EntityStore, entity_type: EntityType, store_filter: StoreFilter
) -> Result[list[Record], Exception]:
    """Read for a degrading path: any failure comes back as Result.err."""
    try:
        return Result.ok(store.find(entity_type, store_filter))
    except Exception as e:
        logger.warning(
            "store_read_failed",
            entity_type=entity_type.value,
            error=str(e),
        )
        return Result.err(e)


def load_owned(
    store: EntityStore, entity_type: EntityType, owner_id: str, record_id: str
) -> Record:
    """Fetch one record by id for a write path. Missing or foreign records raise."""
    records = store.find(entity_type, StoreFilter.owned_by(owner_id, id=record_id))
    if not records:
        raise StoreError(f"{entity_type.value} record {record_id} not found")
    return records[0]


def parse_records(model: type[ModelT], records: list[Record]) -> list[ModelT]:
    """Validate store rows into domain models, skipping rows that break the contract."""
    parsed: list[ModelT] = []
    for record in records:
        try:
            parsed.append(model.model_validate(record))
        except PydanticValidationError as e:
            logger.warning(
                "store_record_skipped",
                model=model.__name__,
                record_id=record.get("id"),
                error=str(e),
            )
    return parsed
