"""
Data models for the tool registry

- Operation / Category: immutable catalogue descriptors (dataclasses)
- RowSet / Scalar / Identifier: raw results returned by operation bodies
- ResponseEnvelope: outward-facing result, using Pydantic for serialization
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Enums
# ============================================================================

class RiskLevel(str, Enum):
    """How much an operation can change the database"""
    READ = "read"
    WRITE = "write"
    DESTRUCTIVE = "destructive"


class RegistrationState(str, Enum):
    """Whether a category's operations are invocable"""
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"


class ErrorKind(str, Enum):
    """Error taxonomy carried in error envelopes"""
    UNKNOWN_CATEGORY = "UnknownCategory"
    UNKNOWN_OPERATION = "UnknownOperation"
    OPERATION_NOT_LOADED = "OperationNotLoaded"
    INVALID_ARGUMENTS = "InvalidArguments"
    CONFIRMATION_REQUIRED = "ConfirmationRequired"
    POOL_EXHAUSTED = "PoolExhausted"
    EXECUTION_FAILURE = "ExecutionFailure"
    SHUTDOWN_IN_PROGRESS = "ShutdownInProgress"


# ============================================================================
# Raw results
# ============================================================================

@dataclass(frozen=True)
class RowSet:
    """Tabular result, rows in the order the database returned them."""
    columns: Tuple[str, ...]
    rows: Sequence[Mapping[str, Any]]
    status: Optional[str] = None

    @classmethod
    def from_records(cls, records: Sequence[Mapping[str, Any]], columns: Sequence[str] = ()) -> "RowSet":
        """Build from asyncpg Records (or dicts); columns come from the first row when not given."""
        rows = [dict(record) for record in records]
        if not columns and rows:
            columns = list(rows[0].keys())
        return cls(columns=tuple(columns), rows=rows)


@dataclass(frozen=True)
class Scalar:
    value: Any


@dataclass(frozen=True)
class Identifier:
    """The database object an operation created, altered or dropped."""
    object_type: str
    name: str
    action: str


RawResult = Union[RowSet, Scalar, Identifier]

OperationBody = Callable[[Any, Dict[str, Any]], Awaitable[RawResult]]


# ============================================================================
# Catalogue descriptors
# ============================================================================

@dataclass(frozen=True, eq=False)
class Operation:
    """
    One database action exposed as a tool.

    execute receives (connection, validated_arguments) and returns a RawResult.
    transactional=False opts out of the transaction the dispatcher opens
    (needed for statements such as VACUUM).
    """
    name: str
    category: str
    description: str
    input_schema: Mapping[str, Any]
    risk_level: RiskLevel
    execute: OperationBody = field(compare=False, repr=False)
    transactional: bool = True

    @property
    def is_destructive(self) -> bool:
        return self.risk_level == RiskLevel.DESTRUCTIVE


@dataclass(frozen=True)
class Category:
    name: str
    description: str
    member_operation_names: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a load request: which operations became invocable just now."""
    category: str
    newly_invocable: Tuple[str, ...]
    already_loaded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "newly_invocable": list(self.newly_invocable),
            "already_loaded": self.already_loaded,
        }


# ============================================================================
# Response envelope
# ============================================================================

class ResponseEnvelope(BaseModel):
    """Structured, size-bounded result of one invocation."""
    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "error"]
    operation: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    truncated: bool = False
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    details: Optional[List[Dict[str, Any]]] = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, payload: Dict[str, Any], operation: Optional[str] = None, truncated: bool = False) -> "ResponseEnvelope":
        return cls(status="ok", operation=operation, payload=payload, truncated=truncated)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        operation: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
        retryable: bool = False,
    ) -> "ResponseEnvelope":
        return cls(
            status="error",
            operation=operation,
            error_kind=kind,
            error_message=message,
            details=details,
            retryable=retryable,
        )
