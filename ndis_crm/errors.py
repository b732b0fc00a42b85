"""Error types and store-error classification.

Three families of failure show up during an editing session:

  - validation errors, raised before any store call (``ValidationFailed``)
  - store errors, raised by the store client and classified by
    ``parse_store_error`` into retryable / non-retryable
  - audit logging errors, which never leave ``activity_svc``
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

if TYPE_CHECKING:
    from .pending import PendingChanges


@dataclass(frozen=True)
class ParsedError:
    title: str
    description: str
    severity: str = "error"
    retryable: bool = True


class NDISError(Exception):
    """Base exception for the back office."""


class ValidationFailed(NDISError):
    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Validation failed for: {fields}")


class EntityNotFound(NDISError):
    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class StorageError(NDISError):
    pass


class StoreError(NDISError):
    """A store call failed. ``parsed`` carries the user-facing classification."""

    def __init__(self, operation: str, table: str, cause: BaseException):
        self.operation = operation
        self.table = table
        self.cause = cause
        self.parsed = parse_store_error(cause)
        super().__init__(f"{operation} on {table} failed: {cause}")

    @property
    def retryable(self) -> bool:
        return self.parsed.retryable


class TempIdUnresolved(NDISError):
    def __init__(self, collection: str, temp_id: str):
        self.collection = collection
        self.temp_id = temp_id
        super().__init__(
            f"{collection} references unsaved item {temp_id!r} that has not been committed"
        )


class CommitError(NDISError):
    """A save stopped partway. ``remaining`` holds what was not applied."""

    def __init__(
        self,
        collection: str,
        operation: str,
        cause: BaseException,
        remaining: PendingChanges | None = None,
    ):
        self.collection = collection
        self.operation = operation
        self.cause = cause
        self.remaining = remaining
        super().__init__(f"Failed to {operation} {collection}: {cause}")

    @property
    def parsed(self) -> ParsedError:
        return parse_store_error(self.cause)

    @property
    def retryable(self) -> bool:
        return self.parsed.retryable


class CommitInProgress(NDISError):
    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"A save for {entity_type} {entity_id} is already in progress")


# ── Classification ──────────────────────────────────────────

_GENERIC = ParsedError(
    title="An error occurred",
    description="Something went wrong. Please try again.",
)

_PG_CODES = {
    "23505": ParsedError(
        "Duplicate entry",
        "This record already exists. Please check your data and try again.",
        retryable=False,
    ),
    "23514": ParsedError(
        "Invalid data",
        "The data provided does not meet the required constraints. Please check your input.",
        retryable=False,
    ),
    "23503": ParsedError(
        "Related record not found",
        "The referenced record does not exist. Please check your selection and try again.",
        retryable=False,
    ),
    "23502": ParsedError(
        "Required field missing",
        "A required field is missing. Please fill in all required fields.",
        retryable=False,
    ),
    "42501": ParsedError(
        "Permission denied",
        "You do not have permission to perform this action.",
        retryable=False,
    ),
}

# Message fragments (SQLite / driver text) mapped onto the same codes.
_MESSAGE_CODES = (
    ("unique", "23505"),
    ("duplicate key", "23505"),
    ("foreign key", "23503"),
    ("not null", "23502"),
    ("check constraint", "23514"),
)

_RETRYABLE_MESSAGES = (
    (("connection refused", "can't reach database", "unable to open database"),
     ParsedError("Database unavailable", "Unable to connect to the database. Please try again in a moment.")),
    (("timed out", "timeout"),
     ParsedError("Request timed out", "The operation took too long to complete. Please try again.")),
    (("connection closed", "server has closed the connection"),
     ParsedError("Connection lost", "The connection to the server was lost. Please try again.")),
    (("database is locked", "connection pool", "too many connections"),
     ParsedError("Server busy", "The server is currently busy. Please wait a moment and try again.")),
)


def _error_code(exc: BaseException) -> str:
    orig: Any = getattr(exc, "orig", None)
    for source in (orig, exc):
        for attr in ("pgcode", "sqlstate", "code"):
            value = getattr(source, attr, None)
            if isinstance(value, str) and value:
                return value
    return ""


def parse_store_error(exc: BaseException | None) -> ParsedError:
    """Classify a store failure into a user-facing message."""
    if exc is None:
        return _GENERIC
    if isinstance(exc, (StoreError, CommitError)):
        return parse_store_error(exc.cause)
    if isinstance(exc, EntityNotFound):
        return ParsedError(
            "Record not found",
            "The record no longer exists. It may have been deleted by someone else.",
            retryable=False,
        )
    if isinstance(exc, TempIdUnresolved):
        return ParsedError(
            "Unsaved reference",
            "An item refers to another item that has not been saved yet.",
            retryable=False,
        )
    if isinstance(exc, StorageError):
        return ParsedError("File storage error", str(exc) or _GENERIC.description)

    message = str(getattr(exc, "orig", None) or exc)
    lower = message.lower()

    code = _error_code(exc)
    if code in _PG_CODES:
        return _PG_CODES[code]

    if isinstance(exc, IntegrityError):
        for fragment, mapped in _MESSAGE_CODES:
            if fragment in lower:
                return _PG_CODES[mapped]
        return ParsedError(
            "Data integrity error",
            "The data violates database constraints. Please check your input and try again.",
            retryable=False,
        )

    for fragments, parsed in _RETRYABLE_MESSAGES:
        if any(f in lower for f in fragments):
            return parsed

    if isinstance(exc, (OperationalError, TimeoutError, ConnectionError)):
        return _RETRYABLE_MESSAGES[0][1]

    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return _RETRYABLE_MESSAGES[2][1]

    return ParsedError(_GENERIC.title, message or _GENERIC.description)


def is_retryable(exc: BaseException) -> bool:
    return parse_store_error(exc).retryable


def error_message(exc: BaseException) -> str:
    return parse_store_error(exc).description
