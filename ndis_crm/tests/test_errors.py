"""Test store error classification."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, OperationalError

from ndis_crm.errors import (
    CommitError,
    EntityNotFound,
    StorageError,
    StoreError,
    TempIdUnresolved,
    ValidationFailed,
    error_message,
    is_retryable,
    parse_store_error,
)


class _PgError(Exception):
    def __init__(self, message: str, pgcode: str):
        super().__init__(message)
        self.pgcode = pgcode


def test_unique_violation_from_postgres_code():
    exc = IntegrityError("INSERT", {}, _PgError("duplicate key value", "23505"))
    parsed = parse_store_error(exc)
    assert parsed.title == "Duplicate entry"
    assert not parsed.retryable


def test_sqlite_constraint_messages():
    exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: staff.email"))
    assert parse_store_error(exc).title == "Duplicate entry"
    exc = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: staff_training.title"))
    assert parse_store_error(exc).title == "Required field missing"
    exc = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    assert parse_store_error(exc).title == "Related record not found"


def test_permission_denied():
    parsed = parse_store_error(_PgError("permission denied for table staff", "42501"))
    assert parsed.title == "Permission denied"
    assert not parsed.retryable


def test_transient_errors_are_retryable():
    locked = OperationalError("UPDATE", {}, Exception("database is locked"))
    assert parse_store_error(locked).title == "Server busy"
    assert is_retryable(locked)
    assert parse_store_error(TimeoutError("timed out")).title == "Request timed out"
    refused = ConnectionError("connection refused")
    assert parse_store_error(refused).title == "Database unavailable"


def test_unknown_error_keeps_its_message():
    parsed = parse_store_error(RuntimeError("disk quota exceeded"))
    assert parsed.title == "An error occurred"
    assert parsed.description == "disk quota exceeded"
    assert parsed.retryable
    assert parse_store_error(None).description == "Something went wrong. Please try again."


def test_wrapped_errors_are_classified_by_cause():
    store_error = StoreError("insert", "staff", IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
    assert store_error.parsed.title == "Duplicate entry"
    assert not store_error.retryable

    commit_error = CommitError("documents", "add", store_error)
    assert commit_error.parsed.title == "Duplicate entry"
    assert str(commit_error).startswith("Failed to add documents")
    assert error_message(commit_error) == (
        "This record already exists. Please check your data and try again."
    )


def test_domain_errors():
    assert not is_retryable(EntityNotFound("participant", "p-1"))
    assert not is_retryable(TempIdUnresolved("form_assignments", "tmp_x"))
    assert is_retryable(StorageError("upload failed"))
    assert parse_store_error(StorageError("upload failed")).description == "upload failed"


def test_validation_failed_lists_fields():
    exc = ValidationFailed({"name": "Name is required", "email": "Please enter a valid email address"})
    assert str(exc) == "Validation failed for: email, name"
    assert exc.errors["name"] == "Name is required"
