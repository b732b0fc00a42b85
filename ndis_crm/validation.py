"""Validation rules library.

Every rule is a pure function returning a ``ValidationResult``; ``error`` is
empty when the value passes. Empty values pass every rule except
``required``, ``required_when`` and ``matches`` so optional fields can be
chained with format rules.

    validate_field(email, [
        lambda v: validators.required(v, "Email"),
        validators.email,
    ])
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable
from urllib.parse import urlparse


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str = ""


VALID = ValidationResult(True, "")

Rule = Callable[[Any], ValidationResult]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s\-+()]+$")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _result(ok: bool, error: str) -> ValidationResult:
    return VALID if ok else ValidationResult(False, error)


def _to_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class validators:
    """Namespace of validation rules."""

    @staticmethod
    def required(value: Any, field_name: str) -> ValidationResult:
        return _result(not _is_empty(value), f"{field_name} is required")

    @staticmethod
    def required_when(value: Any, condition: bool, field_name: str) -> ValidationResult:
        if not condition:
            return VALID
        return validators.required(value, field_name)

    @staticmethod
    def email(value: Any) -> ValidationResult:
        ok = _is_empty(value) or bool(_EMAIL_RE.match(str(value)))
        return _result(ok, "Please enter a valid email address")

    @staticmethod
    def phone(value: Any) -> ValidationResult:
        ok = _is_empty(value) or bool(_PHONE_RE.match(str(value)))
        return _result(ok, "Please enter a valid phone number")

    @staticmethod
    def url(value: Any) -> ValidationResult:
        if _is_empty(value):
            return VALID
        parsed = urlparse(str(value))
        return _result(bool(parsed.scheme and parsed.netloc), "Please enter a valid URL")

    @staticmethod
    def min_length(value: Any, min_len: int, field_name: str) -> ValidationResult:
        ok = _is_empty(value) or len(str(value)) >= min_len
        return _result(ok, f"{field_name} must be at least {min_len} characters")

    @staticmethod
    def max_length(value: Any, max_len: int, field_name: str) -> ValidationResult:
        ok = _is_empty(value) or len(str(value)) <= max_len
        return _result(ok, f"{field_name} must be no more than {max_len} characters")

    @staticmethod
    def numeric(value: Any, field_name: str) -> ValidationResult:
        if _is_empty(value):
            return VALID
        try:
            float(value)
        except (TypeError, ValueError):
            return ValidationResult(False, f"{field_name} must be a number")
        return VALID

    @staticmethod
    def min(value: Any, min_value: float, field_name: str) -> ValidationResult:
        if _is_empty(value):
            return VALID
        number = _to_number(value)
        if number is None:
            return ValidationResult(False, f"{field_name} must be a number")
        return _result(number >= min_value, f"{field_name} must be at least {min_value}")

    @staticmethod
    def max(value: Any, max_value: float, field_name: str) -> ValidationResult:
        if _is_empty(value):
            return VALID
        number = _to_number(value)
        if number is None:
            return ValidationResult(False, f"{field_name} must be a number")
        return _result(number <= max_value, f"{field_name} must be no more than {max_value}")

    @staticmethod
    def matches(value: Any, match_value: Any, field_name: str) -> ValidationResult:
        return _result(value == match_value, f"{field_name} does not match")

    @staticmethod
    def past_date(value: Any, field_name: str) -> ValidationResult:
        if _is_empty(value):
            return VALID
        dt = _to_datetime(value)
        ok = dt is not None and dt < datetime.now(timezone.utc)
        return _result(ok, f"{field_name} must be in the past")

    @staticmethod
    def future_date(value: Any, field_name: str) -> ValidationResult:
        if _is_empty(value):
            return VALID
        dt = _to_datetime(value)
        ok = dt is not None and dt > datetime.now(timezone.utc)
        return _result(ok, f"{field_name} must be in the future")


def validate_field(value: Any, rules: Iterable[Rule]) -> ValidationResult:
    """Run rules in order and return the first failure."""
    for rule in rules:
        result = rule(value)
        if not result.is_valid:
            return result
    return VALID


def validate_record(record: dict[str, Any], schema: dict[str, list[Rule]]) -> dict[str, str]:
    """Validate a flat record against a field -> rules map; returns field -> error."""
    errors: dict[str, str] = {}
    for field, rules in schema.items():
        result = validate_field(record.get(field), rules)
        if not result.is_valid:
            errors[field] = result.error
    return errors


# ── Form rule sets ──────────────────────────────────────────
# Rules that need the whole record close over it, so these are factories.


def participant_rules(record: dict[str, Any]) -> dict[str, list[Rule]]:
    is_draft = record.get("status", "draft") == "draft"
    return {
        "name": [lambda v: validators.required_when(v, not is_draft, "Name")],
        "email": [validators.email],
        "phone": [validators.phone],
        "emergency_contact_phone": [validators.phone],
        "ndis_number": [
            lambda v: validators.numeric(v, "NDIS number"),
            lambda v: validators.max_length(v, 9, "NDIS number"),
        ],
        "date_of_birth": [lambda v: validators.past_date(v, "Date of birth")],
        "mealtime_plan_details": [
            lambda v: validators.required_when(
                v, bool(record.get("mealtime_plan_required")), "Mealtime plan details"
            )
        ],
    }


def staff_rules(record: dict[str, Any]) -> dict[str, list[Rule]]:
    is_draft = record.get("status", "draft") == "draft"
    return {
        "name": [lambda v: validators.required_when(v, not is_draft, "Name")],
        # Email becomes mandatory once the staff member leaves draft.
        "email": [
            lambda v: validators.required_when(v, not is_draft, "Email"),
            validators.email,
        ],
        "phone": [validators.phone],
        "hire_date": [lambda v: validators.past_date(v, "Hire date")],
    }


def house_rules(record: dict[str, Any]) -> dict[str, list[Rule]]:
    capacity = _to_number(record.get("capacity"))
    rules: dict[str, list[Rule]] = {
        "name": [lambda v: validators.required(v, "House name")],
        "phone": [validators.phone],
        "capacity": [lambda v: validators.min(v, 0, "Capacity")],
        "current_occupancy": [lambda v: validators.min(v, 0, "Current occupancy")],
    }
    if capacity is not None:
        limit = int(capacity) if capacity.is_integer() else capacity
        rules["current_occupancy"].append(
            lambda v: validators.max(v, limit, "Current occupancy")
        )
    return rules


FORM_RULES: dict[str, Callable[[dict[str, Any]], dict[str, list[Rule]]]] = {
    "participant": participant_rules,
    "staff": staff_rules,
    "house": house_rules,
}


def validate_form(entity_type: str, record: dict[str, Any]) -> dict[str, str]:
    return validate_record(record, FORM_RULES[entity_type](record))
