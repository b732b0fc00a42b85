"""Test validation rules and form rule sets."""

from __future__ import annotations

from datetime import date, timedelta

from ndis_crm.validation import (
    ValidationResult,
    validate_field,
    validate_form,
    validate_record,
    validators,
)


def test_required():
    assert validators.required("", "Name") == ValidationResult(False, "Name is required")
    assert not validators.required("   ", "Name").is_valid
    assert not validators.required(None, "Name").is_valid
    assert validators.required("Jo", "Name").is_valid


def test_required_when_only_applies_under_condition():
    assert validators.required_when("", False, "Email").is_valid
    result = validators.required_when("", True, "Email")
    assert result.error == "Email is required"


def test_email():
    assert validators.email("a@b.co").is_valid
    assert validators.email("").is_valid
    result = validators.email("not-an-email")
    assert result.error == "Please enter a valid email address"


def test_phone():
    assert validators.phone("+61 (02) 9999-1234").is_valid
    assert not validators.phone("call me").is_valid
    assert validators.phone(None).is_valid


def test_url():
    assert validators.url("https://example.com/a").is_valid
    assert not validators.url("example").is_valid
    assert validators.url("").is_valid


def test_length_rules():
    assert validators.min_length("abc", 3, "Code").is_valid
    assert validators.min_length("ab", 3, "Code").error == "Code must be at least 3 characters"
    assert validators.max_length("abcd", 3, "Code").error == "Code must be no more than 3 characters"
    assert validators.max_length("", 3, "Code").is_valid


def test_numeric():
    assert validators.numeric("430123456", "NDIS number").is_valid
    assert validators.numeric("12.5", "Amount").is_valid
    assert validators.numeric("12a", "Amount").error == "Amount must be a number"


def test_min_max():
    assert validators.min(0, 0, "Capacity").is_valid
    assert validators.min(-1, 0, "Capacity").error == "Capacity must be at least 0"
    assert validators.max(5, 4, "Occupancy").error == "Occupancy must be no more than 4"
    assert validators.max(None, 4, "Occupancy").is_valid


def test_min_max_with_string_values():
    assert validators.min("6", 0, "Capacity").is_valid
    assert validators.min("", 0, "Capacity").is_valid
    assert validators.min("-2", 0, "Capacity").error == "Capacity must be at least 0"
    assert validators.min("abc", 0, "Capacity").error == "Capacity must be a number"
    assert validators.max("five", 4, "Occupancy").error == "Occupancy must be a number"


def test_matches():
    assert validators.matches("x", "x", "Password").is_valid
    assert validators.matches("x", "y", "Password").error == "Password does not match"


def test_past_and_future_dates():
    yesterday = date.today() - timedelta(days=2)
    tomorrow = date.today() + timedelta(days=2)
    assert validators.past_date(yesterday.isoformat(), "Date of birth").is_valid
    assert not validators.past_date(tomorrow.isoformat(), "Date of birth").is_valid
    assert validators.future_date(tomorrow, "Expiry").is_valid
    assert validators.future_date(yesterday, "Expiry").error == "Expiry must be in the future"
    assert not validators.past_date("garbage", "Date of birth").is_valid
    assert validators.past_date("", "Date of birth").is_valid


def test_validate_field_returns_first_failure():
    result = validate_field("", [
        lambda v: validators.required(v, "Email"),
        validators.email,
    ])
    assert result.error == "Email is required"

    result = validate_field("bad", [
        lambda v: validators.required(v, "Email"),
        validators.email,
    ])
    assert result.error == "Please enter a valid email address"


def test_validate_record():
    errors = validate_record(
        {"email": "bad", "phone": "0400 000 000"},
        {"email": [validators.email], "phone": [validators.phone]},
    )
    assert errors == {"email": "Please enter a valid email address"}


def test_participant_draft_allows_missing_name():
    assert validate_form("participant", {"status": "draft"}) == {}
    errors = validate_form("participant", {"status": "active", "name": ""})
    assert errors == {"name": "Name is required"}


def test_participant_ndis_number_rules():
    errors = validate_form("participant", {"status": "draft", "ndis_number": "12345678901"})
    assert errors["ndis_number"] == "NDIS number must be no more than 9 characters"
    errors = validate_form("participant", {"status": "draft", "ndis_number": "abc"})
    assert errors["ndis_number"] == "NDIS number must be a number"


def test_participant_mealtime_details_required_when_plan_required():
    errors = validate_form("participant", {"status": "draft", "mealtime_plan_required": True})
    assert "mealtime_plan_details" in errors


def test_staff_email_required_once_active():
    assert validate_form("staff", {"status": "draft"}) == {}
    errors = validate_form("staff", {"status": "active", "name": "Sam"})
    assert errors == {"email": "Email is required"}


def test_house_occupancy_within_capacity():
    assert validate_form("house", {"name": "A", "capacity": 4, "current_occupancy": 4}) == {}
    errors = validate_form("house", {"name": "A", "capacity": 2, "current_occupancy": 3})
    assert errors == {"current_occupancy": "Current occupancy must be no more than 2"}
    assert validate_form("house", {"name": ""}) == {"name": "House name is required"}


def test_house_numbers_from_text_fields():
    assert validate_form("house", {"name": "A", "capacity": "6", "current_occupancy": "2"}) == {}
    errors = validate_form("house", {"name": "A", "capacity": "abc", "current_occupancy": "1"})
    assert errors == {"capacity": "Capacity must be a number"}
    errors = validate_form("house", {"name": "A", "capacity": "2", "current_occupancy": "3"})
    assert errors == {"current_occupancy": "Current occupancy must be no more than 2"}
