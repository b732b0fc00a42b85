"""Activity service - audit trail logging."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..changes import SYSTEM_FIELDS, TRANSIENT_FIELDS, FieldChange
from ..config import settings
from ..models.activity import ActivityLog

if TYPE_CHECKING:
    from ..store import StoreClient

log = logging.getLogger(__name__)

ACTIVITY_TYPES = ("create", "update", "delete", "submit", "approve", "reject", "archive", "activate")

FIELD_LABELS: dict[str, str] = {
    "name": "name",
    "email": "email address",
    "phone": "phone number",
    "address": "address",
    "date_of_birth": "date of birth",
    "ndis_number": "NDIS number",
    "house_id": "house assignment",
    "photo_url": "profile photo",
    "is_active": "status",
    "support_level": "support level",
    "support_coordinator": "support coordinator",
    "primary_diagnosis": "primary diagnosis",
    "allergies": "allergies",
    "mealtime_plan_required": "mealtime plan",
    "mealtime_plan_details": "mealtime plan details",
    "emergency_contact_name": "emergency contact",
    "emergency_contact_phone": "emergency contact phone",
    "general_notes": "notes",
    "move_in_date": "move-in date",
    "department": "department",
    "hire_date": "hire date",
    "qualifications": "qualifications",
    "employment_type": "employment type",
    "capacity": "capacity",
    "current_occupancy": "current occupancy",
    "house_manager": "house manager",
}


def field_label(field: str) -> str:
    return FIELD_LABELS.get(field, field)


def format_value(value: Any) -> str:
    if value is None or value == "":
        return "(empty)"
    if isinstance(value, bool):
        return "Active" if value else "Inactive"
    limit = settings.activity_value_max_length
    if isinstance(value, str) and len(value) > limit:
        return value[: limit - 3] + "..."
    return str(value)


def _entity_label(entity_type: str) -> str:
    return entity_type.replace("_", " ")


def _substantive_fields(changes: Mapping[str, FieldChange]) -> list[str]:
    return [
        key
        for key, change in changes.items()
        if key not in SYSTEM_FIELDS
        and key not in TRANSIENT_FIELDS
        and change.get("old") != change.get("new")
    ]


def generate_description(
    activity_type: str,
    entity_type: str,
    changes: Mapping[str, FieldChange] | None = None,
    custom_description: str | None = None,
) -> str:
    """Human-readable description of one create, update or delete."""
    if custom_description:
        return custom_description
    if activity_type == "create":
        return f"Created new {_entity_label(entity_type)}"
    if activity_type == "delete":
        return f"Deleted {_entity_label(entity_type)}"

    fields = _substantive_fields(changes or {})
    if not fields:
        return f"Updated {_entity_label(entity_type)}"

    if len(fields) == 1:
        field = fields[0]
        if field == "photo_url":
            return "Updated profile photo"
        change = changes[field]
        old_val = format_value(change.get("old"))
        new_val = format_value(change.get("new"))
        return f'Updated {field_label(field)} from "{old_val}" to "{new_val}"'

    labels = [field_label(f) for f in fields]
    if len(fields) == 2:
        return f"Updated {labels[0]} and {labels[1]}"

    remaining = len(fields) - 2
    plural = "s" if remaining > 1 else ""
    return f"Updated {labels[0]}, {labels[1]} and {remaining} other field{plural}"


async def log_activity(
    store: StoreClient,
    *,
    activity_type: str,
    entity_type: str,
    entity_id: str,
    entity_name: str | None = None,
    changes: Mapping[str, FieldChange] | None = None,
    user_name: str | None = None,
    custom_description: str | None = None,
) -> dict[str, Any] | None:
    """Append an audit entry. Never raises; a failure is logged and dropped."""
    if not settings.activity_logging_enabled:
        return None
    try:
        description = generate_description(activity_type, entity_type, changes, custom_description)
        return await store.insert(
            "activity_log",
            {
                "activity_type": activity_type,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "entity_name": entity_name or None,
                "description": description,
                "user_name": user_name or None,
                "metadata_json": {"changes": to_jsonable_python(dict(changes))} if changes else None,
            },
        )
    except Exception:
        log.warning(
            "Failed to log %s activity for %s %s", activity_type, entity_type, entity_id,
            exc_info=True,
        )
        return None


async def list_activities(
    db: AsyncSession,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    limit: int = 50,
) -> list[ActivityLog]:
    stmt = select(ActivityLog)
    if entity_type:
        stmt = stmt.where(ActivityLog.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(ActivityLog.entity_id == entity_id)
    stmt = stmt.order_by(ActivityLog.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
