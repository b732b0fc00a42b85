"""Pending changes - buffered edits to an entity's dependent collections.

Nothing in here touches the store. ``commit_svc`` replays a structure against
the store and hands back a fresh one from ``create_empty``.
"""

from __future__ import annotations

from typing import Any, Union

from .base import (
    TEMP_ID_PREFIX,
    ChangeSet,
    DocumentChangeSet,
    FileChangeSet,
    FileDelete,
    PendingChangesBase,
    PendingDocument,
    PendingItem,
    PendingUpdate,
    new_temp_id,
)
from .house import HousePendingChanges
from .participant import ParticipantPendingChanges
from .staff import StaffPendingChanges

PendingChanges = Union[ParticipantPendingChanges, StaffPendingChanges, HousePendingChanges]

PENDING_TYPES: dict[str, type[PendingChangesBase]] = {
    "participant": ParticipantPendingChanges,
    "staff": StaffPendingChanges,
    "house": HousePendingChanges,
}

_EMPTY_TEMPLATES: dict[str, PendingChangesBase] = {
    entity_type: model() for entity_type, model in PENDING_TYPES.items()
}


def pending_type_for(entity_type: str) -> type[PendingChangesBase]:
    try:
        return PENDING_TYPES[entity_type]
    except KeyError:
        raise ValueError(f"unknown entity type {entity_type!r}") from None


def create_empty(entity_type: str) -> PendingChanges:
    """A fresh structure, deep-copied so sessions never share buckets."""
    pending_type_for(entity_type)
    return _EMPTY_TEMPLATES[entity_type].model_copy(deep=True)


def parse_pending(entity_type: str, data: dict[str, Any] | None) -> PendingChanges:
    """Validate a JSON document (camelCase or snake_case keys) into a structure."""
    if not data:
        return create_empty(entity_type)
    return pending_type_for(entity_type).model_validate(data)


def has_any_pending_changes(pending: PendingChangesBase | None) -> bool:
    return pending is not None and pending.has_changes()


def count_pending_changes(pending: PendingChangesBase | None) -> int:
    return 0 if pending is None else pending.count()


def collection_counts(pending: PendingChangesBase) -> dict[str, int]:
    return pending.collection_counts()


def is_temp_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


__all__ = [
    "TEMP_ID_PREFIX",
    "ChangeSet",
    "DocumentChangeSet",
    "FileChangeSet",
    "FileDelete",
    "HousePendingChanges",
    "PENDING_TYPES",
    "ParticipantPendingChanges",
    "PendingChanges",
    "PendingChangesBase",
    "PendingDocument",
    "PendingItem",
    "PendingUpdate",
    "StaffPendingChanges",
    "collection_counts",
    "count_pending_changes",
    "create_empty",
    "has_any_pending_changes",
    "is_temp_id",
    "new_temp_id",
    "parse_pending",
]
