"""Field-level change detection between two snapshots of a flat record."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypedDict

# Maintained by the store, never part of an edit.
SYSTEM_FIELDS = frozenset({"created_at", "updated_at"})
# UI-only staging values (e.g. a photo picked but not uploaded yet).
TRANSIENT_FIELDS = frozenset({"photo_file"})


class FieldChange(TypedDict):
    old: Any
    new: Any


ChangeMap = dict[str, FieldChange]


def normalize_value(value: Any) -> Any:
    """Collapse None and '' into None so they never count as a change."""
    if value is None or value == "":
        return None
    return value


def detect_changes(
    old: Mapping[str, Any] | None,
    new: Mapping[str, Any],
    *,
    ignore: Iterable[str] = (),
) -> ChangeMap:
    """Changes for every key of ``new`` whose normalized value differs from ``old``.

    The map keeps the original, non-normalized values for display.
    """
    old = old or {}
    skip = SYSTEM_FIELDS | TRANSIENT_FIELDS | frozenset(ignore)
    changes: ChangeMap = {}
    for key, new_value in new.items():
        if key in skip:
            continue
        old_value = old.get(key)
        if normalize_value(old_value) != normalize_value(new_value):
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def changed_fields(changes: Mapping[str, FieldChange]) -> list[str]:
    """Keys of a change map that carry a real change, in insertion order."""
    return [
        key
        for key, change in changes.items()
        if key not in SYSTEM_FIELDS
        and key not in TRANSIENT_FIELDS
        and normalize_value(change.get("old")) != normalize_value(change.get("new"))
    ]
