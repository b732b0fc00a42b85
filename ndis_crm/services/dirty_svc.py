"""Dirty tracking - decides whether an editing session has anything to save."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..pending import PendingChangesBase, has_any_pending_changes

DiffKind = Literal["changed", "added", "removed"]


@dataclass(frozen=True)
class DiffEntry:
    kind: DiffKind
    path: tuple[Any, ...]
    old: Any = None
    new: Any = None

    @property
    def dotted_path(self) -> str:
        return ".".join(str(p) for p in self.path)


@dataclass(frozen=True)
class DirtyState:
    is_dirty: bool
    form_changed: bool
    has_pending_child_changes: bool
    form_diff: list[DiffEntry] = field(default_factory=list)


def deep_diff(old: Any, new: Any, path: tuple[Any, ...] = ()) -> list[DiffEntry]:
    """Structural diff. Mapping key order never matters; sequences compare by position."""
    if isinstance(old, dict) and isinstance(new, dict):
        entries: list[DiffEntry] = []
        for key in old:
            if key not in new:
                entries.append(DiffEntry("removed", path + (key,), old=old[key]))
            else:
                entries.extend(deep_diff(old[key], new[key], path + (key,)))
        for key in new:
            if key not in old:
                entries.append(DiffEntry("added", path + (key,), new=new[key]))
        return entries

    if isinstance(old, (list, tuple)) and isinstance(new, (list, tuple)):
        entries = []
        for i in range(max(len(old), len(new))):
            if i >= len(new):
                entries.append(DiffEntry("removed", path + (i,), old=old[i]))
            elif i >= len(old):
                entries.append(DiffEntry("added", path + (i,), new=new[i]))
            else:
                entries.extend(deep_diff(old[i], new[i], path + (i,)))
        return entries

    if type(old) is not type(new) and not _both_numbers(old, new):
        return [DiffEntry("changed", path, old=old, new=new)]
    if old != new:
        return [DiffEntry("changed", path, old=old, new=new)]
    return []


def _both_numbers(a: Any, b: Any) -> bool:
    return (
        isinstance(a, (int, float))
        and isinstance(b, (int, float))
        and not isinstance(a, bool)
        and not isinstance(b, bool)
    )


def compute_dirty(
    form_data: dict[str, Any] | None,
    original_data: dict[str, Any] | None,
    pending_changes: PendingChangesBase | None = None,
) -> DirtyState:
    form_diff = deep_diff(original_data or {}, form_data or {})
    form_changed = bool(form_diff)
    child_changes = has_any_pending_changes(pending_changes)
    return DirtyState(
        is_dirty=form_changed or child_changes,
        form_changed=form_changed,
        has_pending_child_changes=child_changes,
        form_diff=form_diff,
    )
