"""Commit service - replays an editing session's pending changes against the store.

Order of a commit:

  1. the root row's scalar fields (validated, change map taken from the
     pre-update snapshot)
  2. every dependent collection, parents before collections that reference
     them by temporary id; inside a collection deletes, then updates, then adds

Storage objects are removed before their row and uploaded before their row is
inserted. A failed insert removes the object it just uploaded.

By default each store call commits on its own. A failure raises ``CommitError``
whose ``remaining`` is the pending structure minus what was already applied,
with temporary-id references to committed parents rewritten to persistent ids,
so saving ``remaining`` again finishes the job. With ``transactional=True`` the
whole pass runs in one DB transaction; on failure nothing is applied and
``remaining`` is the untouched input.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from ..changes import detect_changes
from ..config import settings
from ..errors import (
    CommitError,
    CommitInProgress,
    EntityNotFound,
    NDISError,
    StorageError,
    TempIdUnresolved,
    ValidationFailed,
)
from ..pending import PendingChangesBase, create_empty, is_temp_id
from ..store import FileStorage, StoreClient, build_object_path
from ..validation import validate_form
from . import activity_svc

log = logging.getLogger(__name__)


# ── Collection specs ────────────────────────────────────────


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    table: str
    noun: str
    # Candidate fields for the row label in audit descriptions.
    label_fields: tuple[str, ...] = ()
    # Column holding the root id; None for collections nested under another.
    fk: str | None = None
    # Column -> parent collection whose temp ids it may hold.
    refs: dict[str, str] = field(default_factory=dict)
    bucket: str | None = None
    path_prefix: str | None = None
    # Column stamped with the committing user's name on insert.
    user_field: str | None = None
    kind: str = "rows"
    # Attribute path inside the pending structure, defaults to (name,).
    path: tuple[str, ...] = ()

    @property
    def location(self) -> tuple[str, ...]:
        return self.path or (self.name,)


@dataclass(frozen=True)
class EntitySpec:
    entity_type: str
    table: str
    fk: str
    collections: tuple[CollectionSpec, ...]
    name_field: str = "name"


PARTICIPANT = EntitySpec(
    entity_type="participant",
    table="participants",
    fk="participant_id",
    collections=(
        CollectionSpec("goals", "participant_goals", "goal", ("description", "goal_type"), fk="participant_id"),
        CollectionSpec(
            "documents", "participant_documents", "document", ("file_name",),
            fk="participant_id", bucket="participants", path_prefix="participant-documents",
        ),
        CollectionSpec("medications", "participant_medications", "medication", ("medication_id",), fk="participant_id"),
        CollectionSpec("contacts", "participant_contacts", "contact", ("contact_name",), fk="participant_id"),
        CollectionSpec("funding", "participant_funding", "funding", ("code", "funding_source_id"), fk="participant_id"),
        CollectionSpec("shift_notes", "shift_notes", "shift note", ("shift_date",), fk="participant_id"),
    ),
)

STAFF = EntitySpec(
    entity_type="staff",
    table="staff",
    fk="staff_id",
    collections=(
        CollectionSpec(
            "documents", "staff_documents", "document", ("file_name",),
            fk="staff_id", bucket="staff-documents", path_prefix="documents",
        ),
        CollectionSpec("compliance", "staff_compliance", "compliance record", ("compliance_name",), fk="staff_id"),
        CollectionSpec(
            "training", "staff_training", "training", ("title",),
            fk="staff_id", bucket="staff-documents", path_prefix="training",
        ),
    ),
)

HOUSE = EntitySpec(
    entity_type="house",
    table="houses",
    fk="house_id",
    collections=(
        CollectionSpec("participants", "participants", "participant", ("name",), kind="residency"),
        CollectionSpec("staff", "house_staff_assignments", "staff assignment", ("staff_id",), fk="house_id"),
        CollectionSpec("calendar_events", "house_calendar_events", "calendar event", ("title",), fk="house_id"),
        CollectionSpec(
            "documents", "house_files", "document", ("file_name",),
            fk="house_id", bucket="house-documents", path_prefix="documents", user_field="uploaded_by",
        ),
        CollectionSpec("checklists", "house_checklists", "checklist", ("name",), fk="house_id", kind="checklists"),
        CollectionSpec(
            "checklist_items", "house_checklist_items", "checklist item", ("title",),
            refs={"checklist_id": "checklists"}, path=("checklists", "checklist_items"),
        ),
        CollectionSpec("forms", "house_forms", "form", ("name",), fk="house_id"),
        CollectionSpec(
            "form_assignments", "house_form_assignments", "form assignment", ("form_id",),
            fk="house_id", refs={"form_id": "forms"},
        ),
        CollectionSpec("resources", "house_resources", "resource", ("title",), fk="house_id"),
    ),
)

ENTITY_SPECS: dict[str, EntitySpec] = {s.entity_type: s for s in (PARTICIPANT, STAFF, HOUSE)}


def entity_spec(entity_type: str) -> EntitySpec:
    try:
        return ENTITY_SPECS[entity_type]
    except KeyError:
        raise ValueError(f"unknown entity type {entity_type!r}") from None


def commit_order(collections: tuple[CollectionSpec, ...]) -> list[CollectionSpec]:
    """Collections ordered so every parent precedes the collections referencing it."""
    ordered: list[CollectionSpec] = []
    done: set[str] = set()
    waiting = list(collections)
    while waiting:
        ready = [c for c in waiting if all(p in done for p in c.refs.values())]
        if not ready:
            raise ValueError(f"circular references between {[c.name for c in waiting]}")
        for spec in ready:
            ordered.append(spec)
            done.add(spec.name)
            waiting.remove(spec)
    return ordered


# ── Id resolution ───────────────────────────────────────────


class IdMap:
    """Temporary id -> persistent id, filled in as adds are committed."""

    def __init__(self, pending_temp_ids: set[str] | None = None):
        self._resolved: dict[str, str] = {}
        self._pending = set(pending_temp_ids or ())

    def record(self, temp_id: str, persistent_id: str) -> None:
        self._resolved[temp_id] = persistent_id
        self._pending.discard(temp_id)

    def resolve(self, collection: str, value: str) -> str:
        if value in self._resolved:
            return self._resolved[value]
        if value in self._pending or is_temp_id(value):
            raise TempIdUnresolved(collection, value)
        return value

    def as_dict(self) -> dict[str, str]:
        return dict(self._resolved)

    def __contains__(self, temp_id: str) -> bool:
        return temp_id in self._resolved

    def __len__(self) -> int:
        return len(self._resolved)


def _change_set(pending: PendingChangesBase, spec: CollectionSpec):
    target: Any = pending
    for attr in spec.location:
        target = getattr(target, attr)
    return target


def pending_temp_ids(pending: PendingChangesBase) -> set[str]:
    ids: set[str] = set()
    for cs in pending.change_sets().values():
        for item in cs.to_add:
            ids.add(item.temp_id)
            ids.update(child.temp_id for child in getattr(item, "items", ()))
        nested = getattr(cs, "checklist_items", None)
        if nested is not None:
            ids.update(item.temp_id for item in nested.to_add)
    return ids


def _delete_target(entry: Any) -> tuple[str, str | None, str | None]:
    if isinstance(entry, str):
        return entry, None, None
    return entry.id, entry.file_path, entry.file_name


# ── Result ──────────────────────────────────────────────────


@dataclass
class CommitResult:
    entity_type: str
    entity: dict[str, Any]
    pending: PendingChangesBase
    id_map: dict[str, str]
    applied: dict[str, int]
    activities_logged: int = 0

    @property
    def operation_count(self) -> int:
        return sum(self.applied.values())


# Saves currently running, keyed by (entity_type, entity_id).
_in_flight: set[tuple[str, str]] = set()


def is_committing(entity_type: str, entity_id: str) -> bool:
    return (entity_type, entity_id) in _in_flight


class _Commit:
    """State of one reconciliation pass."""

    def __init__(
        self,
        store: StoreClient,
        storage: FileStorage,
        spec: EntitySpec,
        root_id: str,
        pending: PendingChangesBase,
        user_name: str | None,
        transactional: bool,
    ):
        self.store = store
        self.storage = storage
        self.spec = spec
        self.root_id = root_id
        self.pending = pending
        self.remaining = pending.model_copy(deep=True)
        self.user_name = user_name
        self.transactional = transactional
        self.id_map = IdMap(pending_temp_ids(pending))
        self.applied: Counter[str] = Counter()
        self.activities: list[dict[str, Any]] = []
        self.uploaded: list[tuple[str, str]] = []
        self.deferred_removals: list[tuple[str, str]] = []
        self.root_name: str | None = None
        # Child rows removed along with their deleted parent.
        self.cascaded: set[str] = set()

    # ── Bookkeeping ─────────────────────────────────────────

    def _done(self, spec: CollectionSpec, operation: str) -> None:
        self.applied[f"{spec.name}.{operation}"] += 1

    def _queue_activity(self, activity_type: str, description: str | None = None, changes=None) -> None:
        self.activities.append({
            "activity_type": activity_type,
            "changes": changes or None,
            "custom_description": description,
        })

    def _label(self, spec: CollectionSpec, *sources: dict[str, Any] | None) -> str | None:
        for source in sources:
            if not source:
                continue
            for name in spec.label_fields:
                value = source.get(name)
                if value not in (None, ""):
                    return str(value)
        return None

    def _describe(self, verb: str, spec: CollectionSpec, label: str | None) -> str:
        return f'{verb} {spec.noun} "{label}"' if label else f"{verb} {spec.noun}"

    def _rewrite_refs(self, parent: CollectionSpec, temp_id: str, persistent_id: str) -> None:
        for child in self.spec.collections:
            for column, parent_name in child.refs.items():
                if parent_name != parent.name:
                    continue
                for item in _change_set(self.remaining, child).to_add:
                    if getattr(item, column, None) == temp_id:
                        setattr(item, column, persistent_id)

    def _resolve_refs(self, spec: CollectionSpec, row: dict[str, Any]) -> None:
        for column in spec.refs:
            value = row.get(column)
            if value:
                row[column] = self.id_map.resolve(spec.name, value)

    # ── Storage ─────────────────────────────────────────────

    async def _upload(self, spec: CollectionSpec, file_name: str, content: bytes) -> str:
        path = build_object_path(spec.path_prefix or spec.name, self.root_id, file_name)
        await self.storage.upload(spec.bucket, path, content)
        self.uploaded.append((spec.bucket, path))
        return path

    async def _discard(self, bucket: str, path: str) -> None:
        try:
            await self.storage.remove(bucket, [path])
        except StorageError:
            log.warning("Could not remove uploaded object %s/%s", bucket, path, exc_info=True)
        if (bucket, path) in self.uploaded:
            self.uploaded.remove((bucket, path))

    async def _remove_object(self, spec: CollectionSpec, path: str) -> None:
        if self.transactional:
            self.deferred_removals.append((spec.bucket, path))
            return
        try:
            await self.storage.remove(spec.bucket, [path])
        except StorageError:
            log.warning("Storage removal failed for %s/%s", spec.bucket, path, exc_info=True)

    async def discard_uploads(self) -> None:
        for bucket, path in list(self.uploaded):
            await self._discard(bucket, path)

    async def finish_removals(self) -> None:
        for bucket, path in self.deferred_removals:
            try:
                await self.storage.remove(bucket, [path])
            except StorageError:
                log.warning("Storage removal failed for %s/%s", bucket, path, exc_info=True)
        self.deferred_removals.clear()

    async def flush_activities(self) -> int:
        logged = 0
        for entry in self.activities:
            result = await activity_svc.log_activity(
                self.store,
                entity_type=self.spec.entity_type,
                entity_id=self.root_id,
                entity_name=self.root_name,
                user_name=self.user_name,
                **entry,
            )
            if result is not None:
                logged += 1
        self.activities.clear()
        return logged

    # ── Root ────────────────────────────────────────────────

    async def apply_root(self, form_data: dict[str, Any] | None) -> None:
        spec = self.spec
        snapshot = await self.store.get(spec.table, self.root_id)
        if snapshot is None:
            raise EntityNotFound(spec.entity_type, self.root_id)
        self.root_name = snapshot.get(spec.name_field)
        if not form_data:
            return

        columns = self.store.columns(spec.table)
        ignored = sorted(k for k in form_data if k not in columns)
        if ignored:
            log.debug("Ignoring non-column form fields for %s: %s", spec.table, ignored)
        form = self.store.coerce(
            spec.table, {k: v for k, v in form_data.items() if k in columns and k != "id"}
        )

        errors = validate_form(spec.entity_type, {**snapshot, **form})
        if errors:
            raise ValidationFailed(errors)

        changes = detect_changes(snapshot, form)
        if not changes:
            return
        try:
            saved = await self.store.update(spec.table, {k: form[k] for k in changes}, self.root_id)
        except NDISError as exc:
            raise CommitError(spec.entity_type, "update", exc) from exc
        self.root_name = saved.get(spec.name_field)
        self.applied[f"{spec.entity_type}.update"] += 1
        self._queue_activity("update", changes=changes)

    # ── Plain collections ───────────────────────────────────

    async def _delete_children(self, parent: CollectionSpec, parent_id: str) -> None:
        """Delete rows of the collections that reference ``parent_id``."""
        for child in self.spec.collections:
            for column, parent_name in child.refs.items():
                if parent_name != parent.name:
                    continue
                for row in await self.store.select(child.table, {column: parent_id}):
                    await self.store.delete(child.table, row["id"])
                    self.cascaded.add(row["id"])
                    log.debug("Deleted %s %s with its %s %s", child.table, row["id"], parent.noun, parent_id)

    async def delete_rows(self, spec: CollectionSpec, cs) -> None:
        remaining = _change_set(self.remaining, spec)
        for entry in list(cs.to_delete):
            item_id, file_path, file_name = _delete_target(entry)
            if item_id in self.cascaded:
                remaining.to_delete = [d for d in remaining.to_delete if _delete_target(d)[0] != item_id]
                continue
            if file_path and spec.bucket:
                await self._remove_object(spec, file_path)
            try:
                before = None if file_name else await self.store.get(spec.table, item_id)
                await self._delete_children(spec, item_id)
                await self.store.delete(spec.table, item_id)
            except NDISError as exc:
                raise CommitError(spec.name, "delete", exc) from exc
            remaining.to_delete = [d for d in remaining.to_delete if _delete_target(d)[0] != item_id]
            self._done(spec, "delete")
            label = file_name or self._label(spec, before)
            self._queue_activity("delete", self._describe("Deleted", spec, label))

    async def update_rows(self, spec: CollectionSpec, cs) -> None:
        remaining = _change_set(self.remaining, spec)
        for update in list(getattr(cs, "to_update", ())):
            if update.id in self.cascaded:
                remaining.to_update = [u for u in remaining.to_update if u.id != update.id]
                continue
            values = update.changes()
            try:
                before = await self.store.get(spec.table, update.id)
                if before is None:
                    raise EntityNotFound(spec.table, update.id)
                changes = detect_changes(before, self.store.coerce(spec.table, values))
                await self.store.update(spec.table, values, update.id)
            except NDISError as exc:
                raise CommitError(spec.name, "update", exc) from exc
            remaining.to_update = [u for u in remaining.to_update if u.id != update.id]
            self._done(spec, "update")
            label = self._label(spec, values, before)
            self._queue_activity("update", self._describe("Updated", spec, label), changes)

    async def add_row(self, spec: CollectionSpec, item, row: dict[str, Any] | None = None) -> dict[str, Any]:
        row = item.to_row() if row is None else row
        if spec.fk:
            row[spec.fk] = self.root_id
        if spec.user_field:
            row[spec.user_field] = self.user_name
        try:
            self._resolve_refs(spec, row)
        except TempIdUnresolved as exc:
            raise CommitError(spec.name, "add", exc) from exc

        content = getattr(item, "content", None)
        file_name = getattr(item, "file_name", None)
        path = None
        if content is not None and spec.bucket:
            try:
                path = await self._upload(spec, file_name or item.temp_id, content)
            except StorageError as exc:
                raise CommitError(spec.name, "upload", exc) from exc
            row["file_path"] = path

        try:
            inserted = await self.store.insert(spec.table, row)
        except NDISError as exc:
            if path is not None:
                await self._discard(spec.bucket, path)
            raise CommitError(spec.name, "add", exc) from exc

        self.id_map.record(item.temp_id, inserted["id"])
        remaining = _change_set(self.remaining, spec)
        remaining.to_add = [i for i in remaining.to_add if i.temp_id != item.temp_id]
        self._rewrite_refs(spec, item.temp_id, inserted["id"])
        self._done(spec, "add")
        verb = "Uploaded" if path is not None and spec.noun == "document" else "Added"
        self._queue_activity("create", self._describe(verb, spec, self._label(spec, row)))
        return inserted

    async def commit_rows(self, spec: CollectionSpec, cs) -> None:
        await self.delete_rows(spec, cs)
        await self.update_rows(spec, cs)
        for item in list(cs.to_add):
            await self.add_row(spec, item)

    # ── Checklists (items may be embedded in a new checklist) ──

    async def commit_checklists(self, spec: CollectionSpec, cs) -> None:
        await self.delete_rows(spec, cs)
        await self.update_rows(spec, cs)
        item_spec = next(c for c in self.spec.collections if c.refs.get("checklist_id") == spec.name)
        remaining_items = _change_set(self.remaining, item_spec)
        for checklist in list(cs.to_add):
            inserted = await self.add_row(spec, checklist)
            embedded = [i.model_copy(update={"checklist_id": inserted["id"]}) for i in checklist.items]
            remaining_items.to_add.extend(embedded)
            for item in embedded:
                await self.add_row(item_spec, item)

    # ── House residency (rows live in the participants table) ──

    async def _participant_name(self, participant_id: str) -> str | None:
        row = await self.store.get("participants", participant_id)
        return row.get("name") if row else None

    async def commit_residency(self, spec: CollectionSpec, cs) -> None:
        remaining = _change_set(self.remaining, spec)

        for participant_id in list(cs.to_delete):
            try:
                name = await self._participant_name(participant_id)
                await self.store.update(
                    "participants", {"house_id": None, "status": "inactive"}, participant_id
                )
            except NDISError as exc:
                raise CommitError(spec.name, "delete", exc) from exc
            remaining.to_delete = [p for p in remaining.to_delete if p != participant_id]
            self._done(spec, "delete")
            self._queue_activity("update", f'Removed participant "{name or participant_id}" from house')

        for update in list(cs.to_update):
            values = update.changes()
            payload: dict[str, Any] = {"house_id": self.root_id}
            if "move_in_date" in values:
                payload["move_in_date"] = values["move_in_date"]
            if values.get("is_active") is not None:
                payload["status"] = "active" if values["is_active"] else "inactive"
            try:
                name = await self._participant_name(update.id)
                await self.store.update("participants", payload, update.id)
            except NDISError as exc:
                raise CommitError(spec.name, "update", exc) from exc
            remaining.to_update = [u for u in remaining.to_update if u.id != update.id]
            self._done(spec, "update")
            self._queue_activity("update", f'Updated residency of participant "{name or update.id}"')

        for item in list(cs.to_add):
            payload = {
                "house_id": self.root_id,
                "move_in_date": item.move_in_date,
                "status": "active" if item.is_active else "inactive",
            }
            try:
                name = await self._participant_name(item.participant_id)
                await self.store.update("participants", payload, item.participant_id)
            except NDISError as exc:
                raise CommitError(spec.name, "add", exc) from exc
            self.id_map.record(item.temp_id, item.participant_id)
            remaining.to_add = [i for i in remaining.to_add if i.temp_id != item.temp_id]
            self._done(spec, "add")
            self._queue_activity("update", f'Assigned participant "{name or item.participant_id}" to house')

    # ── Driver ──────────────────────────────────────────────

    async def apply(self, form_data: dict[str, Any] | None) -> None:
        await self.apply_root(form_data)
        handlers = {
            "rows": self.commit_rows,
            "checklists": self.commit_checklists,
            "residency": self.commit_residency,
        }
        for spec in commit_order(self.spec.collections):
            cs = _change_set(self.pending, spec)
            if not cs.has_changes():
                continue
            log.debug("Committing %s (%d changes)", spec.name, cs.count())
            await handlers[spec.kind](spec, cs)


async def commit(
    store: StoreClient,
    storage: FileStorage,
    entity_type: str,
    entity_id: str,
    *,
    form_data: dict[str, Any] | None = None,
    pending: PendingChangesBase | None = None,
    user_name: str | None = None,
    transactional: bool | None = None,
) -> CommitResult:
    """Apply form edits and pending changes for one root entity."""
    spec = entity_spec(entity_type)
    if pending is None:
        pending = create_empty(entity_type)
    if transactional is None:
        transactional = settings.commit_transactional
    user_name = user_name or settings.default_user_name

    key = (entity_type, entity_id)
    if key in _in_flight:
        raise CommitInProgress(entity_type, entity_id)
    _in_flight.add(key)

    run = _Commit(store, storage, spec, entity_id, pending, user_name, transactional)
    log.info(
        "Saving %s %s: %d pending changes%s",
        entity_type, entity_id, pending.count(), " (transactional)" if transactional else "",
    )
    try:
        try:
            if transactional:
                async with store.transaction():
                    await run.apply(form_data)
            else:
                await run.apply(form_data)
        except CommitError as exc:
            log.error("Save of %s %s failed: %s", entity_type, entity_id, exc)
            if transactional:
                await run.discard_uploads()
                exc.remaining = pending.model_copy(deep=True)
            else:
                exc.remaining = run.remaining
                await run.flush_activities()
            raise

        await run.finish_removals()
        applied = dict(run.applied)
        logged = await run.flush_activities()
        entity = await store.get(spec.table, entity_id) or {}
    finally:
        _in_flight.discard(key)

    log.info("Saved %s %s: %d operations", entity_type, entity_id, sum(applied.values()))
    return CommitResult(
        entity_type=entity_type,
        entity=entity,
        pending=create_empty(entity_type),
        id_map=run.id_map.as_dict(),
        applied=applied,
        activities_logged=logged,
    )
