"""Editing sessions - one root entity, its form edits and its pending changes."""

from __future__ import annotations

import copy
import logging
from typing import Any

from .errors import CommitError, CommitInProgress, EntityNotFound
from .pending import PendingChangesBase, count_pending_changes, create_empty
from .services import commit_svc
from .services.commit_svc import CommitResult, entity_spec
from .services.dirty_svc import DirtyState, compute_dirty
from .store import FileStorage, StoreClient

log = logging.getLogger(__name__)


class EditSession:
    """Owns the pending-changes structure of a single editing session.

    A session is never shared; ``save`` refuses to run twice at once.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        original_data: dict[str, Any],
        form_data: dict[str, Any] | None = None,
        pending: PendingChangesBase | None = None,
    ):
        entity_spec(entity_type)
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.original_data = copy.deepcopy(original_data)
        self.form_data = copy.deepcopy(form_data if form_data is not None else original_data)
        self.pending = pending if pending is not None else create_empty(entity_type)
        self.saving = False
        self.last_error: CommitError | None = None

    def set_field(self, field: str, value: Any) -> None:
        self.form_data[field] = value

    def update_fields(self, **fields: Any) -> None:
        self.form_data.update(fields)

    @property
    def dirty(self) -> DirtyState:
        return compute_dirty(self.form_data, self.original_data, self.pending)

    @property
    def is_dirty(self) -> bool:
        return self.dirty.is_dirty

    @property
    def pending_count(self) -> int:
        return count_pending_changes(self.pending)

    def reset(self) -> None:
        """Discard every unsaved edit."""
        self.form_data = copy.deepcopy(self.original_data)
        self.pending = create_empty(self.entity_type)

    async def save(
        self,
        store: StoreClient,
        storage: FileStorage,
        user_name: str | None = None,
        *,
        transactional: bool | None = None,
    ) -> CommitResult:
        if self.saving:
            raise CommitInProgress(self.entity_type, self.entity_id)
        self.saving = True
        try:
            result = await commit_svc.commit(
                store,
                storage,
                self.entity_type,
                self.entity_id,
                form_data=self.form_data if self.dirty.form_changed else None,
                pending=self.pending,
                user_name=user_name,
                transactional=transactional,
            )
        except CommitError as exc:
            self.last_error = exc
            if exc.remaining is not None:
                self.pending = exc.remaining
            raise
        finally:
            self.saving = False

        self.last_error = None
        self.pending = result.pending
        self.original_data = dict(result.entity)
        self.form_data = copy.deepcopy(self.original_data)
        return result


async def load_session(store: StoreClient, entity_type: str, entity_id: str) -> EditSession:
    spec = entity_spec(entity_type)
    row = await store.get(spec.table, entity_id)
    if row is None:
        raise EntityNotFound(entity_type, entity_id)
    return EditSession(entity_type, entity_id, row)


async def save_entity(
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
    """One-shot save: load the entity, apply the edits, commit."""
    session = await load_session(store, entity_type, entity_id)
    if form_data:
        session.update_fields(**form_data)
    if pending is not None:
        session.pending = pending
    log.debug("Saving %s %s (%d pending changes)", entity_type, entity_id, session.pending_count)
    return await session.save(store, storage, user_name, transactional=transactional)
