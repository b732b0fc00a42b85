"""Building blocks of a pending-changes structure.

Each dependent collection of an editing session is buffered as a change set
with three buckets:

  - ``to_add``    new rows, keyed by a client-generated temporary id
  - ``to_update`` partial field changes keyed by persistent id
  - ``to_delete`` persistent ids, or ``FileDelete`` descriptors when a
                  storage object has to go with the row

A temporary id is never a valid delete target. The ``stage_*`` mutators keep
an id in at most one bucket: removing an unsaved row drops it from
``to_add`` instead of recording a delete, and updating an unsaved row folds
the fields into its pending add.
"""

from __future__ import annotations

import base64
import secrets
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TEMP_ID_PREFIX = "tmp_"


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{secrets.token_hex(8)}"


class PendingModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class PendingItem(PendingModel):
    """A row that only exists in the editing session so far."""

    temp_id: str = Field(default_factory=new_temp_id, alias="tempId")

    def to_row(self) -> dict[str, Any]:
        """Column values for the insert; the temporary id never reaches the store."""
        return self.model_dump(exclude={"temp_id"})


class PendingUpdate(PendingModel):
    """Partial changes to a persisted row. Only explicitly set fields are sent."""

    id: str

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class FileDelete(PendingModel):
    """Delete descriptor for a row backed by a storage object."""

    id: str
    file_path: str | None = Field(default=None, alias="filePath")
    file_name: str | None = Field(default=None, alias="fileName")


class FileContentMixin(BaseModel):
    """Raw file bytes; base64 in JSON."""

    content: bytes | None = None
    content_type: str | None = Field(default=None, alias="contentType")

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value)
        return value

    @field_serializer("content", when_used="json")
    def _encode_content(self, value: bytes | None) -> str | None:
        if value is None:
            return None
        return base64.b64encode(value).decode("ascii")


class PendingDocument(FileContentMixin, PendingItem):
    file_name: str = Field(alias="fileName")
    content: bytes

    def to_row(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_size": len(self.content),
            "file_type": self.content_type,
        }


AddT = TypeVar("AddT", bound=PendingItem)
UpdateT = TypeVar("UpdateT", bound=PendingUpdate)


def _merge(model: BaseModel, changes: dict[str, Any]) -> BaseModel:
    # Updates stay partial; adds are complete rows and keep their temp id.
    data = model.model_dump(exclude_unset=isinstance(model, PendingUpdate))
    data.update(changes)
    return type(model)(**data)


class ChangeSet(PendingModel, Generic[AddT, UpdateT]):
    to_add: list[AddT] = Field(default_factory=list, alias="toAdd")
    to_update: list[UpdateT] = Field(default_factory=list, alias="toUpdate")
    to_delete: list[str] = Field(default_factory=list, alias="toDelete")

    # ── Queries ─────────────────────────────────────────────

    def count(self) -> int:
        return len(self.to_add) + len(self.to_update) + len(self.to_delete)

    def has_changes(self) -> bool:
        return self.count() > 0

    def find_added(self, temp_id: str) -> AddT | None:
        for item in self.to_add:
            if item.temp_id == temp_id:
                return item
        return None

    def is_unsaved(self, item_id: str) -> bool:
        return self.find_added(item_id) is not None

    def deleted_ids(self) -> list[str]:
        return list(self.to_delete)

    # ── Guarded mutators ────────────────────────────────────

    def stage_add(self, item: AddT) -> str:
        """Buffer a new row; returns its temporary id."""
        if self.is_unsaved(item.temp_id):
            raise ValueError(f"temporary id {item.temp_id!r} is already staged")
        self.to_add.append(item)
        return item.temp_id

    def stage_update(self, update: UpdateT) -> None:
        """Buffer field changes. Unsaved rows absorb them into their pending add."""
        changes = update.changes()
        for i, item in enumerate(self.to_add):
            if item.temp_id == update.id:
                self.to_add[i] = _merge(item, changes)
                return
        if update.id in self.deleted_ids():
            raise ValueError(f"{update.id!r} is staged for deletion")
        for i, existing in enumerate(self.to_update):
            if existing.id == update.id:
                self.to_update[i] = _merge(existing, changes)
                return
        self.to_update.append(update)

    def stage_remove(self, item_id: str) -> bool:
        """Remove a row. Returns True when a delete against the store was recorded."""
        for i, item in enumerate(self.to_add):
            if item.temp_id == item_id:
                del self.to_add[i]
                return False
        self.to_update = [u for u in self.to_update if u.id != item_id]
        if item_id not in self.to_delete:
            self.to_delete.append(item_id)
        return True


class FileChangeSet(ChangeSet[AddT, UpdateT], Generic[AddT, UpdateT]):
    """Change set whose deletes may carry a storage object."""

    to_delete: list[FileDelete] = Field(default_factory=list, alias="toDelete")

    def deleted_ids(self) -> list[str]:
        return [d.id for d in self.to_delete]

    def stage_remove(self, item_id: str, file_path: str | None = None, file_name: str | None = None) -> bool:
        for i, item in enumerate(self.to_add):
            if item.temp_id == item_id:
                del self.to_add[i]
                return False
        self.to_update = [u for u in self.to_update if u.id != item_id]
        if item_id not in self.deleted_ids():
            self.to_delete.append(FileDelete(id=item_id, file_path=file_path, file_name=file_name))
        return True


class DocumentChangeSet(PendingModel):
    """Documents are only uploaded or removed, never edited in place."""

    to_add: list[PendingDocument] = Field(default_factory=list, alias="toAdd")
    to_delete: list[FileDelete] = Field(default_factory=list, alias="toDelete")

    def count(self) -> int:
        return len(self.to_add) + len(self.to_delete)

    def has_changes(self) -> bool:
        return self.count() > 0

    def find_added(self, temp_id: str) -> PendingDocument | None:
        for doc in self.to_add:
            if doc.temp_id == temp_id:
                return doc
        return None

    def is_unsaved(self, item_id: str) -> bool:
        return self.find_added(item_id) is not None

    def stage_add(self, doc: PendingDocument) -> str:
        if self.is_unsaved(doc.temp_id):
            raise ValueError(f"temporary id {doc.temp_id!r} is already staged")
        self.to_add.append(doc)
        return doc.temp_id

    def stage_remove(self, item_id: str, file_path: str | None = None, file_name: str | None = None) -> bool:
        for i, doc in enumerate(self.to_add):
            if doc.temp_id == item_id:
                del self.to_add[i]
                return False
        if file_path is None:
            raise ValueError("deleting a stored document needs its file path")
        if all(d.id != item_id for d in self.to_delete):
            self.to_delete.append(FileDelete(id=item_id, file_path=file_path, file_name=file_name))
        return True


class PendingChangesBase(PendingModel):
    """All change sets of one editing session."""

    def change_sets(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).model_fields}

    def collection_counts(self) -> dict[str, int]:
        return {name: cs.count() for name, cs in self.change_sets().items()}

    def has_changes(self) -> bool:
        return any(cs.has_changes() for cs in self.change_sets().values())

    def count(self) -> int:
        return sum(cs.count() for cs in self.change_sets().values())
