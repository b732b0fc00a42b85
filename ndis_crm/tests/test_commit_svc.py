"""Test commit reconciliation of pending changes against the store."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ndis_crm.errors import (
    CommitError,
    CommitInProgress,
    EntityNotFound,
    StoreError,
    TempIdUnresolved,
    ValidationFailed,
)
from ndis_crm.models.house import House
from ndis_crm.models.participant import Participant
from ndis_crm.models.staff import Staff
from ndis_crm.pending import HousePendingChanges, ParticipantPendingChanges, StaffPendingChanges
from ndis_crm.pending.base import PendingDocument
from ndis_crm.pending.house import (
    ChecklistItemUpdate,
    PendingChecklist,
    PendingChecklistItem,
    PendingForm,
    PendingFormAssignment,
    PendingResidency,
)
from ndis_crm.pending.participant import GoalUpdate, PendingGoal, PendingMedication
from ndis_crm.pending.staff import PendingTraining
from ndis_crm.services import activity_svc, commit_svc, house_svc
from ndis_crm.services.commit_svc import CollectionSpec, commit, commit_order
from ndis_crm.store import FileStorage, StoreClient


def fail_inserts_into(store: StoreClient, table: str) -> None:
    """Make every insert into ``table`` fail with a retryable error."""
    real_insert = store.insert

    async def insert(t, row):
        if t == table:
            raise StoreError("insert", t, TimeoutError("timed out"))
        return await real_insert(t, row)

    store.insert = insert


def restore_inserts(store: StoreClient) -> None:
    del store.insert


def fail_deletes_from(store: StoreClient, table: str) -> None:
    """Make every delete from ``table`` fail with a retryable error."""
    real_delete = store.delete

    async def delete(t, row_id):
        if t == table:
            raise StoreError("delete", t, TimeoutError("timed out"))
        return await real_delete(t, row_id)

    store.delete = delete


def restore_deletes(store: StoreClient) -> None:
    del store.delete


# ── Participant ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_goals_are_inserted_under_the_participant(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    pending = ParticipantPendingChanges()
    first = pending.goals.stage_add(PendingGoal(goal_type="Health", description="Walk daily"))
    second = pending.goals.stage_add(PendingGoal(goal_type="Social"))

    result = await commit(store, storage, "participant", pid, pending=pending, user_name="Alex")

    rows = await store.select("participant_goals", {"participant_id": pid}, order_by="goal_type")
    assert [r["goal_type"] for r in rows] == ["Health", "Social"]
    assert all("temp_id" not in r for r in rows)
    assert set(result.id_map) == {first, second}
    assert set(result.id_map.values()) == {r["id"] for r in rows}
    assert result.pending.count() == 0
    assert result.applied == {"goals.add": 2}

    activities = await activity_svc.list_activities(store.db, entity_id=pid)
    descriptions = {a.description for a in activities}
    assert descriptions == {'Added goal "Walk daily"', 'Added goal "Social"'}
    assert all(a.user_name == "Alex" and a.entity_name == "Jordan Lee" for a in activities)
    assert result.activities_logged == 2


@pytest.mark.asyncio
async def test_form_update_writes_only_changed_fields(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    result = await commit(
        store, storage, "participant", pid,
        form_data={"name": "Jordan Lee", "phone": "0400 000 000", "not_a_column": "x"},
    )
    assert result.entity["phone"] == "0400 000 000"
    assert result.applied == {"participant.update": 1}

    activities = await activity_svc.list_activities(store.db, entity_id=pid)
    assert len(activities) == 1
    assert activities[0].description == 'Updated phone number from "(empty)" to "0400 000 000"'
    assert activities[0].metadata_json == {"changes": {"phone": {"old": None, "new": "0400 000 000"}}}


@pytest.mark.asyncio
async def test_unchanged_form_writes_nothing(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    result = await commit(store, storage, "participant", pid, form_data={"name": "Jordan Lee", "phone": ""})
    assert result.applied == {}
    assert await activity_svc.list_activities(store.db, entity_id=pid) == []


@pytest.mark.asyncio
async def test_invalid_form_is_rejected_before_any_write(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    pending = ParticipantPendingChanges()
    pending.goals.stage_add(PendingGoal(goal_type="Health"))

    with pytest.raises(ValidationFailed) as excinfo:
        await commit(store, storage, "participant", pid, form_data={"email": "nope"}, pending=pending)
    assert "email" in excinfo.value.errors
    assert await store.select("participant_goals") == []
    assert not commit_svc.is_committing("participant", pid)


@pytest.mark.asyncio
async def test_missing_entity(store: StoreClient, storage: FileStorage):
    with pytest.raises(EntityNotFound):
        await commit(store, storage, "participant", "does-not-exist")


@pytest.mark.asyncio
async def test_updates_and_deletes_of_existing_rows(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    keep = await store.insert("participant_goals", {"participant_id": pid, "goal_type": "Health"})
    drop = await store.insert("participant_goals", {"participant_id": pid, "goal_type": "Work"})

    pending = ParticipantPendingChanges()
    pending.goals.stage_update(GoalUpdate(id=keep["id"], description="Swim"))
    pending.goals.stage_remove(drop["id"])

    result = await commit(store, storage, "participant", pid, pending=pending)

    assert (await store.get("participant_goals", keep["id"]))["description"] == "Swim"
    assert await store.get("participant_goals", drop["id"]) is None
    assert result.applied == {"goals.delete": 1, "goals.update": 1}

    descriptions = {a.description for a in await activity_svc.list_activities(store.db, entity_id=pid)}
    assert descriptions == {'Updated goal "Swim"', 'Deleted goal "Work"'}


@pytest.mark.asyncio
async def test_document_upload_and_delete(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    await storage.upload("participants", "participant-documents/old.pdf", b"old")
    old = await store.insert("participant_documents", {
        "participant_id": pid, "file_name": "old.pdf", "file_path": "participant-documents/old.pdf",
    })

    pending = ParticipantPendingChanges()
    pending.documents.stage_add(PendingDocument(file_name="plan.pdf", content=b"%PDF-1.4", content_type="application/pdf"))
    pending.documents.stage_remove(old["id"], file_path="participant-documents/old.pdf", file_name="old.pdf")

    await commit(store, storage, "participant", pid, pending=pending)

    assert not storage.exists("participants", "participant-documents/old.pdf")
    assert await store.get("participant_documents", old["id"]) is None

    docs = await store.select("participant_documents", {"participant_id": pid})
    assert len(docs) == 1
    doc = docs[0]
    assert doc["file_name"] == "plan.pdf"
    assert doc["file_size"] == 8
    assert doc["file_path"].startswith(f"participant-documents/{pid}-")
    assert await storage.read("participants", doc["file_path"]) == b"%PDF-1.4"

    descriptions = {a.description for a in await activity_svc.list_activities(store.db, entity_id=pid)}
    assert descriptions == {'Uploaded document "plan.pdf"', 'Deleted document "old.pdf"'}


@pytest.mark.asyncio
async def test_storage_object_is_removed_before_its_row(
    store: StoreClient, storage: FileStorage, participant: Participant, monkeypatch
):
    pid = participant.id
    await storage.upload("participants", "participant-documents/old.pdf", b"old")
    old = await store.insert("participant_documents", {
        "participant_id": pid, "file_name": "old.pdf", "file_path": "participant-documents/old.pdf",
    })
    calls: list[tuple[str, str]] = []
    real_remove, real_delete = storage.remove, store.delete

    async def remove(bucket, paths):
        calls.append(("remove", paths[0]))
        return await real_remove(bucket, paths)

    async def delete(table, row_id):
        calls.append(("delete", row_id))
        return await real_delete(table, row_id)

    monkeypatch.setattr(storage, "remove", remove)
    monkeypatch.setattr(store, "delete", delete)
    pending = ParticipantPendingChanges()
    pending.documents.stage_remove(old["id"], file_path="participant-documents/old.pdf", file_name="old.pdf")

    await commit(store, storage, "participant", pid, pending=pending, transactional=False)

    assert calls == [("remove", "participant-documents/old.pdf"), ("delete", old["id"])]


@pytest.mark.asyncio
async def test_failed_delete_stops_the_collection(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    first = await store.insert("participant_goals", {"participant_id": pid, "goal_type": "Health"})
    second = await store.insert("participant_goals", {"participant_id": pid, "goal_type": "Work"})
    pending = ParticipantPendingChanges()
    pending.goals.stage_remove(first["id"])
    pending.goals.stage_remove(second["id"])
    fail_deletes_from(store, "participant_goals")

    with pytest.raises(CommitError) as excinfo:
        await commit(store, storage, "participant", pid, pending=pending, transactional=False)

    exc = excinfo.value
    assert exc.collection == "goals"
    assert exc.operation == "delete"
    assert exc.retryable
    assert exc.remaining.goals.to_delete == [first["id"], second["id"]]
    assert await store.get("participant_goals", first["id"]) is not None
    assert await store.get("participant_goals", second["id"]) is not None
    assert await activity_svc.list_activities(store.db, entity_id=pid) == []

    restore_deletes(store)
    result = await commit(store, storage, "participant", pid, pending=exc.remaining)
    assert result.applied == {"goals.delete": 2}
    assert await store.select("participant_goals") == []


@pytest.mark.asyncio
async def test_failed_insert_removes_its_upload(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    pending = ParticipantPendingChanges()
    pending.documents.stage_add(PendingDocument(file_name="plan.pdf", content=b"data"))
    fail_inserts_into(store, "participant_documents")

    with pytest.raises(CommitError):
        await commit(store, storage, "participant", pid, pending=pending)

    bucket_dir = storage.root_dir / "participants"
    assert not bucket_dir.exists() or not any(p.is_file() for p in bucket_dir.rglob("*"))


@pytest.mark.asyncio
async def test_partial_failure_returns_what_is_left(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    pending = ParticipantPendingChanges()
    pending.goals.stage_add(PendingGoal(goal_type="Health"))
    med_temp = pending.medications.stage_add(PendingMedication(medication_id="med-1", dosage="5mg"))
    fail_inserts_into(store, "participant_medications")

    with pytest.raises(CommitError) as excinfo:
        await commit(store, storage, "participant", pid, pending=pending, transactional=False)

    exc = excinfo.value
    assert exc.collection == "medications"
    assert exc.operation == "add"
    assert exc.retryable
    remaining = exc.remaining
    assert remaining.goals.count() == 0
    assert [m.temp_id for m in remaining.medications.to_add] == [med_temp]
    assert pending.count() == 2
    assert len(await store.select("participant_goals", {"participant_id": pid})) == 1
    # Applied operations are still audited.
    assert len(await activity_svc.list_activities(store.db, entity_id=pid)) == 1

    restore_inserts(store)
    result = await commit(store, storage, "participant", pid, pending=remaining)
    assert result.applied == {"medications.add": 1}
    assert len(await store.select("participant_goals", {"participant_id": pid})) == 1
    assert len(await store.select("participant_medications", {"participant_id": pid})) == 1


@pytest.mark.asyncio
async def test_transactional_failure_applies_nothing(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    pending = ParticipantPendingChanges()
    pending.goals.stage_add(PendingGoal(goal_type="Health"))
    pending.documents.stage_add(PendingDocument(file_name="a.txt", content=b"a"))
    pending.medications.stage_add(PendingMedication(medication_id="med-1"))
    fail_inserts_into(store, "participant_medications")

    with pytest.raises(CommitError) as excinfo:
        await commit(store, storage, "participant", pid, pending=pending, transactional=True)

    assert excinfo.value.remaining.count() == 3
    assert excinfo.value.remaining == pending
    assert await store.select("participant_goals") == []
    assert await store.select("participant_documents") == []
    assert await activity_svc.list_activities(store.db, entity_id=pid) == []
    bucket_dir = storage.root_dir / "participants"
    assert not bucket_dir.exists() or not any(p.is_file() for p in bucket_dir.rglob("*"))


@pytest.mark.asyncio
async def test_concurrent_save_is_refused(
    store: StoreClient, storage: FileStorage, participant: Participant
):
    pid = participant.id
    commit_svc._in_flight.add(("participant", pid))
    try:
        with pytest.raises(CommitInProgress):
            await commit(store, storage, "participant", pid)
    finally:
        commit_svc._in_flight.discard(("participant", pid))


# ── Staff ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_training_certificate_upload(
    store: StoreClient, storage: FileStorage, staff_member: Staff
):
    sid = staff_member.id
    pending = StaffPendingChanges()
    pending.training.stage_add(PendingTraining(
        title="First Aid", category="Safety", file_name="fa.pdf", content=b"cert",
        date_completed=date(2025, 6, 1),
    ))
    pending.training.stage_add(PendingTraining(title="Manual Handling", category="Safety"))

    await commit(store, storage, "staff", sid, pending=pending)

    rows = {r["title"]: r for r in await store.select("staff_training", {"staff_id": sid})}
    assert rows["First Aid"]["file_path"].startswith("training/")
    assert storage.exists("staff-documents", rows["First Aid"]["file_path"])
    assert rows["First Aid"]["date_completed"] == date(2025, 6, 1)
    assert rows["Manual Handling"]["file_path"] is None


@pytest.mark.asyncio
async def test_training_delete_removes_certificate(
    store: StoreClient, storage: FileStorage, staff_member: Staff
):
    sid = staff_member.id
    await storage.upload("staff-documents", "training/fa.pdf", b"cert")
    row = await store.insert("staff_training", {
        "staff_id": sid, "title": "First Aid", "category": "Safety",
        "file_name": "fa.pdf", "file_path": "training/fa.pdf",
    })
    pending = StaffPendingChanges()
    pending.training.stage_remove(row["id"], file_path="training/fa.pdf", file_name="fa.pdf")

    await commit(store, storage, "staff", sid, pending=pending)

    assert await store.get("staff_training", row["id"]) is None
    assert not storage.exists("staff-documents", "training/fa.pdf")


# ── House ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_checklist_items_reference_the_persisted_checklist(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    pending = HousePendingChanges()
    pending.checklists.stage_add(PendingChecklist(
        temp_id="T1", name="Weekly clean", frequency="weekly",
        items=[PendingChecklistItem(title="Mop floors")],
    ))
    pending.checklists.checklist_items.stage_add(
        PendingChecklistItem(checklist_id="T1", title="Empty bins", sort_order=2)
    )

    result = await commit(store, storage, "house", hid, pending=pending)

    checklists = await store.select("house_checklists", {"house_id": hid})
    assert len(checklists) == 1
    checklist_id = checklists[0]["id"]
    assert result.id_map["T1"] == checklist_id

    items = await store.select("house_checklist_items", order_by="title")
    assert [i["title"] for i in items] == ["Empty bins", "Mop floors"]
    assert all(i["checklist_id"] == checklist_id for i in items)
    assert result.applied == {"checklists.add": 1, "checklist_items.add": 2}
    assert result.pending.count() == 0


@pytest.mark.asyncio
async def test_failed_assignment_keeps_rewritten_form_reference(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    pending = HousePendingChanges()
    form_temp = pending.forms.stage_add(PendingForm(name="Fire drill", form_type="safety", frequency="monthly"))
    pending.form_assignments.stage_add(PendingFormAssignment(form_id=form_temp, staff_id="s-1"))
    fail_inserts_into(store, "house_form_assignments")

    with pytest.raises(CommitError) as excinfo:
        await commit(store, storage, "house", hid, pending=pending)

    forms = await store.select("house_forms", {"house_id": hid})
    assert len(forms) == 1
    remaining = excinfo.value.remaining
    assert remaining.forms.count() == 0
    assert remaining.form_assignments.to_add[0].form_id == forms[0]["id"]

    restore_inserts(store)
    await commit(store, storage, "house", hid, pending=remaining)
    assignments = await store.select("house_form_assignments", {"house_id": hid})
    assert [a["form_id"] for a in assignments] == [forms[0]["id"]]
    assert len(await store.select("house_forms", {"house_id": hid})) == 1


@pytest.mark.asyncio
async def test_unresolvable_temp_reference_is_not_retryable(
    store: StoreClient, storage: FileStorage, house: House
):
    pending = HousePendingChanges()
    pending.form_assignments.stage_add(PendingFormAssignment(form_id="tmp_gone"))

    with pytest.raises(CommitError) as excinfo:
        await commit(store, storage, "house", house.id, pending=pending)

    assert isinstance(excinfo.value.cause, TempIdUnresolved)
    assert not excinfo.value.retryable
    assert excinfo.value.parsed.title == "Unsaved reference"
    assert await store.select("house_form_assignments") == []


@pytest.mark.asyncio
async def test_deleting_a_checklist_deletes_its_items(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    checklist = await store.insert("house_checklists", {"house_id": hid, "name": "Night", "frequency": "daily"})
    item = await store.insert("house_checklist_items", {"checklist_id": checklist["id"], "title": "Smoke alarms"})
    other = await store.insert("house_checklists", {"house_id": hid, "name": "Weekly", "frequency": "weekly"})
    kept = await store.insert("house_checklist_items", {"checklist_id": other["id"], "title": "Mop floors"})

    pending = HousePendingChanges()
    pending.checklists.checklist_items.stage_update(ChecklistItemUpdate(id=item["id"], title="Smoke alarm test"))
    pending.checklists.stage_remove(checklist["id"])

    result = await commit(store, storage, "house", hid, pending=pending)

    assert await store.get("house_checklists", checklist["id"]) is None
    assert await store.get("house_checklist_items", item["id"]) is None
    assert await store.get("house_checklist_items", kept["id"]) is not None
    assert result.applied == {"checklists.delete": 1}
    assert result.pending.count() == 0


@pytest.mark.asyncio
async def test_deleting_a_form_deletes_its_assignments(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    form = await store.insert("house_forms", {
        "house_id": hid, "name": "Fire drill", "form_type": "safety", "frequency": "monthly",
    })
    assignment = await store.insert("house_form_assignments", {"house_id": hid, "form_id": form["id"]})

    pending = HousePendingChanges()
    assert pending.stage_remove_form(form["id"])
    await commit(store, storage, "house", hid, pending=pending)

    assert await store.get("house_forms", form["id"]) is None
    assert await store.get("house_form_assignments", assignment["id"]) is None
    detail = await house_svc.get_house_detail(store.db, hid, storage)
    assert detail["form_assignments"] == []


@pytest.mark.asyncio
async def test_numeric_text_in_house_form(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    result = await commit(store, storage, "house", hid, form_data={"capacity": "6"})
    assert result.entity["capacity"] == 6

    with pytest.raises(ValidationFailed) as excinfo:
        await commit(store, storage, "house", hid, form_data={"capacity": "abc"})
    assert excinfo.value.errors == {"capacity": "Capacity must be a number"}
    assert (await store.get("houses", hid))["capacity"] == 6


@pytest.mark.asyncio
async def test_residency_moves_participant_in_and_out(
    store: StoreClient, storage: FileStorage, house: House, participant: Participant
):
    hid, pid = house.id, participant.id
    pending = HousePendingChanges()
    pending.participants.stage_add(PendingResidency(participant_id=pid, move_in_date=date(2026, 1, 5)))
    await commit(store, storage, "house", hid, pending=pending)

    row = await store.get("participants", pid)
    assert row["house_id"] == hid
    assert row["move_in_date"] == date(2026, 1, 5)
    assert row["status"] == "active"

    pending = HousePendingChanges()
    pending.participants.stage_remove(pid)
    await commit(store, storage, "house", hid, pending=pending)

    row = await store.get("participants", pid)
    assert row["house_id"] is None
    assert row["status"] == "inactive"

    descriptions = {a.description for a in await activity_svc.list_activities(store.db, entity_id=hid)}
    assert descriptions == {
        'Assigned participant "Jordan Lee" to house',
        'Removed participant "Jordan Lee" from house',
    }


@pytest.mark.asyncio
async def test_house_documents_record_uploader(
    store: StoreClient, storage: FileStorage, house: House
):
    hid = house.id
    pending = HousePendingChanges()
    pending.documents.stage_add(PendingDocument(file_name="lease.pdf", content=b"lease"))
    await commit(store, storage, "house", hid, pending=pending, user_name="Priya")

    files = await store.select("house_files", {"house_id": hid})
    assert files[0]["uploaded_by"] == "Priya"
    assert files[0]["file_path"].startswith("documents/")
    assert storage.exists("house-documents", files[0]["file_path"])


# ── Ordering ────────────────────────────────────────────────


def test_parents_commit_before_their_references():
    names = [c.name for c in commit_order(commit_svc.HOUSE.collections)]
    assert names.index("checklists") < names.index("checklist_items")
    assert names.index("forms") < names.index("form_assignments")


def test_circular_references_are_rejected():
    a = CollectionSpec("a", "t_a", "a", refs={"b_id": "b"})
    b = CollectionSpec("b", "t_b", "b", refs={"a_id": "a"})
    with pytest.raises(ValueError):
        commit_order((a, b))


def test_unknown_entity_type():
    with pytest.raises(ValueError):
        commit_svc.entity_spec("vehicle")


@pytest.mark.asyncio
async def test_empty_save_is_a_no_op(store: StoreClient, storage: FileStorage, participant: Participant, db: AsyncSession):
    result = await commit(store, storage, "participant", participant.id)
    assert result.operation_count == 0
    assert result.entity["name"] == "Jordan Lee"
