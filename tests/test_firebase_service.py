"""Tests for FirestoreStore helpers with a mocked Firestore client."""

from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from medicare.services.firebase_service import FirestoreStore, chat_key, rating_id, slot_lock_id


def snapshot(doc_id, **data):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = True
    doc.to_dict.return_value = dict(data)
    return doc


@pytest.fixture
def store():
    instance = FirestoreStore.__new__(FirestoreStore)
    instance.db = MagicMock()
    return instance


class TestDocumentIds:
    def test_slot_lock_id(self):
        assert slot_lock_id(("doc-1", "2025-01-06", "09:00")) == "doc-1_2025-01-06_0900"

    def test_rating_and_chat_ids_are_per_pair(self):
        assert rating_id("p", "d") == "p_d"
        assert chat_key("p", "d") == "p_d"


class TestQueries:
    async def test_user_appointments_merged_by_id(self, store):
        as_patient = [snapshot("a1", patient_id="u"), snapshot("a2", patient_id="u")]
        as_doctor = [snapshot("a2", patient_id="u"), snapshot("a3", doctor_id="u")]
        query = MagicMock()
        query.where.return_value = query
        query.stream.side_effect = [iter(as_patient), iter(as_doctor)]
        store.db.collection.return_value = query

        appointments = await store.list_user_appointments("u")
        assert sorted(a["id"] for a in appointments) == ["a1", "a2", "a3"]

    async def test_get_missing_user(self, store):
        missing = MagicMock()
        missing.exists = False
        store.db.collection.return_value.document.return_value.get.return_value = missing
        assert await store.get_user("ghost") is None


class TestAddRating:
    async def test_duplicate_returns_none(self, store):
        doc_ref = store.db.collection.return_value.document.return_value
        doc_ref.create.side_effect = AlreadyExists("exists")
        assert await store.add_rating({"patient_id": "p", "doctor_id": "d", "value": 5}) is None

    async def test_created(self, store):
        doc_ref = store.db.collection.return_value.document.return_value
        doc_ref.get.return_value = snapshot("p_d", patient_id="p", doctor_id="d", value=5)
        rating = await store.add_rating({"patient_id": "p", "doctor_id": "d", "value": 5})
        assert rating["id"] == "p_d"
        store.db.collection.return_value.document.assert_called_with("p_d")


def lock_held_by(appointment_id):
    lock = MagicMock()
    lock.exists = True
    lock.get.side_effect = {"appointment_id": appointment_id}.get
    return lock


class TestSlotLockTransactions:
    """Confirm, update and delete run their lock checks inside a transaction."""

    SLOT = ("doc-1", "2025-01-06", "10:00")

    @pytest.fixture(autouse=True)
    def run_transactions_inline(self, monkeypatch):
        monkeypatch.setattr(firestore, "transactional", lambda fn: fn)

    @pytest.fixture
    def refs(self, store):
        collections = {"appointments": MagicMock(), "confirmed_slots": MagicMock()}
        store.db.collection.side_effect = lambda name: collections[name]
        return {
            "appointment": collections["appointments"].document.return_value,
            "lock": collections["confirmed_slots"].document.return_value,
            "transaction": store.db.transaction.return_value,
        }

    async def test_confirm_claims_free_slot(self, store, refs):
        free = MagicMock()
        free.exists = False
        refs["lock"].get.return_value = free

        assert await store.confirm_appointment("a1", self.SLOT, {"status": "confirmed"}) is True
        lock_data = refs["transaction"].set.call_args.args[1]
        assert refs["transaction"].set.call_args.args[0] is refs["lock"]
        assert lock_data["appointment_id"] == "a1"
        update_ref, fields = refs["transaction"].update.call_args.args
        assert update_ref is refs["appointment"]
        assert fields["status"] == "confirmed"

    async def test_confirm_rejected_when_slot_held_by_another(self, store, refs):
        refs["lock"].get.return_value = lock_held_by("other")

        assert await store.confirm_appointment("a1", self.SLOT, {"status": "confirmed"}) is False
        refs["transaction"].set.assert_not_called()
        refs["transaction"].update.assert_not_called()

    async def test_update_releases_own_lock(self, store, refs):
        refs["lock"].get.return_value = lock_held_by("a1")
        refs["appointment"].get.return_value = snapshot("a1", status="completed")

        await store.update_appointment("a1", {"status": "completed"}, release_slot=self.SLOT)
        refs["transaction"].delete.assert_called_once_with(refs["lock"])

    async def test_delete_keeps_lock_held_by_another(self, store, refs):
        refs["lock"].get.return_value = lock_held_by("other")

        await store.delete_appointment("a1", release_slot=self.SLOT)
        refs["transaction"].delete.assert_called_once_with(refs["appointment"])

    async def test_delete_releases_own_lock(self, store, refs):
        refs["lock"].get.return_value = lock_held_by("a1")

        await store.delete_appointment("a1", release_slot=self.SLOT)
        deleted = [call.args[0] for call in refs["transaction"].delete.call_args_list]
        assert deleted == [refs["lock"], refs["appointment"]]

    async def test_delete_without_lock_skips_transaction(self, store, refs):
        await store.delete_appointment("a1")
        refs["appointment"].delete.assert_called_once_with()
        store.db.transaction.assert_not_called()
