"""
In-process document store with the same async interface as FirestoreStore.
Used for local runs (STORAGE_BACKEND=memory) and the test suite.
"""
import asyncio
import copy
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from medicare.services.firebase_service import Slot, slot_lock_id, rating_id, chat_key


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """Dict-backed collections keyed by document id"""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            "users": {},
            "availabilities": {},
            "appointments": {},
            "confirmed_slots": {},
            "ratings": {},
            "chats": {},
            "messages": {},
        }
        self._lock = asyncio.Lock()

    def _get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self.collections[collection].get(doc_id)
        if data is None:
            return None
        result = copy.deepcopy(data)
        result["id"] = doc_id
        return result

    def _insert(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        doc_id = doc_id or uuid.uuid4().hex
        data = copy.deepcopy(data)
        data.pop("id", None)
        data.setdefault("created_at", _now())
        self.collections[collection][doc_id] = data
        return self._get(collection, doc_id)

    def _where(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        return [
            self._get(collection, doc_id)
            for doc_id, data in self.collections[collection].items()
            if all(data.get(field) == value for field, value in filters.items())
        ]

    async def ping(self) -> bool:
        return True

    # ==================== USER OPERATIONS ====================

    async def save_user(self, user_id: str, user_data: Dict[str, Any]) -> Dict[str, Any]:
        existing = self.collections["users"].get(user_id)
        data = copy.deepcopy(user_data)
        data.pop("id", None)
        data["updated_at"] = _now()
        if existing is None:
            data.setdefault("created_at", _now())
            self.collections["users"][user_id] = data
        else:
            existing.update(data)
        return self._get("users", user_id)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get("users", user_id)

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        matches = self._where("users", email=email)
        return matches[0] if matches else None

    async def list_users_by_role(self, role: str) -> List[Dict[str, Any]]:
        return self._where("users", role=role)

    # ==================== AVAILABILITY OPERATIONS ====================

    async def add_availability(self, window_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("availabilities", dict(window_data, updated_at=_now()))

    async def get_availability(self, window_id: str) -> Optional[Dict[str, Any]]:
        return self._get("availabilities", window_id)

    async def list_availabilities(
        self,
        doctor_id: Optional[str] = None,
        day: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        filters = {}
        if doctor_id:
            filters["doctor_id"] = doctor_id
        if day:
            filters["day"] = day
        return self._where("availabilities", **filters)

    async def update_availability(self, window_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self.collections["availabilities"][window_id].update(copy.deepcopy(fields), updated_at=_now())
        return self._get("availabilities", window_id)

    async def delete_availability(self, window_id: str) -> None:
        self.collections["availabilities"].pop(window_id, None)

    # ==================== APPOINTMENT OPERATIONS ====================

    async def add_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("appointments", dict(appointment_data, updated_at=_now()))

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        return self._get("appointments", appointment_id)

    async def find_appointments(self, **filters: Any) -> List[Dict[str, Any]]:
        return self._where("appointments", **filters)

    async def list_user_appointments(self, user_id: str) -> List[Dict[str, Any]]:
        return [
            appointment for appointment in self._where("appointments")
            if user_id in (appointment.get("patient_id"), appointment.get("doctor_id"))
        ]

    def _release(self, slot: Slot, appointment_id: str) -> None:
        """Drop the slot lock, but only while this appointment holds it"""
        key = slot_lock_id(slot)
        lock = self.collections["confirmed_slots"].get(key)
        if lock and lock["appointment_id"] == appointment_id:
            del self.collections["confirmed_slots"][key]

    async def update_appointment(
        self,
        appointment_id: str,
        fields: Dict[str, Any],
        release_slot: Optional[Slot] = None
    ) -> Dict[str, Any]:
        async with self._lock:
            if release_slot is not None:
                self._release(release_slot, appointment_id)
            self.collections["appointments"][appointment_id].update(copy.deepcopy(fields), updated_at=_now())
        return self._get("appointments", appointment_id)

    async def confirm_appointment(
        self,
        appointment_id: str,
        slot: Slot,
        fields: Dict[str, Any]
    ) -> bool:
        async with self._lock:
            key = slot_lock_id(slot)
            lock = self.collections["confirmed_slots"].get(key)
            if lock and lock["appointment_id"] != appointment_id:
                return False
            self.collections["confirmed_slots"][key] = {
                "appointment_id": appointment_id,
                "doctor_id": slot[0],
                "date": slot[1],
                "time": slot[2],
                "created_at": _now(),
            }
            self.collections["appointments"][appointment_id].update(copy.deepcopy(fields), updated_at=_now())
            return True

    async def delete_appointment(self, appointment_id: str, release_slot: Optional[Slot] = None) -> None:
        async with self._lock:
            if release_slot is not None:
                self._release(release_slot, appointment_id)
            self.collections["appointments"].pop(appointment_id, None)

    # ==================== RATING OPERATIONS ====================

    async def add_rating(self, rating_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        key = rating_id(rating_data["patient_id"], rating_data["doctor_id"])
        async with self._lock:
            if key in self.collections["ratings"]:
                return None
            return self._insert("ratings", rating_data, doc_id=key)

    async def get_rating(self, patient_id: str, doctor_id: str) -> Optional[Dict[str, Any]]:
        return self._get("ratings", rating_id(patient_id, doctor_id))

    async def list_ratings(self, doctor_id: str) -> List[Dict[str, Any]]:
        return self._where("ratings", doctor_id=doctor_id)

    # ==================== CHAT OPERATIONS ====================

    async def get_or_create_chat(self, patient_id: str, doctor_id: str) -> Dict[str, Any]:
        key = chat_key(patient_id, doctor_id)
        if key not in self.collections["chats"]:
            self._insert("chats", {
                "participants": [patient_id, doctor_id],
                "last_message": None,
                "updated_at": _now(),
            }, doc_id=key)
        return self._get("chats", key)

    async def get_chat(self, chat_id: str) -> Optional[Dict[str, Any]]:
        return self._get("chats", chat_id)

    async def list_user_chats(self, user_id: str) -> List[Dict[str, Any]]:
        return [chat for chat in self._where("chats") if user_id in chat["participants"]]

    async def add_message(self, chat_id: str, message_data: Dict[str, Any]) -> Dict[str, Any]:
        message = self._insert("messages", dict(message_data, chat_id=chat_id))
        self.collections["chats"][chat_id].update(last_message=message["text"], updated_at=_now())
        return message

    async def list_messages(self, chat_id: str) -> List[Dict[str, Any]]:
        messages = self._where("messages", chat_id=chat_id)
        return sorted(messages, key=lambda m: m["created_at"])
