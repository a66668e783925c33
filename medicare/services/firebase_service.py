import logging
import os
import uuid
import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1 import FieldFilter
from typing import Optional, Dict, Any, List, Tuple

from medicare.config import settings

logger = logging.getLogger(__name__)

# (doctor_id, date, time) of a confirmed booking
Slot = Tuple[str, str, str]


def slot_lock_id(slot: Slot) -> str:
    """Document id of the lock that keeps a confirmed slot unique"""
    doctor_id, appointment_date, appointment_time = slot
    return f"{doctor_id}_{appointment_date}_{appointment_time.replace(':', '')}"


def rating_id(patient_id: str, doctor_id: str) -> str:
    return f"{patient_id}_{doctor_id}"


def chat_key(patient_id: str, doctor_id: str) -> str:
    return f"{patient_id}_{doctor_id}"


class FirestoreStore:
    """Service layer for Firebase Firestore operations"""

    def __init__(self, project_id: Optional[str] = None, database_id: Optional[str] = None):
        """Initialize Firebase Admin SDK (only once per process)"""
        project_id = project_id or settings.FIREBASE_PROJECT_ID
        database_id = database_id or settings.FIREBASE_DATABASE_ID

        if not firebase_admin._apps:
            cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
            if cred_path and os.path.exists(cred_path):
                logger.info("Firebase init: using service account file %s", cred_path)
                cred = credentials.Certificate(cred_path)
            else:
                logger.info("Firebase init: using application default credentials")
                cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"projectId": project_id})

        self.db = firestore.client(database_id=database_id)
        logger.info("Connected to Firestore project %s, database %s", self.db.project, database_id)

    @staticmethod
    def _to_dict(doc) -> Dict[str, Any]:
        data = doc.to_dict()
        data["id"] = doc.id
        return data

    def _query(self, collection: str, **filters: Any):
        query = self.db.collection(collection)
        for field, value in filters.items():
            query = query.where(filter=FieldFilter(field, "==", value))
        return query

    async def ping(self) -> bool:
        """Cheap round trip used by the health check"""
        list(self.db.collection("users").limit(1).stream())
        return True

    # ==================== USER OPERATIONS ====================

    async def save_user(self, user_id: str, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create or merge a user profile"""
        user_data = dict(user_data)
        user_data.pop("id", None)
        user_data["updated_at"] = firestore.SERVER_TIMESTAMP
        ref = self.db.collection("users").document(user_id)
        if not ref.get().exists:
            user_data["created_at"] = firestore.SERVER_TIMESTAMP
        ref.set(user_data, merge=True)
        return await self.get_user(user_id)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection("users").document(user_id).get()
        if doc.exists:
            return self._to_dict(doc)
        return None

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        docs = self._query("users", email=email).limit(1).stream()
        for doc in docs:
            return self._to_dict(doc)
        return None

    async def list_users_by_role(self, role: str) -> List[Dict[str, Any]]:
        return [self._to_dict(doc) for doc in self._query("users", role=role).stream()]

    # ==================== AVAILABILITY OPERATIONS ====================

    async def add_availability(self, window_data: Dict[str, Any]) -> Dict[str, Any]:
        window_data = dict(window_data)
        window_data["created_at"] = firestore.SERVER_TIMESTAMP
        window_data["updated_at"] = firestore.SERVER_TIMESTAMP
        doc_ref = self.db.collection("availabilities").document()
        doc_ref.set(window_data)
        return await self.get_availability(doc_ref.id)

    async def get_availability(self, window_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection("availabilities").document(window_id).get()
        if doc.exists:
            return self._to_dict(doc)
        return None

    async def list_availabilities(
        self,
        doctor_id: Optional[str] = None,
        day: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Windows of one doctor (optionally one weekday), or all windows"""
        filters = {}
        if doctor_id:
            filters["doctor_id"] = doctor_id
        if day:
            filters["day"] = day
        return [self._to_dict(doc) for doc in self._query("availabilities", **filters).stream()]

    async def update_availability(self, window_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields = dict(fields)
        fields["updated_at"] = firestore.SERVER_TIMESTAMP
        self.db.collection("availabilities").document(window_id).update(fields)
        return await self.get_availability(window_id)

    async def delete_availability(self, window_id: str) -> None:
        self.db.collection("availabilities").document(window_id).delete()

    # ==================== APPOINTMENT OPERATIONS ====================

    async def add_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        """Save appointment to Firestore, return it with its ID"""
        appointment_data = dict(appointment_data)
        appointment_data["created_at"] = firestore.SERVER_TIMESTAMP
        appointment_data["updated_at"] = firestore.SERVER_TIMESTAMP

        doc_ref = self.db.collection("appointments").document()
        doc_ref.set(appointment_data)
        return await self.get_appointment(doc_ref.id)

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection("appointments").document(appointment_id).get()
        if doc.exists:
            return self._to_dict(doc)
        return None

    async def find_appointments(self, **filters: Any) -> List[Dict[str, Any]]:
        """Appointments matching every equality filter"""
        return [self._to_dict(doc) for doc in self._query("appointments", **filters).stream()]

    async def list_user_appointments(self, user_id: str) -> List[Dict[str, Any]]:
        """Appointments where the user is either the patient or the doctor"""
        appointments = {}
        for field in ("patient_id", "doctor_id"):
            for doc in self._query("appointments", **{field: user_id}).stream():
                appointments[doc.id] = self._to_dict(doc)
        return list(appointments.values())

    async def update_appointment(
        self,
        appointment_id: str,
        fields: Dict[str, Any],
        release_slot: Optional[Slot] = None
    ) -> Dict[str, Any]:
        """Write fields, dropping the slot lock this appointment held if asked"""
        fields = dict(fields)
        fields["updated_at"] = firestore.SERVER_TIMESTAMP
        appointment_ref = self.db.collection("appointments").document(appointment_id)

        if release_slot is None:
            appointment_ref.update(fields)
        else:
            lock_ref = self.db.collection("confirmed_slots").document(slot_lock_id(release_slot))

            @firestore.transactional
            def _update(transaction):
                lock = lock_ref.get(transaction=transaction)
                if lock.exists and lock.get("appointment_id") == appointment_id:
                    transaction.delete(lock_ref)
                transaction.update(appointment_ref, fields)

            _update(self.db.transaction())

        return await self.get_appointment(appointment_id)

    async def confirm_appointment(
        self,
        appointment_id: str,
        slot: Slot,
        fields: Dict[str, Any]
    ) -> bool:
        """
        Claim the slot lock and write the confirmed fields in one transaction.

        Returns:
            False if another appointment already holds the slot
        """
        fields = dict(fields)
        fields["updated_at"] = firestore.SERVER_TIMESTAMP
        appointment_ref = self.db.collection("appointments").document(appointment_id)
        lock_ref = self.db.collection("confirmed_slots").document(slot_lock_id(slot))

        @firestore.transactional
        def _confirm(transaction) -> bool:
            lock = lock_ref.get(transaction=transaction)
            if lock.exists and lock.get("appointment_id") != appointment_id:
                return False
            transaction.set(lock_ref, {
                "appointment_id": appointment_id,
                "doctor_id": slot[0],
                "date": slot[1],
                "time": slot[2],
                "created_at": firestore.SERVER_TIMESTAMP,
            })
            transaction.update(appointment_ref, fields)
            return True

        return _confirm(self.db.transaction())

    async def delete_appointment(self, appointment_id: str, release_slot: Optional[Slot] = None) -> None:
        """Delete the appointment and, if asked, the slot lock it holds"""
        appointment_ref = self.db.collection("appointments").document(appointment_id)
        if release_slot is None:
            appointment_ref.delete()
            return

        lock_ref = self.db.collection("confirmed_slots").document(slot_lock_id(release_slot))

        @firestore.transactional
        def _delete(transaction):
            lock = lock_ref.get(transaction=transaction)
            if lock.exists and lock.get("appointment_id") == appointment_id:
                transaction.delete(lock_ref)
            transaction.delete(appointment_ref)

        _delete(self.db.transaction())

    # ==================== RATING OPERATIONS ====================

    async def add_rating(self, rating_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create the rating for a (patient, doctor) pair.

        Returns:
            None if the pair has already rated
        """
        rating_data = dict(rating_data)
        rating_data["created_at"] = firestore.SERVER_TIMESTAMP
        doc_ref = self.db.collection("ratings").document(
            rating_id(rating_data["patient_id"], rating_data["doctor_id"])
        )
        try:
            doc_ref.create(rating_data)
        except AlreadyExists:
            return None
        return self._to_dict(doc_ref.get())

    async def get_rating(self, patient_id: str, doctor_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection("ratings").document(rating_id(patient_id, doctor_id)).get()
        if doc.exists:
            return self._to_dict(doc)
        return None

    async def list_ratings(self, doctor_id: str) -> List[Dict[str, Any]]:
        return [self._to_dict(doc) for doc in self._query("ratings", doctor_id=doctor_id).stream()]

    # ==================== CHAT OPERATIONS ====================

    async def get_or_create_chat(self, patient_id: str, doctor_id: str) -> Dict[str, Any]:
        doc_ref = self.db.collection("chats").document(chat_key(patient_id, doctor_id))
        try:
            doc_ref.create({
                "participants": [patient_id, doctor_id],
                "last_message": None,
                "created_at": firestore.SERVER_TIMESTAMP,
                "updated_at": firestore.SERVER_TIMESTAMP,
            })
        except AlreadyExists:
            pass
        return self._to_dict(doc_ref.get())

    async def get_chat(self, chat_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection("chats").document(chat_id).get()
        if doc.exists:
            return self._to_dict(doc)
        return None

    async def list_user_chats(self, user_id: str) -> List[Dict[str, Any]]:
        query = self.db.collection("chats").where(
            filter=FieldFilter("participants", "array_contains", user_id)
        )
        return [self._to_dict(doc) for doc in query.stream()]

    async def add_message(self, chat_id: str, message_data: Dict[str, Any]) -> Dict[str, Any]:
        chat_ref = self.db.collection("chats").document(chat_id)
        message_ref = chat_ref.collection("messages").document(uuid.uuid4().hex)
        message_data = dict(message_data)
        message_data["chat_id"] = chat_id
        message_data["created_at"] = firestore.SERVER_TIMESTAMP

        batch = self.db.batch()
        batch.set(message_ref, message_data)
        batch.update(chat_ref, {
            "last_message": message_data["text"],
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        batch.commit()
        return self._to_dict(message_ref.get())

    async def list_messages(self, chat_id: str) -> List[Dict[str, Any]]:
        docs = self.db.collection("chats").document(chat_id).collection("messages").order_by(
            "created_at"
        ).stream()
        return [self._to_dict(doc) for doc in docs]
