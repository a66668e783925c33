import logging
from typing import Dict, Any, List

from medicare.errors import AuthorizationError, NotFoundError, ValidationError
from medicare.models import Actor, Role
from medicare.services.notifier import chat_channel, notify, user_channel

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class ChatService:
    """Direct conversations between a patient and a doctor"""

    def __init__(self, store, notifier):
        self.store = store
        self.notifier = notifier

    async def _get_for_participant(self, chat_id: str, actor: Actor) -> Dict[str, Any]:
        chat = await self.store.get_chat(chat_id)
        if not chat:
            raise NotFoundError("Chat not found")
        if actor.id not in chat["participants"]:
            raise AuthorizationError("Not a participant of this chat")
        return chat

    async def start_chat(self, actor: Actor, participant_id: str) -> Dict[str, Any]:
        """Open the patient-doctor conversation, or return the existing one"""
        other = await self.store.get_user(participant_id)
        if not other:
            raise NotFoundError("User not found")

        roles = {actor.role.value, other.get("role")}
        if roles != {Role.PATIENT.value, Role.DOCTOR.value}:
            raise AuthorizationError("Chats are between a patient and a doctor")

        if actor.role == Role.PATIENT:
            patient_id, doctor_id = actor.id, participant_id
        else:
            patient_id, doctor_id = participant_id, actor.id
        return await self.store.get_or_create_chat(patient_id, doctor_id)

    async def list_chats(self, actor: Actor) -> List[Dict[str, Any]]:
        chats = await self.store.list_user_chats(actor.id)
        return sorted(chats, key=lambda c: c.get("updated_at") or c.get("created_at"), reverse=True)

    async def send_message(self, chat_id: str, actor: Actor, text: str) -> Dict[str, Any]:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message too long (max {MAX_MESSAGE_LENGTH} characters)")

        chat = await self._get_for_participant(chat_id, actor)
        message = await self.store.add_message(chat_id, {"sender_id": actor.id, "text": text})

        await notify(self.notifier, chat_channel(chat_id), "new_message", message)
        for participant in chat["participants"]:
            if participant != actor.id:
                await notify(self.notifier, user_channel(participant), "new_message", message)
        return message

    async def list_messages(self, chat_id: str, actor: Actor) -> List[Dict[str, Any]]:
        await self._get_for_participant(chat_id, actor)
        return await self.store.list_messages(chat_id)
