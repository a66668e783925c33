from fastapi import APIRouter, status
from typing import List

from medicare.dependencies import Chats, CurrentActor
from medicare.models import ChatCreate, ChatPublic, MessageCreate, MessagePublic

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get("", response_model=List[ChatPublic])
async def list_chats(actor: CurrentActor, chats: Chats):
    return await chats.list_chats(actor)


@router.post("", response_model=ChatPublic)
async def start_chat(data: ChatCreate, actor: CurrentActor, chats: Chats):
    return await chats.start_chat(actor, data.participant_id)


@router.get("/{chat_id}/messages", response_model=List[MessagePublic])
async def list_messages(chat_id: str, actor: CurrentActor, chats: Chats):
    return await chats.list_messages(chat_id, actor)


@router.post("/{chat_id}/messages", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def send_message(chat_id: str, data: MessageCreate, actor: CurrentActor, chats: Chats):
    return await chats.send_message(chat_id, actor, data.text)
