from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ChatCreate(BaseModel):
    """Open (or reopen) a conversation with another user"""
    participant_id: str


class MessageCreate(BaseModel):
    text: str


class ChatPublic(BaseModel):
    id: str
    participants: List[str]
    last_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessagePublic(BaseModel):
    id: str
    chat_id: str
    sender_id: str
    text: str
    created_at: Optional[datetime] = None
