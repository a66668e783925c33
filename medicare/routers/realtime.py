"""
WebSocket endpoint for live dashboard, profile and chat events
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from typing import Optional

from medicare.auth.middleware import resolve_actor
from medicare.dependencies import get_auth_service, get_notifier, get_store
from medicare.services.notifier import chat_channel, user_channel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = None,
    store=Depends(get_store),
    notifier=Depends(get_notifier),
    auth_service=Depends(get_auth_service),
):
    """
    Authenticate with ``?token=<Firebase ID token>`` and receive events on
    the caller's own channel, their chats and the public channel.

    Clients may send ``{"action": "join_chat", "chat_id": ...}`` to follow a
    conversation opened after connecting.
    """
    try:
        actor = await resolve_actor(store, auth_service, token=token)
    except HTTPException:
        actor = None
    if actor is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    chats = await store.list_user_chats(actor.id)
    channels = [user_channel(actor.id)] + [chat_channel(chat["id"]) for chat in chats]
    await notifier.connect(websocket, channels)
    logger.info("WebSocket connected for %s", actor.id)

    try:
        while True:
            message = await websocket.receive_json()
            if message.get("action") != "join_chat":
                continue
            chat = await store.get_chat(message.get("chat_id") or "")
            if chat and actor.id in chat["participants"]:
                notifier.join(websocket, chat_channel(chat["id"]))
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected for %s", actor.id)
    finally:
        notifier.disconnect(websocket)
