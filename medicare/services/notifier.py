"""
Real-time notification fan-out.

Events are published to channel keys: ``user_<id>`` for a single user,
``chat_<id>`` for a conversation and ``public`` for everyone connected.
Delivery is best effort; a failed send never reaches the caller.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

PUBLIC_CHANNEL = "public"


def user_channel(user_id: str) -> str:
    return f"user_{user_id}"


def chat_channel(chat_id: str) -> str:
    return f"chat_{chat_id}"


class NullNotifier:
    """Drops every event"""

    async def publish(self, channel: str, event: str, payload: Any = None) -> None:
        return None


class ConnectionManager:
    """Keeps open WebSockets grouped by channel and pushes JSON events to them"""

    def __init__(self):
        self.channels: Dict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, channels: Iterable[str]) -> None:
        await websocket.accept()
        for channel in channels:
            self.channels[channel].add(websocket)
        self.channels[PUBLIC_CHANNEL].add(websocket)

    def join(self, websocket: WebSocket, channel: str) -> None:
        self.channels[channel].add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        for channel in list(self.channels):
            self.channels[channel].discard(websocket)
            if not self.channels[channel]:
                del self.channels[channel]

    async def publish(self, channel: str, event: str, payload: Any = None) -> None:
        message = {"event": event, "data": jsonable_encoder(payload)}
        for websocket in list(self.channels.get(channel, ())):
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning("Dropping socket on %s after failed send of %s", channel, event)
                self.disconnect(websocket)


async def notify(notifier, channel: str, event: str, payload: Any = None) -> None:
    """Publish without letting transport errors escape"""
    try:
        await notifier.publish(channel, event, payload)
    except Exception:
        logger.exception("Failed to publish %s to %s", event, channel)


async def notify_parties(notifier, appointment: Dict[str, Any], event: str) -> None:
    """Push an appointment event and a dashboard refresh to patient and doctor"""
    for user_id in (appointment["patient_id"], appointment["doctor_id"]):
        await notify(notifier, user_channel(user_id), event, appointment)
        await notify(notifier, user_channel(user_id), "dashboard_update")
