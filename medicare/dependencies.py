"""
FastAPI dependency injection functions
Shared resources live on ``app.state`` and are handed to route handlers here
"""
from fastapi import Depends, Header
from fastapi.requests import HTTPConnection
from typing import Optional, Annotated

from medicare.auth.middleware import bearer_token, require_actor, resolve_actor
from medicare.config import settings
from medicare.models import Actor
from medicare.services.availability_service import AvailabilityService
from medicare.services.booking_service import BookingService
from medicare.services.chat_service import ChatService
from medicare.services.profile_service import ProfileService
from medicare.services.rating_service import RatingService
from medicare.services.slot_calculator import SlotCalculator


def build_store():
    """Store selected by STORAGE_BACKEND"""
    if settings.STORAGE_BACKEND == "memory":
        from medicare.services.memory_store import MemoryStore
        return MemoryStore()
    from medicare.services.firebase_service import FirestoreStore
    return FirestoreStore()


def get_store(connection: HTTPConnection):
    state = connection.app.state
    if state.store is None:
        state.store = build_store()
    return state.store


def get_notifier(connection: HTTPConnection):
    return connection.app.state.notifier


def get_clock(connection: HTTPConnection):
    return connection.app.state.clock


def get_auth_service(connection: HTTPConnection):
    return connection.app.state.auth_service


async def get_optional_actor(
    connection: HTTPConnection,
    authorization: Annotated[Optional[str], Header()] = None,
    store=Depends(get_store),
    auth_service=Depends(get_auth_service),
) -> Optional[Actor]:
    """
    Current caller, or None for anonymous requests

    Usage:
        @router.get("/doctors")
        async def doctors(actor: OptionalActor):
            ...
    """
    session_cookie = connection.cookies.get(settings.SESSION_COOKIE_NAME)
    return await resolve_actor(store, auth_service, bearer_token(authorization), session_cookie)


async def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    """
    Dependency that requires authentication
    Raises 401 if not authenticated
    """
    return require_actor(actor)


def get_profile_service(
    store=Depends(get_store),
    notifier=Depends(get_notifier),
    auth_service=Depends(get_auth_service),
) -> ProfileService:
    return ProfileService(store, notifier, auth_service)


def get_availability_service(store=Depends(get_store), notifier=Depends(get_notifier)) -> AvailabilityService:
    return AvailabilityService(store, notifier)


def get_booking_service(
    store=Depends(get_store),
    notifier=Depends(get_notifier),
    clock=Depends(get_clock),
) -> BookingService:
    return BookingService(store, notifier, clock, allow_confirmed_delete=settings.ALLOW_CONFIRMED_DELETE)


def get_slot_calculator(store=Depends(get_store)) -> SlotCalculator:
    return SlotCalculator(store)


def get_rating_service(store=Depends(get_store)) -> RatingService:
    return RatingService(store)


def get_chat_service(store=Depends(get_store), notifier=Depends(get_notifier)) -> ChatService:
    return ChatService(store, notifier)


# Type aliases for cleaner route signatures
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OptionalActor = Annotated[Optional[Actor], Depends(get_optional_actor)]
Store = Annotated[object, Depends(get_store)]
Profiles = Annotated[ProfileService, Depends(get_profile_service)]
Availability = Annotated[AvailabilityService, Depends(get_availability_service)]
Bookings = Annotated[BookingService, Depends(get_booking_service)]
Slots = Annotated[SlotCalculator, Depends(get_slot_calculator)]
Ratings = Annotated[RatingService, Depends(get_rating_service)]
Chats = Annotated[ChatService, Depends(get_chat_service)]
