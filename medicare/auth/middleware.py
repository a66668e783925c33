from fastapi import HTTPException, status
from typing import Optional

from medicare.models import Actor, Role, UserStatus


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_actor(
    store,
    auth_service,
    token: Optional[str] = None,
    session_cookie: Optional[str] = None
) -> Optional[Actor]:
    """
    Resolve the caller from a Firebase ID token or a Firebase session cookie.
    A token, when given, takes precedence over the cookie.

    Returns:
        Actor of an active user, None if the caller is anonymous
    """
    user_id = None
    if token:
        user_id = await auth_service.verify_id_token(token)
    elif session_cookie:
        user_id = await auth_service.verify_session_cookie(session_cookie)

    if not user_id:
        return None

    user = await store.get_user(user_id)
    if not user:
        return None
    if user.get("status", UserStatus.ACTIVE.value) != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is suspended or pending verification"
        )
    return Actor(id=user_id, role=Role(user["role"]))


def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor
