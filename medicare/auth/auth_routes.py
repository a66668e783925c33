"""
Account, session and profile endpoints
Clients sign in with the Firebase client SDK and exchange the ID token for a session cookie
"""
import logging

from fastapi import APIRouter, HTTPException, Response, status
from typing import List

from medicare.config import settings
from medicare.dependencies import CurrentActor, OptionalActor, Profiles
from medicare.models import DoctorPublic, ProfileUpdate, SessionRequest, UserProfile, UserRegister

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


# ==================== REGISTRATION ====================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister, profiles: Profiles):
    """Create a Firebase Auth account and its profile"""
    user = await profiles.register(data)
    return {
        "success": True,
        "message": "Account created successfully",
        "user": UserProfile.model_validate(user),
    }


# ==================== SESSION & LOGOUT ====================

@router.post("/session")
async def create_session(data: SessionRequest, response: Response, profiles: Profiles):
    """Verify a Firebase ID token and set the session cookie"""
    user = await profiles.start_session(data.id_token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    session_cookie = await profiles.session_cookie(data.id_token, settings.SESSION_MAX_AGE)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_cookie,
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.IS_PRODUCTION
    )
    logger.info("Session started for %s (%s)", user["id"], user["role"])
    return {"authenticated": True, "user": UserProfile.model_validate(user)}


@router.get("/session")
async def get_session(actor: OptionalActor):
    """Check if user is authenticated"""
    if not actor:
        return {"authenticated": False}
    return {"authenticated": True, "user_id": actor.id, "role": actor.role}


@router.post("/logout")
async def logout(response: Response):
    """Logout user"""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.IS_PRODUCTION
    )
    return {"success": True, "message": "Logged out successfully"}


# ==================== PROFILE ====================

@router.get("/profile", response_model=UserProfile)
async def get_profile(actor: CurrentActor, profiles: Profiles):
    return await profiles.get_profile(actor)


@router.put("/profile", response_model=UserProfile)
async def update_profile(data: ProfileUpdate, actor: CurrentActor, profiles: Profiles):
    """Apply only the fields present in the body"""
    return await profiles.update_profile(actor, data)


@router.get("/doctors", response_model=List[DoctorPublic])
async def list_doctors(profiles: Profiles):
    """Public doctor directory with weekly availability"""
    return await profiles.list_doctors()
