import logging
import re
from typing import Optional, Dict, Any, List

from medicare.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from medicare.models import Actor, ProfileUpdate, Role, UserRegister, UserStatus
from medicare.services.conflict_checker import sort_windows
from medicare.services.notifier import PUBLIC_CHANNEL, notify

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

PUBLIC_DOCTOR_FIELDS = (
    "name", "specialization", "average_rating", "experience", "work_location",
    "consultation_fee", "profile_photo", "hospital", "bio", "contact_details", "is_verified",
)


def doctor_public(doctor: Dict[str, Any], windows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Directory view of a doctor with their weekly windows"""
    data = {"id": doctor["id"]}
    data.update({field: doctor.get(field) for field in PUBLIC_DOCTOR_FIELDS if doctor.get(field) is not None})
    data["availabilities"] = [
        {
            "id": window["id"],
            "doctor_id": window["doctor_id"],
            "day": window["day"],
            "start_time": window["start_time"],
            "end_time": window["end_time"],
        }
        for window in sort_windows(windows)
    ]
    return data


async def publish_doctor_profile(store, notifier, doctor_id: str) -> None:
    """Broadcast the doctor's current public profile to every client"""
    doctor = await store.get_user(doctor_id)
    if not doctor:
        return
    windows = await store.list_availabilities(doctor_id=doctor_id)
    await notify(notifier, PUBLIC_CHANNEL, "doctor_profile_updated", doctor_public(doctor, windows))


def validate_fee(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError("Consultation fee must be a positive number")
    return float(value)


class ProfileService:
    """Registration, sessions, profiles and the doctor directory"""

    def __init__(self, store, notifier, auth_service=None):
        self.store = store
        self.notifier = notifier
        self.auth_service = auth_service

    async def register(self, data: UserRegister) -> Dict[str, Any]:
        name = (data.name or "").strip()
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters long")

        email = (data.email or "").strip().lower()
        if not EMAIL_PATTERN.fullmatch(email):
            raise ValidationError("Please provide a valid email address")

        password = (data.password or "").strip()
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters long")

        role = data.role or Role.PATIENT.value
        if role not in (Role.PATIENT.value, Role.DOCTOR.value):
            raise ValidationError("Invalid role. Must be 'patient' or 'doctor'")

        if await self.store.get_user_by_email(email):
            raise ConflictError("User already exists")

        uid = await self.auth_service.create_user(email=email, password=password, name=name)

        profile = {
            "name": name,
            "email": email,
            "role": role,
            "status": UserStatus.ACTIVE.value,
            "bio": "",
            "contact_details": {"phone": None, "address": None},
            "average_rating": 0,
            "is_verified": False,
        }
        if role == Role.PATIENT.value:
            profile.update(medical_info="", insurance="")

        try:
            user = await self.store.save_user(uid, profile)
        except Exception:
            logger.exception("Saving profile for %s failed, removing the auth account", uid)
            await self.auth_service.delete_user(uid)
            raise
        if role == Role.DOCTOR.value:
            logger.info("User %s has created an account as a doctor. Please review them.", name)
        return user

    async def start_session(self, id_token: str) -> Optional[Dict[str, Any]]:
        """
        Resolve a Firebase ID token to an active user profile

        Returns:
            None when the token is invalid
        """
        uid = await self.auth_service.verify_id_token(id_token)
        if not uid:
            return None

        user = await self.store.get_user(uid)
        if not user:
            raise NotFoundError("User not found")
        if user.get("status", UserStatus.ACTIVE.value) != UserStatus.ACTIVE.value:
            raise AuthorizationError("Account is suspended or pending verification")
        return user

    async def session_cookie(self, id_token: str, max_age: int) -> str:
        """Mint the signed session cookie for an ID token accepted by start_session"""
        return await self.auth_service.create_session_cookie(id_token, expires_in=max_age)

    async def get_profile(self, actor: Actor) -> Dict[str, Any]:
        user = await self.store.get_user(actor.id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, actor: Actor, patch: ProfileUpdate) -> Dict[str, Any]:
        user = await self.get_profile(actor)
        present = patch.model_fields_set
        is_doctor = user["role"] == Role.DOCTOR.value
        is_patient = user["role"] == Role.PATIENT.value
        updates: Dict[str, Any] = {}

        def text(field: str) -> Optional[str]:
            value = getattr(patch, field)
            return value.strip() if value is not None else None

        if "name" in present:
            name = text("name")
            if not name or len(name) < 2:
                raise ValidationError("Name must be at least 2 characters")
            updates["name"] = name

        if "email" in present:
            email = (text("email") or "").lower()
            if "@" not in email:
                raise ValidationError("Invalid email address")
            if email != user.get("email"):
                other = await self.store.get_user_by_email(email)
                if other and other["id"] != user["id"]:
                    raise ConflictError("Email already in use")
            updates["email"] = email

        if "bio" in present:
            bio = text("bio") or ""
            if is_doctor and bio and len(bio) < 10:
                raise ValidationError("Bio must be at least 10 characters long")
            updates["bio"] = bio

        if is_doctor:
            if "experience" in present:
                experience = patch.experience
                if experience is None or not 0 <= experience <= 50:
                    raise ValidationError("Experience must be a number between 0 and 50")
                updates["experience"] = experience
            if "consultation_fee" in present:
                updates["consultation_fee"] = validate_fee(patch.consultation_fee)
            if "specialization" in present:
                updates["specialization"] = text("specialization")
            if "work_location" in present:
                updates["work_location"] = text("work_location")
            if "hospital" in present:
                # an empty string clears the hospital
                updates["hospital"] = text("hospital") or None

        if is_patient:
            if "medical_info" in present:
                updates["medical_info"] = text("medical_info") or ""
            if "insurance" in present:
                updates["insurance"] = text("insurance") or ""

        if "profile_photo" in present:
            updates["profile_photo"] = patch.profile_photo

        if present & {"phone", "address"}:
            contact = dict(user.get("contact_details") or {})
            if "phone" in present:
                contact["phone"] = text("phone")
            if "address" in present:
                contact["address"] = text("address")
            updates["contact_details"] = contact

        updated = await self.store.save_user(user["id"], updates)
        if is_doctor:
            await publish_doctor_profile(self.store, self.notifier, user["id"])
        return updated

    async def update_consultation_fee(self, actor: Actor, fee: Any) -> Dict[str, Any]:
        if actor.role != Role.DOCTOR:
            raise AuthorizationError("Only doctors can update fees")
        if fee is None:
            raise ValidationError("Consultation fee is required")

        updated = await self.store.save_user(actor.id, {"consultation_fee": validate_fee(fee)})
        await publish_doctor_profile(self.store, self.notifier, actor.id)
        return updated

    async def list_doctors(self) -> List[Dict[str, Any]]:
        doctors = await self.store.list_users_by_role(Role.DOCTOR.value)
        windows_by_doctor: Dict[str, List[Dict[str, Any]]] = {}
        for window in await self.store.list_availabilities():
            windows_by_doctor.setdefault(window["doctor_id"], []).append(window)
        return [doctor_public(doctor, windows_by_doctor.get(doctor["id"], [])) for doctor in doctors]
