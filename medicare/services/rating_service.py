import logging
from typing import Optional, Dict, Any, List

from medicare.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from medicare.models import Actor, AppointmentStatus, Role

logger = logging.getLogger(__name__)


class RatingService:
    """Patient ratings and the doctor's average"""

    def __init__(self, store):
        self.store = store

    async def _get_doctor(self, doctor_id: str) -> Dict[str, Any]:
        doctor = await self.store.get_user(doctor_id)
        if not doctor or doctor.get("role") != Role.DOCTOR.value:
            raise NotFoundError("Doctor not found")
        return doctor

    async def _with_patient_names(self, ratings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        names: Dict[str, Optional[str]] = {}
        for rating in ratings:
            patient_id = rating["patient_id"]
            if patient_id not in names:
                patient = await self.store.get_user(patient_id)
                names[patient_id] = patient.get("name") if patient else None
        return [dict(rating, patient_name=names[rating["patient_id"]]) for rating in ratings]

    async def record_rating(
        self,
        actor: Actor,
        doctor_id: str,
        value: Any,
        review: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Store a patient's one-and-only rating of a doctor and refresh the
        doctor's average rating.

        Raises:
            ValidationError: value is not an integer from 1 to 5
            AuthorizationError: caller is not a patient
            NotFoundError: unknown doctor
            ConflictError: no completed appointment with the doctor, or
                already rated
        """
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        if actor.role != Role.PATIENT:
            raise AuthorizationError("Only patients can rate doctors")

        await self._get_doctor(doctor_id)

        completed = await self.store.find_appointments(
            patient_id=actor.id,
            doctor_id=doctor_id,
            status=AppointmentStatus.COMPLETED.value,
        )
        if not completed:
            raise ConflictError("You can only rate doctors after a completed appointment")

        if await self.store.get_rating(actor.id, doctor_id):
            raise ConflictError("You have already rated this doctor")

        review = review.strip() if review and review.strip() else None
        rating = await self.store.add_rating({
            "patient_id": actor.id,
            "doctor_id": doctor_id,
            "value": value,
            "review": review,
        })
        if rating is None:
            # lost a race with a concurrent submission for the same pair
            raise ConflictError("You have already rated this doctor")

        average = await self.refresh_average(doctor_id)
        logger.info("Doctor %s rated %s by %s, average now %.2f", doctor_id, value, actor.id, average)
        return (await self._with_patient_names([rating]))[0]

    async def refresh_average(self, doctor_id: str) -> float:
        """Recompute the mean over every rating of the doctor"""
        ratings = await self.store.list_ratings(doctor_id)
        average = sum(r["value"] for r in ratings) / len(ratings) if ratings else 0.0
        await self.store.save_user(doctor_id, {"average_rating": average})
        return average

    async def list_ratings(self, doctor_id: str) -> List[Dict[str, Any]]:
        await self._get_doctor(doctor_id)
        ratings = await self.store.list_ratings(doctor_id)
        ratings = sorted(ratings, key=lambda r: r["created_at"], reverse=True)
        return await self._with_patient_names(ratings)
