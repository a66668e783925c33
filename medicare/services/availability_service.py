import logging
from typing import Dict, Any, List

from medicare.errors import AuthorizationError, ConflictError, NotFoundError
from medicare.models import Actor, AvailabilityCreate, AvailabilityUpdate, Role
from medicare.services.conflict_checker import find_overlapping_window, sort_windows, validate_window
from medicare.services.profile_service import publish_doctor_profile, validate_fee

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Weekly availability windows owned by doctors"""

    def __init__(self, store, notifier):
        self.store = store
        self.notifier = notifier

    async def _ensure_no_overlap(
        self,
        doctor_id: str,
        day: str,
        start: str,
        end: str,
        exclude_id: str = None
    ) -> None:
        siblings = await self.store.list_availabilities(doctor_id=doctor_id, day=day)
        clash = find_overlapping_window(siblings, start, end, exclude_id=exclude_id)
        if clash:
            raise ConflictError(
                f"Window overlaps existing {clash['day']} availability "
                f"{clash['start_time']}-{clash['end_time']}"
            )

    async def _owned_window(self, window_id: str, actor: Actor) -> Dict[str, Any]:
        if actor.role != Role.DOCTOR:
            raise AuthorizationError("Only doctors can manage availability slots")
        window = await self.store.get_availability(window_id)
        if not window:
            raise NotFoundError("Availability slot not found")
        if window["doctor_id"] != actor.id:
            raise AuthorizationError("Not authorized to modify this availability slot")
        return window

    async def add_window(self, actor: Actor, data: AvailabilityCreate) -> Dict[str, Any]:
        if actor.role != Role.DOCTOR:
            raise AuthorizationError("Only doctors can create availability slots")

        day, start, end = validate_window(data.day, data.start_time, data.end_time)
        fee = validate_fee(data.consultation_fee) if data.consultation_fee is not None else None
        await self._ensure_no_overlap(actor.id, day, start, end)

        window = await self.store.add_availability({
            "doctor_id": actor.id,
            "day": day,
            "start_time": start,
            "end_time": end,
        })
        if fee is not None:
            await self.store.save_user(actor.id, {"consultation_fee": fee})

        logger.info("Doctor %s added %s %s-%s availability", actor.id, day, start, end)
        await publish_doctor_profile(self.store, self.notifier, actor.id)
        return window

    async def update_window(self, window_id: str, actor: Actor, patch: AvailabilityUpdate) -> Dict[str, Any]:
        window = await self._owned_window(window_id, actor)
        present = patch.model_fields_set

        day, start, end = validate_window(
            patch.day if "day" in present else window["day"],
            patch.start_time if "start_time" in present else window["start_time"],
            patch.end_time if "end_time" in present else window["end_time"],
        )
        fee = None
        if "consultation_fee" in present and patch.consultation_fee is not None:
            fee = validate_fee(patch.consultation_fee)
        await self._ensure_no_overlap(actor.id, day, start, end, exclude_id=window_id)

        updated = await self.store.update_availability(window_id, {
            "day": day,
            "start_time": start,
            "end_time": end,
        })
        if fee is not None:
            await self.store.save_user(actor.id, {"consultation_fee": fee})

        await publish_doctor_profile(self.store, self.notifier, actor.id)
        return updated

    async def remove_window(self, window_id: str, actor: Actor) -> None:
        await self._owned_window(window_id, actor)
        await self.store.delete_availability(window_id)
        logger.info("Doctor %s removed availability %s", actor.id, window_id)
        await publish_doctor_profile(self.store, self.notifier, actor.id)

    async def list_windows(self, doctor_id: str) -> List[Dict[str, Any]]:
        return sort_windows(await self.store.list_availabilities(doctor_id=doctor_id))
