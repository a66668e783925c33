from fastapi import APIRouter, status
from typing import List, Optional

from medicare.dependencies import Availability, CurrentActor, Profiles
from medicare.models import (
    AvailabilityCreate,
    AvailabilityUpdate,
    AvailabilityWindow,
    ConsultationFeeUpdate,
    UserProfile,
)

router = APIRouter(prefix="/doctor", tags=["doctor"])


@router.put("/consultation-fee", response_model=UserProfile)
async def update_consultation_fee(data: ConsultationFeeUpdate, actor: CurrentActor, profiles: Profiles):
    return await profiles.update_consultation_fee(actor, data.consultation_fee)


@router.get("/availability", response_model=List[AvailabilityWindow])
async def list_availability(actor: CurrentActor, availability: Availability, doctor_id: Optional[str] = None):
    """Weekly windows of the given doctor, or of the caller when omitted"""
    return await availability.list_windows(doctor_id or actor.id)


@router.post("/availability", response_model=AvailabilityWindow, status_code=status.HTTP_201_CREATED)
async def add_availability(data: AvailabilityCreate, actor: CurrentActor, availability: Availability):
    return await availability.add_window(actor, data)


@router.put("/availability/{window_id}", response_model=AvailabilityWindow)
async def update_availability(
    window_id: str,
    data: AvailabilityUpdate,
    actor: CurrentActor,
    availability: Availability
):
    return await availability.update_window(window_id, actor, data)


@router.delete("/availability/{window_id}")
async def delete_availability(window_id: str, actor: CurrentActor, availability: Availability):
    await availability.remove_window(window_id, actor)
    return {"success": True, "message": "Availability slot deleted successfully"}
