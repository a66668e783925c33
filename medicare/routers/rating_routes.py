from fastapi import APIRouter, status
from typing import List

from medicare.dependencies import CurrentActor, Ratings
from medicare.models import RatingCreate, RatingPublic

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post("", response_model=RatingPublic, status_code=status.HTTP_201_CREATED)
async def rate_doctor(data: RatingCreate, actor: CurrentActor, ratings: Ratings):
    return await ratings.record_rating(actor, data.doctor_id, data.value, data.review)


@router.get("/{doctor_id}", response_model=List[RatingPublic])
async def list_ratings(doctor_id: str, actor: CurrentActor, ratings: Ratings):
    """Ratings of a doctor, newest first"""
    return await ratings.list_ratings(doctor_id)
