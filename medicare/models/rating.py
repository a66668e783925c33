from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class RatingCreate(BaseModel):
    """Request to rate a doctor"""
    doctor_id: str
    value: int
    review: Optional[str] = None


class RatingPublic(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    value: int
    review: Optional[str] = None
    patient_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
