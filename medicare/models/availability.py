from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum


class DayOfWeek(str, Enum):
    """Weekday an availability window recurs on"""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class AvailabilityCreate(BaseModel):
    """Request to add a weekly availability window"""
    day: str
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"
    consultation_fee: Optional[float] = None


class AvailabilityUpdate(BaseModel):
    """Partial update of a window; omitted fields are kept"""
    day: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    consultation_fee: Optional[float] = None


class AvailabilityWindow(BaseModel):
    """Availability window as stored"""
    id: str
    doctor_id: str
    day: DayOfWeek
    start_time: str
    end_time: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
