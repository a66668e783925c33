from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment status enum"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class AppointmentType(str, Enum):
    """How the consultation takes place"""
    IN_PERSON = "in-person"
    ONLINE = "online"


class AppointmentCreate(BaseModel):
    """Model for booking an appointment"""
    doctor_id: str
    date: str  # ISO format date (YYYY-MM-DD)
    time: str  # "HH:MM"
    reason: str
    type: str
    notes: Optional[str] = None
    documents: List[str] = []


class AppointmentUpdate(BaseModel):
    """
    Model for updating an appointment.
    Only the fields present in the request are applied; an explicit
    null for notes clears them.
    """
    status: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None


class PartySummary(BaseModel):
    """Name and email of the patient or doctor on an appointment"""
    name: Optional[str] = None
    email: Optional[str] = None


class AppointmentPublic(BaseModel):
    """Appointment model for API responses"""
    id: str
    patient_id: str
    doctor_id: str
    date: str
    time: str
    reason: str
    type: str
    status: AppointmentStatus
    notes: Optional[str] = None
    documents: List[str] = []
    fee: Optional[float] = None
    reminder_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    patient: Optional[PartySummary] = None
    doctor: Optional[PartySummary] = None

    class Config:
        from_attributes = True


class AvailableSlotsResponse(BaseModel):
    """Bookable slots for a doctor on a date"""
    doctor_id: str
    date: str
    available_slots: List[str]
