from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

from .availability import AvailabilityWindow


class Role(str, Enum):
    """User role enum"""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Account status enum"""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING = "pending"


class Actor(BaseModel):
    """Authenticated caller performing an operation"""
    id: str
    role: Role


class ContactDetails(BaseModel):
    phone: Optional[str] = None
    address: Optional[str] = None


class UserRegister(BaseModel):
    """Registration request"""
    name: str
    email: str
    password: str
    role: Optional[str] = None


class SessionRequest(BaseModel):
    """Firebase ID token obtained by the client SDK"""
    id_token: str


class ProfileUpdate(BaseModel):
    """
    Partial profile update.
    Fields left out of the request body keep their stored value.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    profile_photo: Optional[str] = None
    # Doctor fields
    specialization: Optional[str] = None
    experience: Optional[int] = None
    work_location: Optional[str] = None
    hospital: Optional[str] = None
    consultation_fee: Optional[float] = None
    # Patient fields
    medical_info: Optional[str] = None
    insurance: Optional[str] = None


class ConsultationFeeUpdate(BaseModel):
    consultation_fee: Optional[float] = None


class UserProfile(BaseModel):
    """Profile as returned to its owner"""
    id: str
    name: str
    email: EmailStr
    role: Role
    status: UserStatus = UserStatus.ACTIVE
    bio: str = ""
    contact_details: ContactDetails = Field(default_factory=ContactDetails)
    profile_photo: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[int] = None
    work_location: Optional[str] = None
    hospital: Optional[str] = None
    consultation_fee: Optional[float] = None
    average_rating: float = 0
    is_verified: bool = False
    medical_info: Optional[str] = None
    insurance: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorPublic(BaseModel):
    """Doctor model for the public directory"""
    id: str
    name: str
    specialization: Optional[str] = None
    average_rating: float = 0
    experience: Optional[int] = None
    work_location: Optional[str] = None
    consultation_fee: Optional[float] = None
    profile_photo: Optional[str] = None
    hospital: Optional[str] = None
    bio: str = ""
    contact_details: ContactDetails = Field(default_factory=ContactDetails)
    is_verified: bool = False
    availabilities: List[AvailabilityWindow] = []

    class Config:
        from_attributes = True
