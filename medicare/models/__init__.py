"""
Data models for the application
All Pydantic models for request/response validation
"""

from .user import (
    Role,
    UserStatus,
    Actor,
    ContactDetails,
    UserRegister,
    SessionRequest,
    ProfileUpdate,
    ConsultationFeeUpdate,
    UserProfile,
    DoctorPublic,
)

from .availability import (
    DayOfWeek,
    AvailabilityCreate,
    AvailabilityUpdate,
    AvailabilityWindow,
)

from .appointment import (
    AppointmentStatus,
    AppointmentType,
    AppointmentCreate,
    AppointmentUpdate,
    PartySummary,
    AppointmentPublic,
    AvailableSlotsResponse,
)

from .rating import (
    RatingCreate,
    RatingPublic,
)

from .chat import (
    ChatCreate,
    MessageCreate,
    ChatPublic,
    MessagePublic,
)


__all__ = [
    # User models
    "Role",
    "UserStatus",
    "Actor",
    "ContactDetails",
    "UserRegister",
    "SessionRequest",
    "ProfileUpdate",
    "ConsultationFeeUpdate",
    "UserProfile",
    "DoctorPublic",

    # Availability models
    "DayOfWeek",
    "AvailabilityCreate",
    "AvailabilityUpdate",
    "AvailabilityWindow",

    # Appointment models
    "AppointmentStatus",
    "AppointmentType",
    "AppointmentCreate",
    "AppointmentUpdate",
    "PartySummary",
    "AppointmentPublic",
    "AvailableSlotsResponse",

    # Rating models
    "RatingCreate",
    "RatingPublic",

    # Chat models
    "ChatCreate",
    "MessageCreate",
    "ChatPublic",
    "MessagePublic",
]
