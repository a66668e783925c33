"""
Slot-conflict rules shared by availability management and every booking
transition that changes an appointment's date, time or status.

Times are "HH:MM" wall-clock strings compared as minute offsets from
midnight. Windows are half-open: [start, end).
"""
import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from medicare.errors import ConflictError, ValidationError
from medicare.models import AppointmentStatus, DayOfWeek

CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

DAY_NAMES = [day.value for day in DayOfWeek]  # index == date.weekday()


def to_minutes(value: Any) -> int:
    """Parse "HH:MM" (00:00-23:59) into minutes since midnight"""
    match = CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM between 00:00 and 23:59")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: Any) -> str:
    """Canonical zero-padded form, e.g. "9:00" -> "09:00" """
    return format_minutes(to_minutes(value))


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Use ISO format (YYYY-MM-DD)")


def normalize_day(value: Any) -> str:
    """Match a weekday name case-insensitively, return its canonical form"""
    if isinstance(value, str):
        for name in DAY_NAMES:
            if value.strip().lower() == name.lower():
                return name
    raise ValidationError(f"Invalid day '{value}'. Must be one of: {', '.join(DAY_NAMES)}")


def day_of(appointment_date: date) -> str:
    return DAY_NAMES[appointment_date.weekday()]


def validate_window(day: Any, start: Any, end: Any) -> Tuple[str, str, str]:
    """Return (day, start, end) in canonical form or raise ValidationError"""
    day = normalize_day(day)
    start_minutes, end_minutes = to_minutes(start), to_minutes(end)
    if start_minutes >= end_minutes:
        raise ValidationError("Start time must be before end time")
    return day, format_minutes(start_minutes), format_minutes(end_minutes)


def windows_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    return start1 < end2 and start2 < end1


def find_overlapping_window(
    windows: Iterable[Dict[str, Any]],
    start: str,
    end: str,
    exclude_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """First window (same doctor and day assumed) that overlaps [start, end)"""
    start_minutes, end_minutes = to_minutes(start), to_minutes(end)
    for window in windows:
        if exclude_id is not None and window["id"] == exclude_id:
            continue
        if windows_overlap(
            start_minutes, end_minutes,
            to_minutes(window["start_time"]), to_minutes(window["end_time"])
        ):
            return window
    return None


def sort_windows(windows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Display order: weekday, then start time"""
    return sorted(
        windows,
        key=lambda w: (DAY_NAMES.index(w["day"]) if w["day"] in DAY_NAMES else 7, w["start_time"])
    )


def window_contains(window: Dict[str, Any], minutes: int) -> bool:
    return to_minutes(window["start_time"]) <= minutes < to_minutes(window["end_time"])


def ensure_future(appointment_date: date, appointment_time: str, now: datetime) -> None:
    start = datetime.combine(appointment_date, time(*divmod(to_minutes(appointment_time), 60)))
    if start <= now:
        raise ValidationError("Appointment must be in the future")


async def ensure_bookable(
    store,
    doctor_id: str,
    appointment_date: str,
    appointment_time: str,
    exclude_id: Optional[str] = None
) -> None:
    """
    Check that the doctor works at this time and nobody else holds it.

    Raises:
        ConflictError: outside every window for the weekday, or another
            confirmed appointment occupies (doctor, date, time)
    """
    day = day_of(parse_date(appointment_date))
    windows = await store.list_availabilities(doctor_id=doctor_id, day=day)
    if not windows:
        raise ConflictError("Doctor is not available on this day")

    minutes = to_minutes(appointment_time)
    if not any(window_contains(window, minutes) for window in windows):
        raise ConflictError("Requested time is outside doctor's availability")

    occupied = await store.find_appointments(
        doctor_id=doctor_id,
        date=appointment_date,
        time=appointment_time,
        status=AppointmentStatus.CONFIRMED.value,
    )
    if any(appointment["id"] != exclude_id for appointment in occupied):
        raise ConflictError("Doctor is not available at this time")
