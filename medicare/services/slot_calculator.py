from typing import Any, Dict, Iterable, List

from medicare.errors import NotFoundError
from medicare.models import AppointmentStatus, Role
from medicare.services.conflict_checker import (
    day_of,
    format_minutes,
    parse_date,
    to_minutes,
)

SLOT_MINUTES = 60


def generate_slots(windows: Iterable[Dict[str, Any]], step: int = SLOT_MINUTES) -> List[str]:
    """
    Bookable start times inside the given windows.

    Slots sit on ``step`` boundaries counted from midnight, so hourly slots
    always fall on the hour: a window opening at 09:30 offers 10:00 first.
    A slot is kept only if it ends at or before the window end, so a window
    ending at 11:30 stops at the 10:00 slot.
    """
    slots = set()
    for window in windows:
        start, end = to_minutes(window["start_time"]), to_minutes(window["end_time"])
        current = -(-start // step) * step
        while current + step <= end:
            slots.add(current)
            current += step
    return [format_minutes(minutes) for minutes in sorted(slots)]


class SlotCalculator:
    """Derives open slots for a doctor on a calendar date"""

    def __init__(self, store, step: int = SLOT_MINUTES):
        self.store = store
        self.step = step

    async def available_slots(self, doctor_id: str, appointment_date: str) -> List[str]:
        doctor = await self.store.get_user(doctor_id)
        if not doctor or doctor.get("role") != Role.DOCTOR.value:
            raise NotFoundError("Doctor not found")

        parsed = parse_date(appointment_date)
        appointment_date = parsed.isoformat()
        windows = await self.store.list_availabilities(doctor_id=doctor_id, day=day_of(parsed))
        if not windows:
            return []

        booked = await self.store.find_appointments(
            doctor_id=doctor_id,
            date=appointment_date,
            status=AppointmentStatus.CONFIRMED.value,
        )
        booked_times = {appointment["time"] for appointment in booked}
        return [slot for slot in generate_slots(windows, self.step) if slot not in booked_times]
