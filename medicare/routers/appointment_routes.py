from fastapi import APIRouter, status
from typing import List

from medicare.dependencies import Bookings, CurrentActor, Slots
from medicare.models import AppointmentCreate, AppointmentPublic, AppointmentUpdate, AvailableSlotsResponse
from medicare.services.conflict_checker import parse_date

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=List[AppointmentPublic])
async def list_appointments(actor: CurrentActor, bookings: Bookings):
    """Appointments where the caller is the patient or the doctor"""
    return await bookings.list_appointments(actor)


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def create_appointment(data: AppointmentCreate, actor: CurrentActor, bookings: Bookings):
    return await bookings.create_appointment(actor, data)


# Declared before /{appointment_id} so the static segment wins
@router.get("/available/{doctor_id}/{date}", response_model=AvailableSlotsResponse)
async def get_available_slots(doctor_id: str, date: str, slots: Slots):
    """Open start times for a doctor on a date (YYYY-MM-DD)"""
    available = await slots.available_slots(doctor_id, date)
    return AvailableSlotsResponse(
        doctor_id=doctor_id,
        date=parse_date(date).isoformat(),
        available_slots=available,
    )


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_appointment(appointment_id: str, actor: CurrentActor, bookings: Bookings):
    return await bookings.get_appointment(appointment_id, actor)


@router.put("/{appointment_id}", response_model=AppointmentPublic)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    actor: CurrentActor,
    bookings: Bookings
):
    """Status transition, reschedule request or notes edit"""
    return await bookings.update_appointment(appointment_id, data, actor)


@router.delete("/{appointment_id}")
async def delete_appointment(appointment_id: str, actor: CurrentActor, bookings: Bookings):
    await bookings.delete_appointment(appointment_id, actor)
    return {"success": True, "message": "Appointment deleted successfully"}
