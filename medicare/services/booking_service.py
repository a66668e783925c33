"""
Appointment booking workflow.

Status flow::

    pending -> confirmed -> completed
    pending -> rejected
    pending | confirmed -> cancelled

Rescheduling (a date or time change) is requested by the patient and puts
the appointment back to pending.
"""
import logging
from typing import Optional, Dict, Any, List, Tuple

from medicare.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from medicare.models import (
    Actor,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    Role,
)
from medicare.services.clock import Clock, clinic_now
from medicare.services.conflict_checker import ensure_bookable, ensure_future, normalize_time, parse_date
from medicare.services.notifier import notify_parties

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10
MAX_NOTES_LENGTH = 500

TERMINAL_STATUSES = {
    AppointmentStatus.COMPLETED,
    AppointmentStatus.REJECTED,
    AppointmentStatus.CANCELLED,
}

# target status -> (statuses it can be reached from, party allowed to make the move)
TRANSITIONS = {
    AppointmentStatus.CONFIRMED: ({AppointmentStatus.PENDING}, Role.DOCTOR),
    AppointmentStatus.REJECTED: ({AppointmentStatus.PENDING}, Role.DOCTOR),
    AppointmentStatus.CANCELLED: ({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}, Role.PATIENT),
    AppointmentStatus.COMPLETED: ({AppointmentStatus.CONFIRMED}, Role.DOCTOR),
}


def slot_of(appointment: Dict[str, Any]) -> Tuple[str, str, str]:
    return appointment["doctor_id"], appointment["date"], appointment["time"]


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Notes too long (max {MAX_NOTES_LENGTH} characters)")
    return notes


class BookingService:
    """Creates appointments and drives their status transitions"""

    def __init__(self, store, notifier, clock: Clock = clinic_now, allow_confirmed_delete: bool = False):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.allow_confirmed_delete = allow_confirmed_delete

    async def _get_for_party(self, appointment_id: str, actor: Actor) -> Dict[str, Any]:
        appointment = await self.store.get_appointment(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if actor.id not in (appointment["patient_id"], appointment["doctor_id"]):
            raise AuthorizationError("Not authorized")
        return appointment

    async def _with_parties(self, appointments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Copies of the appointments carrying the name and email of both parties"""
        users: Dict[str, Optional[Dict[str, Any]]] = {}
        enriched = []
        for appointment in appointments:
            parties = {}
            for role in ("patient", "doctor"):
                user_id = appointment[f"{role}_id"]
                if user_id not in users:
                    users[user_id] = await self.store.get_user(user_id)
                user = users[user_id]
                parties[role] = {"name": user.get("name"), "email": user.get("email")} if user else None
            enriched.append(dict(appointment, **parties))
        return enriched

    async def _with_party(self, appointment: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._with_parties([appointment]))[0]

    async def create_appointment(self, actor: Actor, data: AppointmentCreate) -> Dict[str, Any]:
        if actor.role != Role.PATIENT:
            raise AuthorizationError("Only patients can book appointments")

        if not data.doctor_id or not data.date or not data.time or not data.reason or not data.type:
            raise ValidationError("All required fields are required")

        reason = data.reason.strip()
        if len(reason) < MIN_REASON_LENGTH:
            raise ValidationError(f"Reason must be at least {MIN_REASON_LENGTH} characters")

        try:
            appointment_type = AppointmentType(data.type)
        except ValueError:
            raise ValidationError("Type must be 'in-person' or 'online'")

        appointment_date = parse_date(data.date)
        appointment_time = normalize_time(data.time)
        notes = _clean_notes(data.notes)
        ensure_future(appointment_date, appointment_time, self.clock())

        doctor = await self.store.get_user(data.doctor_id)
        if not doctor or doctor.get("role") != Role.DOCTOR.value:
            raise NotFoundError("Doctor not found")

        await ensure_bookable(self.store, data.doctor_id, appointment_date.isoformat(), appointment_time)

        appointment = await self.store.add_appointment({
            "patient_id": actor.id,
            "doctor_id": data.doctor_id,
            "date": appointment_date.isoformat(),
            "time": appointment_time,
            "reason": reason,
            "type": appointment_type.value,
            "status": AppointmentStatus.PENDING.value,
            "notes": notes,
            "documents": list(data.documents),
            "fee": doctor.get("consultation_fee"),
            "reminder_sent": False,
        })
        logger.info(
            "Patient %s requested %s %s with doctor %s",
            actor.id, appointment["date"], appointment["time"], data.doctor_id,
        )

        appointment = await self._with_party(appointment)
        await notify_parties(self.notifier, appointment, "appointment_created")
        return appointment

    def _check_transition(
        self,
        appointment: Dict[str, Any],
        current: AppointmentStatus,
        target: AppointmentStatus,
        actor: Actor
    ) -> None:
        if target not in TRANSITIONS:
            raise ConflictError(f"Cannot set status to {target.value}")

        sources, party = TRANSITIONS[target]
        owner = appointment["doctor_id"] if party == Role.DOCTOR else appointment["patient_id"]
        if actor.id != owner:
            if party == Role.DOCTOR:
                raise AuthorizationError(f"Only the doctor can mark an appointment {target.value}")
            raise AuthorizationError(f"Only the patient can mark an appointment {target.value}")

        if current not in sources:
            raise ConflictError(f"Cannot change a {current.value} appointment to {target.value}")

    async def update_appointment(
        self,
        appointment_id: str,
        patch: AppointmentUpdate,
        actor: Actor
    ) -> Dict[str, Any]:
        present = patch.model_fields_set

        status = None
        if "status" in present and patch.status is not None:
            try:
                status = AppointmentStatus(patch.status)
            except ValueError:
                raise ValidationError("Invalid status")

        notes = _clean_notes(patch.notes) if "notes" in present else None
        new_date = parse_date(patch.date).isoformat() if "date" in present and patch.date else None
        new_time = normalize_time(patch.time) if "time" in present and patch.time else None

        appointment = await self._get_for_party(appointment_id, actor)
        current = AppointmentStatus(appointment["status"])

        target_date = new_date or appointment["date"]
        target_time = new_time or appointment["time"]
        fields: Dict[str, Any] = {}
        release = None

        if (target_date, target_time) != (appointment["date"], appointment["time"]):
            if actor.id != appointment["patient_id"]:
                raise AuthorizationError("Only patients can request rescheduling")
            if current in TERMINAL_STATUSES:
                raise ConflictError(f"Cannot reschedule a {current.value} appointment")

            ensure_future(parse_date(target_date), target_time, self.clock())
            await ensure_bookable(
                self.store, appointment["doctor_id"], target_date, target_time, exclude_id=appointment_id
            )
            fields.update(
                date=target_date,
                time=target_time,
                status=AppointmentStatus.PENDING.value,
                reminder_sent=False,
            )
            if current == AppointmentStatus.CONFIRMED:
                release = slot_of(appointment)
        elif status is not None and status != current:
            self._check_transition(appointment, current, status, actor)
            if status == AppointmentStatus.CONFIRMED:
                await ensure_bookable(
                    self.store, appointment["doctor_id"], appointment["date"], appointment["time"],
                    exclude_id=appointment_id,
                )
            if current == AppointmentStatus.CONFIRMED:
                release = slot_of(appointment)
            fields["status"] = status.value

        if "notes" in present:
            fields["notes"] = notes

        if not fields:
            return await self._with_party(appointment)

        if fields.get("status") == AppointmentStatus.CONFIRMED.value:
            confirmed = await self.store.confirm_appointment(appointment_id, slot_of(appointment), fields)
            if not confirmed:
                raise ConflictError("Doctor is not available at this time")
            updated = await self.store.get_appointment(appointment_id)
        else:
            updated = await self.store.update_appointment(appointment_id, fields, release_slot=release)

        if "status" in fields and fields["status"] != current.value:
            logger.info("Appointment %s: %s -> %s by %s", appointment_id, current.value, fields["status"], actor.id)

        updated = await self._with_party(updated)
        await notify_parties(self.notifier, updated, "appointment_updated")
        return updated

    async def delete_appointment(self, appointment_id: str, actor: Actor) -> None:
        appointment = await self.store.get_appointment(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if appointment["patient_id"] != actor.id:
            raise AuthorizationError("Not authorized")

        release = None
        if appointment["status"] == AppointmentStatus.CONFIRMED.value:
            if not self.allow_confirmed_delete:
                raise ConflictError("Cancel the confirmed appointment before deleting it")
            release = slot_of(appointment)

        await self.store.delete_appointment(appointment_id, release_slot=release)
        logger.info("Appointment %s removed by patient %s", appointment_id, actor.id)
        await notify_parties(self.notifier, await self._with_party(appointment), "appointment_deleted")

    async def get_appointment(self, appointment_id: str, actor: Actor) -> Dict[str, Any]:
        return await self._with_party(await self._get_for_party(appointment_id, actor))

    async def list_appointments(self, actor: Actor) -> List[Dict[str, Any]]:
        appointments = await self.store.list_user_appointments(actor.id)
        return await self._with_parties(sorted(appointments, key=lambda a: (a["date"], a["time"])))
