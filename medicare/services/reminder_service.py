import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict

from medicare.models import AppointmentStatus
from medicare.services.clock import Clock, clinic_now
from medicare.services.conflict_checker import parse_date, to_minutes

logger = logging.getLogger(__name__)


def appointment_start(appointment: Dict[str, Any]) -> datetime:
    start = datetime.combine(parse_date(appointment["date"]), datetime.min.time())
    return start + timedelta(minutes=to_minutes(appointment["time"]))


class ReminderService:
    """Emails both parties ahead of confirmed appointments"""

    def __init__(self, store, email_service, clock: Clock = clinic_now, lead_hours: int = 24):
        self.store = store
        self.email_service = email_service
        self.clock = clock
        self.lead_hours = lead_hours

    async def _remind(self, appointment: Dict[str, Any]) -> bool:
        patient = await self.store.get_user(appointment["patient_id"])
        doctor = await self.store.get_user(appointment["doctor_id"])
        if not patient or not doctor:
            logger.warning("Skipping reminder for %s: participant missing", appointment["id"])
            return False

        when = f"{appointment['date']} at {appointment['time']}"
        sent = False
        if patient.get("email"):
            sent |= await self.email_service.send(
                patient["email"],
                "Appointment Reminder",
                f"Hello {patient.get('name', '')},\n\n"
                f"This is a reminder of your {appointment['type']} appointment with "
                f"Dr. {doctor.get('name', '')} on {when}.\n",
            )
        if doctor.get("email"):
            sent |= await self.email_service.send(
                doctor["email"],
                "Upcoming Appointment",
                f"Hello Dr. {doctor.get('name', '')},\n\n"
                f"You have an appointment with {patient.get('name', '')} on {when}.\n"
                f"Reason: {appointment.get('reason', '')}\n",
            )
        return sent

    async def send_due_reminders(self) -> int:
        """
        Remind confirmed appointments starting within the lead time

        Returns:
            Number of appointments reminded in this pass
        """
        now = self.clock()
        horizon = now + timedelta(hours=self.lead_hours)
        due = await self.store.find_appointments(
            status=AppointmentStatus.CONFIRMED.value,
            reminder_sent=False,
        )

        reminded = 0
        for appointment in due:
            if not now < appointment_start(appointment) <= horizon:
                continue
            try:
                if await self._remind(appointment):
                    await self.store.update_appointment(appointment["id"], {"reminder_sent": True})
                    reminded += 1
            except Exception:
                logger.exception("Reminder for appointment %s failed", appointment["id"])

        if reminded:
            logger.info("Sent reminders for %d appointments", reminded)
        return reminded

    async def run_forever(self, interval_seconds: int) -> None:
        while True:
            logger.info("Checking appointment reminders...")
            try:
                await self.send_due_reminders()
            except Exception:
                logger.exception("Reminder pass failed")
            await asyncio.sleep(interval_seconds)
