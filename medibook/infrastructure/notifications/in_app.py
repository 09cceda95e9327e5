import json
import logging
from typing import Callable, Optional

from sqlmodel import Session

from ...db.models import Notification
from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import AppointmentNotifier

logger = logging.getLogger(__name__)


class InAppNotifier(AppointmentNotifier):
    """Stores a notification row for the patient.

    Background work outlives the request session, so a fresh session is opened per call.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def appointment_confirmed(self, appointment: AppointmentDto, receipt_pdf: Optional[bytes]) -> None:
        with self.session_factory() as session:
            session.add(Notification(
                user_id=appointment.user_id,
                type="appointment_confirmed",
                title="Appointment confirmed",
                message=f"Your appointment with {appointment.doctor_name or 'your doctor'} on {appointment.date} at {appointment.time} is confirmed.",
                data=json.dumps({"appointmentId": appointment.id, "receiptAvailable": receipt_pdf is not None}),
            ))
            session.commit()
        logger.info(f"In-app notification stored for appointment {appointment.id}")
