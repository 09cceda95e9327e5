import logging
from typing import Optional

from twilio.rest import Client

from ...config import settings
from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import AppointmentNotifier

logger = logging.getLogger(__name__)


class SmsNotifier(AppointmentNotifier):
    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None):
        self.client = client or Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        self.from_number = from_number or settings.TWILIO_PHONE_NUMBER

    def appointment_confirmed(self, appointment: AppointmentDto, receipt_pdf: Optional[bytes]) -> None:
        if not appointment.patient_phone:
            return
        message = self.client.messages.create(
            to=appointment.patient_phone,
            from_=self.from_number,
            body=f"MediBook: your appointment on {appointment.date} at {appointment.time} is confirmed.",
        )
        logger.info(f"Confirmation SMS {message.sid} sent for appointment {appointment.id}")
