import logging
import smtplib
import ssl
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ...config import settings
from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import AppointmentNotifier

logger = logging.getLogger(__name__)


class EmailNotifier(AppointmentNotifier):
    def __init__(self, host: Optional[str] = None, port: Optional[int] = None, username: Optional[str] = None, password: Optional[str] = None, use_tls: Optional[bool] = None, from_address: Optional[str] = None, smtp_factory=None):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.from_address = from_address or settings.EMAIL_FROM_ADDRESS
        self.smtp_factory = smtp_factory

    def build_message(self, appointment: AppointmentDto, receipt_pdf: Optional[bytes]) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = f"Appointment confirmed - {appointment.date} {appointment.time}"
        msg["From"] = self.from_address
        msg["To"] = appointment.patient_email

        body = (
            f"<p>Hi {appointment.patient_name},</p>"
            f"<p>Your appointment with <b>{appointment.doctor_name or 'your doctor'}</b> "
            f"on <b>{appointment.date}</b> at <b>{appointment.time}</b> is confirmed.</p>"
        )
        if receipt_pdf:
            body += "<p>Your payment receipt is attached.</p>"
        msg.attach(MIMEText(body, "html"))

        if receipt_pdf:
            part = MIMEBase("application", "pdf")
            part.set_payload(receipt_pdf)
            encoders.encode_base64(part)
            part.add_header("Content-Disposition", f'attachment; filename="receipt-{appointment.id}.pdf"')
            msg.attach(part)
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.smtp_factory is not None:
            return self.smtp_factory(self.host, self.port)
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, context=ssl.create_default_context(), timeout=30)
        server = smtplib.SMTP(self.host, self.port, timeout=30)
        if self.use_tls:
            server.starttls(context=ssl.create_default_context())
        return server

    def appointment_confirmed(self, appointment: AppointmentDto, receipt_pdf: Optional[bytes]) -> None:
        if not self.host:
            logger.debug("SMTP not configured; skipping confirmation email")
            return
        if not appointment.patient_email:
            return
        msg = self.build_message(appointment, receipt_pdf)
        server = self._connect()
        try:
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [appointment.patient_email], msg.as_string())
        finally:
            server.quit()
        logger.info(f"Confirmation email sent for appointment {appointment.id}")
