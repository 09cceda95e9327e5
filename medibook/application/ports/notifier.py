from typing import Optional, Protocol

from .appointments_repo import AppointmentDto


class AppointmentNotifier(Protocol):
    def appointment_confirmed(self, appointment: AppointmentDto, receipt_pdf: Optional[bytes]) -> None:
        ...


class ReceiptRenderer(Protocol):
    def render(self, appointment: AppointmentDto) -> bytes:
        ...


class ConfirmationScheduler(Protocol):
    """Hands a confirmed appointment to the notification channels without blocking the caller."""

    def schedule(self, appointment: AppointmentDto) -> None:
        ...
