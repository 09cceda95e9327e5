import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..ports.appointments_repo import AppointmentDto
from ..ports.notifier import AppointmentNotifier, ReceiptRenderer

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationDispatcher:
    """Fans a confirmed appointment out to every notification channel.

    Runs after the transition has committed, so nothing here may raise.
    """

    notifiers: List[AppointmentNotifier] = field(default_factory=list)
    renderer: Optional[ReceiptRenderer] = None

    def dispatch(self, appointment: AppointmentDto) -> None:
        receipt = None
        if self.renderer is not None:
            try:
                receipt = self.renderer.render(appointment)
            except Exception:
                logger.exception(f"Failed to render receipt for appointment {appointment.id}")

        for notifier in self.notifiers:
            try:
                notifier.appointment_confirmed(appointment, receipt)
            except Exception:
                logger.exception(f"{type(notifier).__name__} failed for appointment {appointment.id}")


def schedule_confirmation(scheduler, result) -> None:
    """Hand a committed transition to the scheduler when it confirmed the appointment."""
    if scheduler is None or not result.needs_confirmation:
        return
    try:
        scheduler.schedule(result.appointment)
    except Exception:
        logger.exception(f"Could not schedule confirmation for appointment {result.appointment.id}")
