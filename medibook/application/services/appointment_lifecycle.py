import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Optional

from ...exceptions import ValidationFailed
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.audit_logger import AuditLogger
from ..ports.payment_gateway import GatewayRefund

logger = logging.getLogger(__name__)

PAY_FIRST = "pay_first"
APPROVE_FIRST = "approve_first"

# payment sub-state
PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_REFUND_PENDING = "refund_pending"
PAYMENT_REFUNDED = "refunded"

OFFLINE = "offline"

# statuses a doctor or admin may ask for directly
STATUS_CHANGE_TARGETS = ("pending", "approved", "confirmed", "completed", "cancelled")

VALID_NEXT = {
    "pending": {"approved", "cancelled"},
    "booked": {"confirmed", "cancelled"},
    "approved": {"confirmed", "cancelled"},
    "unpaid": {"confirmed", "cancelled"},
    "paid": {"confirmed", "completed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# confirmed is only reachable from these once the payment is settled or deferred offline
CONFIRM_NEEDS_PAYMENT = {"booked", "approved", "unpaid"}

PAYABLE_STATUSES = {"booked", "approved", "unpaid", "paid", "confirmed"}

REFUND_NOTICE = "Appointment cancelled. Your payment will be refunded manually within 24-48 hours."
CANCELLED_MESSAGE = "Appointment cancelled successfully"


@dataclass
class TransitionResult:
    appointment: AppointmentDto
    previous_status: str
    previous_payment_status: str
    message: Optional[str] = None

    @property
    def needs_confirmation(self) -> bool:
        """True when this transition entered confirmed or completed the payment."""
        appt = self.appointment
        entered_confirmed = appt.status == "confirmed" and self.previous_status != "confirmed"
        payment_settled = appt.payment.status == PAYMENT_COMPLETED and self.previous_payment_status != PAYMENT_COMPLETED
        return entered_confirmed or payment_settled


def initial_status(flow: str) -> str:
    if flow == APPROVE_FIRST:
        return "pending"
    if flow == PAY_FIRST:
        return "booked"
    raise ValueError(f"Unknown booking flow: {flow}")


@dataclass
class AppointmentLifecycle:
    """Owns every write to an appointment's status and its payment sub-state."""

    repo: AppointmentsRepository
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = partial(datetime.now, timezone.utc)

    def change_status(self, appt: AppointmentDto, target: str, actor_id: Optional[str] = None) -> TransitionResult:
        if target not in STATUS_CHANGE_TARGETS:
            raise ValidationFailed("Invalid status")
        if target == "cancelled":
            return self.cancel(appt, actor_id)

        self._ensure_not_terminal(appt)
        if target not in VALID_NEXT.get(appt.status, set()):
            raise ValidationFailed(f"Cannot change status from {appt.status} to {target}")
        if target == "confirmed" and appt.status in CONFIRM_NEEDS_PAYMENT and not self._payment_allows_confirmation(appt):
            raise ValidationFailed("Appointment cannot be confirmed until payment is completed")

        return self._commit(appt, "appointment.status_changed", actor_id, status=target)

    def cancel(self, appt: AppointmentDto, actor_id: Optional[str] = None) -> TransitionResult:
        if appt.status == "cancelled":
            raise ValidationFailed("Appointment is already cancelled")
        if appt.status == "completed":
            raise ValidationFailed("Cannot cancel a completed appointment")

        if appt.payment.status == PAYMENT_COMPLETED:
            return self._commit(
                appt,
                "appointment.cancelled",
                actor_id,
                status="cancelled",
                payment_status=PAYMENT_REFUND_PENDING,
                message=REFUND_NOTICE,
            )
        return self._commit(appt, "appointment.cancelled", actor_id, status="cancelled", message=CANCELLED_MESSAGE)

    def settle_payment(
        self,
        appt: AppointmentDto,
        method: str,
        amount: int,
        currency: str,
        actor_id: Optional[str] = None,
        gateway: Optional[str] = None,
        order_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        signature: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> TransitionResult:
        self.ensure_payable(appt)
        payment = appt.payment
        payment.method = method
        payment.amount = amount
        payment.currency = currency
        if gateway:
            payment.gateway = gateway
        if order_id:
            payment.gateway_order_id = order_id
        if payment_id:
            payment.gateway_payment_id = payment_id
        if signature:
            payment.gateway_signature = signature
        if meta:
            payment.meta = {**payment.meta, **meta}
        payment.captured_at = self.clock()
        return self._commit(
            appt,
            "payment.completed",
            actor_id,
            status="confirmed",
            payment_status=PAYMENT_COMPLETED,
            message="Payment successful. Appointment confirmed.",
        )

    def defer_payment(self, appt: AppointmentDto, amount: int, currency: str, actor_id: Optional[str] = None) -> TransitionResult:
        """Patient elects to pay at the clinic; the status is left as it is."""
        self.ensure_payable(appt)
        appt.payment.method = OFFLINE
        appt.payment.amount = amount
        appt.payment.currency = currency
        return self._commit(
            appt,
            "payment.deferred",
            actor_id,
            payment_status=PAYMENT_PENDING,
            message="Offline payment selected. Please pay at the clinic.",
        )

    def record_order(self, appt: AppointmentDto, gateway: str, order_id: str, amount: int, currency: str, actor_id: Optional[str] = None) -> AppointmentDto:
        self.ensure_payable(appt)
        appt.payment.gateway = gateway
        appt.payment.gateway_order_id = order_id
        appt.payment.amount = amount
        appt.payment.currency = currency
        appt.payment.initiated_at = self.clock()
        return self._commit(appt, "payment.order_created", actor_id, details={"order_id": order_id}).appointment

    def mark_refunded(self, appt: AppointmentDto, refund: GatewayRefund, actor_id: Optional[str] = None) -> TransitionResult:
        appt.payment.refund_id = refund.refund_id
        appt.payment.refund_amount = refund.amount
        appt.payment.refunded_at = self.clock()
        return self._commit(
            appt,
            "payment.refunded",
            actor_id,
            status="cancelled",
            payment_status=PAYMENT_REFUNDED,
            message="Refund processed successfully. Amount will be credited within 24-48 hours.",
            details={"refund_id": refund.refund_id},
        )

    def _payment_allows_confirmation(self, appt: AppointmentDto) -> bool:
        return appt.payment.status == PAYMENT_COMPLETED or appt.payment.method == OFFLINE

    def _ensure_not_terminal(self, appt: AppointmentDto) -> None:
        if appt.status == "cancelled":
            raise ValidationFailed("Appointment is already cancelled")
        if appt.status == "completed":
            raise ValidationFailed("Appointment is already completed")

    def ensure_payable(self, appt: AppointmentDto) -> None:
        if appt.status == "pending":
            raise ValidationFailed("Appointment must be approved by the doctor before payment")
        self._ensure_not_terminal(appt)
        if appt.payment.status == PAYMENT_COMPLETED:
            raise ValidationFailed("Payment already completed for this appointment")
        if appt.status not in PAYABLE_STATUSES:
            raise ValidationFailed(f"Appointment in status {appt.status} cannot be paid")

    def _commit(
        self,
        appt: AppointmentDto,
        action: str,
        actor_id: Optional[str],
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> TransitionResult:
        previous_status = appt.status
        previous_payment_status = appt.payment.status
        if status is not None:
            appt.status = status
        if payment_status is not None:
            appt.payment.status = payment_status
        saved = self.repo.save(appt)

        if self.audit:
            entry = {
                "from_status": previous_status,
                "to_status": saved.status,
                "from_payment_status": previous_payment_status,
                "to_payment_status": saved.payment.status,
            }
            entry.update(details or {})
            self.audit.log(action, saved.id, actor_id=actor_id, details=entry)
        logger.info(f"Appointment {saved.id}: {previous_status}/{previous_payment_status} -> {saved.status}/{saved.payment.status}")
        return TransitionResult(saved, previous_status, previous_payment_status, message)
