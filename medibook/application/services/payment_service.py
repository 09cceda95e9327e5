import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...exceptions import GatewayFailure, NotAuthorized, NotFound, PaymentVerificationFailed, ValidationFailed
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.identity import Actor
from ..ports.notifier import ConfirmationScheduler
from ..ports.payment_gateway import GatewayError, PaymentGateway
from .appointment_lifecycle import AppointmentLifecycle, TransitionResult, OFFLINE, PAYMENT_COMPLETED, PAYMENT_REFUND_PENDING
from .confirmation_dispatcher import schedule_confirmation

logger = logging.getLogger(__name__)

GATEWAY_METHODS = ("online", "card")
WALLET_METHODS = ("gpay", "paytm", "phonepe")
PAYMENT_METHODS = GATEWAY_METHODS + WALLET_METHODS + (OFFLINE,)


@dataclass
class GatewayProof:
    order_id: str
    payment_id: str
    signature: str


def _positive_number(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def resolve_amount(raw: Any, existing: Optional[int], fee: int, maximum: int) -> int:
    """Return the amount to charge in minor units.

    The amount already on the payment (the booked fee or the gateway order) wins,
    then the consultation fee. A caller-supplied value is only compared and logged.
    """
    amount = existing if existing and existing > 0 else fee
    amount = min(amount, maximum)
    value = _positive_number(raw)
    if value is not None and int(round(value)) != amount:
        logger.warning(f"Ignoring client amount {raw!r}; charging {amount}")
    return amount


@dataclass
class PaymentService:
    repo: AppointmentsRepository
    lifecycle: AppointmentLifecycle
    gateway: PaymentGateway
    scheduler: Optional[ConfirmationScheduler] = None
    trust_wallet_redirects: bool = True
    consultation_fee: int = 4999
    max_amount: int = 10_000_000
    currency: str = "INR"

    def process_payment(
        self,
        actor: Actor,
        appointment_id: str,
        method: str,
        amount: Any = None,
        currency: Optional[str] = None,
        proof: Optional[GatewayProof] = None,
        order: Optional[Dict[str, Any]] = None,
        verification: Optional[Dict[str, Any]] = None,
    ) -> TransitionResult:
        if method not in PAYMENT_METHODS:
            raise ValidationFailed("Invalid payment method")

        appt = self._load_owned(actor, appointment_id, "Not authorized to pay for this appointment")
        self.lifecycle.ensure_payable(appt)

        amount = resolve_amount(amount, appt.payment.amount, self.consultation_fee, self.max_amount)
        currency = currency or appt.payment.currency or self.currency
        meta = {k: v for k, v in (("order", order), ("verification", verification)) if v}

        if method == OFFLINE:
            return self.lifecycle.defer_payment(appt, amount, currency, actor.user_id)

        if method in WALLET_METHODS and self.trust_wallet_redirects:
            logger.warning(f"Settling {method} payment for appointment {appt.id} without gateway verification")
            result = self.lifecycle.settle_payment(appt, method, amount, currency, actor.user_id, meta=meta)
        else:
            self._verify(appt, proof)
            result = self.lifecycle.settle_payment(
                appt,
                method,
                amount,
                currency,
                actor.user_id,
                gateway=self.gateway.name,
                order_id=proof.order_id,
                payment_id=proof.payment_id,
                signature=proof.signature,
                meta=meta,
            )

        schedule_confirmation(self.scheduler, result)
        return result

    def create_order(self, actor: Actor, appointment_id: str, amount: Any = None) -> Dict[str, Any]:
        appt = self._load_owned(actor, appointment_id, "Not authorized to pay for this appointment")
        self.lifecycle.ensure_payable(appt)
        amount = resolve_amount(amount, appt.payment.amount, self.consultation_fee, self.max_amount)
        currency = appt.payment.currency or self.currency

        try:
            order = self.gateway.create_order(
                amount,
                currency,
                receipt=f"receipt_{appt.id}",
                notes={"appointment_id": appt.id, "user_id": appt.user_id},
            )
        except GatewayError as e:
            logger.error(f"Order creation failed for appointment {appt.id}: {e.message}")
            raise GatewayFailure(e.message)

        self.lifecycle.record_order(appt, self.gateway.name, order.order_id, order.amount, order.currency, actor.user_id)
        return {
            "orderId": order.order_id,
            "amount": order.amount,
            "currency": order.currency,
            "key": self.gateway.key_id,
        }

    def refund(self, actor: Actor, appointment_id: str) -> TransitionResult:
        if not actor.is_admin:
            raise NotAuthorized("Admin access required")
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")

        payment = appt.payment
        if payment.status not in (PAYMENT_COMPLETED, PAYMENT_REFUND_PENDING) or not payment.gateway_payment_id:
            raise ValidationFailed("No completed payment found for this appointment")

        try:
            refund = self.gateway.refund(
                payment.gateway_payment_id,
                payment.amount,
                notes={"reason": "Appointment cancelled", "appointment_id": appt.id},
            )
        except GatewayError as e:
            logger.error(f"Refund failed for appointment {appt.id}: {e.message}")
            raise GatewayFailure(e.message)

        return self.lifecycle.mark_refunded(appt, refund, actor.user_id)

    def _load_owned(self, actor: Actor, appointment_id: str, message: str) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")
        if not actor.is_admin and appt.user_id != actor.user_id:
            raise NotAuthorized(message)
        return appt

    def _verify(self, appt: AppointmentDto, proof: Optional[GatewayProof]) -> None:
        if proof is None or not (proof.order_id and proof.payment_id and proof.signature):
            raise ValidationFailed("Missing payment verification details")
        if appt.payment.gateway_order_id and appt.payment.gateway_order_id != proof.order_id:
            logger.warning(f"Order id mismatch for appointment {appt.id}")
            raise PaymentVerificationFailed("Payment verification failed")
        if not self.gateway.verify_signature(proof.order_id, proof.payment_id, proof.signature):
            logger.warning(f"Invalid payment signature for appointment {appt.id}")
            raise PaymentVerificationFailed("Payment verification failed")
