# medibook/schemas/payments/payment.py
from typing import Any, Dict, Optional

from ..common.common import CamelModel
from ...application.ports.appointments_repo import AppointmentDto
from ...application.services.appointment_lifecycle import PAYMENT_COMPLETED


class RazorpayProof(CamelModel):
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    signature: Optional[str] = None


class PaymentRequest(CamelModel):
    payment_method: str
    # left untyped: unusable amounts fall back to the stored fee instead of failing validation
    amount: Any = None
    currency: Optional[str] = None
    razorpay: Optional[RazorpayProof] = None
    order: Optional[Dict[str, Any]] = None
    verification: Optional[Dict[str, Any]] = None


class PaymentResponse(CamelModel):
    id: str
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    amount: int
    receipt_available: bool

    @classmethod
    def from_dto(cls, a: AppointmentDto) -> "PaymentResponse":
        return cls(
            id=a.id,
            status=a.status,
            payment_status=a.payment.status,
            payment_method=a.payment.method,
            amount=a.payment.amount,
            receipt_available=a.payment.status == PAYMENT_COMPLETED,
        )


class CreateOrderRequest(CamelModel):
    appointment_id: str
    amount: Any = None


class RefundRequest(CamelModel):
    appointment_id: str
