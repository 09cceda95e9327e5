# medibook/schemas/appointments/appointment.py
from pydantic import Field
from typing import Optional
from datetime import datetime

from ..common.common import CamelModel
from ...application.ports.appointments_repo import AppointmentDto, PaymentDto


class AppointmentCreate(CamelModel):
    doctor_id: str
    patient_name: str = Field(min_length=1, max_length=100)
    patient_email: str = Field(min_length=3, max_length=100)
    patient_phone: str = Field(min_length=5, max_length=20)
    reason: str = Field(min_length=1, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)
    date: str  # YYYY-MM-DD
    time: str  # slot label, e.g. "9:00 AM"


class StatusUpdate(CamelModel):
    status: str


class AppointmentResponse(CamelModel):
    id: str
    doctor_id: str
    user_id: str
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    doctor_image: Optional[str] = None
    patient_name: str
    patient_email: str
    patient_phone: str
    reason: str
    notes: Optional[str] = None
    date: str
    time: str
    status: str
    flow: str
    payment_status: str
    payment_method: Optional[str] = None
    amount: int
    currency: str
    created_at: datetime

    @classmethod
    def from_dto(cls, a: AppointmentDto) -> "AppointmentResponse":
        return cls(
            id=a.id,
            doctor_id=a.doctor_id,
            user_id=a.user_id,
            doctor_name=a.doctor_name,
            doctor_specialty=a.doctor_specialty,
            doctor_image=a.doctor_image,
            patient_name=a.patient_name,
            patient_email=a.patient_email,
            patient_phone=a.patient_phone,
            reason=a.reason,
            notes=a.notes,
            date=a.date,
            time=a.time,
            status=a.status,
            flow=a.flow,
            payment_status=a.payment.status,
            payment_method=a.payment.method,
            amount=a.payment.amount,
            currency=a.payment.currency,
            created_at=a.created_at,
        )


class PaymentStatusResponse(CamelModel):
    payment_status: str
    payment_method: Optional[str] = None
    amount: int

    @classmethod
    def from_dto(cls, p: PaymentDto) -> "PaymentStatusResponse":
        return cls(payment_status=p.status, payment_method=p.method, amount=p.amount)
