from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime


class SlotTakenError(Exception):
    """Raised by a repository when the store rejects a second active booking for a slot."""


@dataclass
class WorkingDay:
    day: str
    is_working: bool
    time_slots: List[str] = field(default_factory=list)


@dataclass
class DoctorDto:
    id: str
    user_id: str
    name: str
    specialty: str
    image: Optional[str] = None
    is_available: bool = True
    working_hours: List[WorkingDay] = field(default_factory=list)
    experience: int = 0
    location: str = ""
    phone: Optional[str] = None


@dataclass
class PaymentDto:
    id: str
    status: str = "pending"
    method: Optional[str] = None
    amount: int = 0
    currency: str = "INR"
    gateway: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    gateway_signature: Optional[str] = None
    initiated_at: Optional[datetime] = None
    captured_at: Optional[datetime] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    refund_id: Optional[str] = None
    refund_amount: Optional[int] = None
    refunded_at: Optional[datetime] = None


@dataclass
class AppointmentDto:
    id: str
    doctor_id: str
    user_id: str
    patient_name: str
    patient_email: str
    patient_phone: str
    reason: str
    notes: Optional[str]
    date: str
    time: str
    status: str
    flow: str
    payment: PaymentDto
    created_at: datetime
    # populated from the doctor record, never stored on the appointment
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    doctor_image: Optional[str] = None


@dataclass
class NewAppointment:
    doctor_id: str
    user_id: str
    patient_name: str
    patient_email: str
    patient_phone: str
    reason: str
    notes: Optional[str]
    date: str
    time: str
    status: str
    flow: str
    amount: int
    currency: str


class AppointmentsRepository:
    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        ...

    def get_doctor_for_user(self, user_id: str) -> Optional[DoctorDto]:
        ...

    def list_active_for_doctor_date(self, doctor_id: str, date: str) -> List[AppointmentDto]:
        ...

    def create(self, data: NewAppointment) -> AppointmentDto:
        """Persist a new appointment with its payment record.

        Raises SlotTakenError when another non-cancelled appointment holds the slot.
        """
        ...

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        ...

    def list_for_doctor(self, doctor_id: str) -> List[AppointmentDto]:
        ...

    def list_all(self) -> List[AppointmentDto]:
        ...

    def save(self, appointment: AppointmentDto) -> AppointmentDto:
        """Write status and payment sub-state back to the store (last write wins)."""
        ...
