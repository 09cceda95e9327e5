import copy
import hashlib
import hmac
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import jwt
import pytest

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from medibook.application.ports.appointments_repo import (  # noqa: E402
    AppointmentDto,
    DoctorDto,
    NewAppointment,
    PaymentDto,
    SlotTakenError,
    WorkingDay,
)
from medibook.application.ports.payment_gateway import GatewayError, GatewayOrder, GatewayRefund  # noqa: E402
from medibook.config import settings  # noqa: E402

GATEWAY_SECRET = "rzp_test_secret"

WEEKDAY_TEMPLATE = [
    WorkingDay("Monday", True, ["9:00 AM", "10:00 AM", "11:00 AM", "2:00 PM", "3:00 PM"]),
    WorkingDay("Tuesday", True, ["9:00 AM", "10:00 AM"]),
    WorkingDay("Wednesday", True, ["9:00 AM", "10:00 AM"]),
    WorkingDay("Thursday", True, ["9:00 AM", "10:00 AM"]),
    WorkingDay("Friday", True, ["9:00 AM", "10:00 AM"]),
    WorkingDay("Saturday", False, []),
    WorkingDay("Sunday", False, []),
]

# 2030-01-07 is a Monday, 2030-01-06 a Sunday
MONDAY = "2030-01-07"
SUNDAY = "2030-01-06"


class FakeApptRepo:
    """In-memory store that hands out copies, like a real session would."""

    def __init__(self):
        self._id = 1
        self.appts: Dict[str, AppointmentDto] = {}
        self.doctors: Dict[str, DoctorDto] = {}
        self.race_on_create = False
        self.saves = 0

    def add_doctor(self, doctor_id: str = "doc-1", user_id: str = "doc-user-1", name: str = "Dr. Rao", hours: Optional[List[WorkingDay]] = None, is_available: bool = True) -> DoctorDto:
        d = DoctorDto(id=doctor_id, user_id=user_id, name=name, specialty="Cardiology", is_available=is_available, working_hours=copy.deepcopy(hours if hours is not None else WEEKDAY_TEMPLATE))
        self.doctors[doctor_id] = d
        return d

    def get_doctor(self, doctor_id: str):
        return copy.deepcopy(self.doctors.get(doctor_id))

    def get_doctor_for_user(self, user_id: str):
        return copy.deepcopy(next((d for d in self.doctors.values() if d.user_id == user_id), None))

    def list_active_for_doctor_date(self, doctor_id: str, date: str):
        return [copy.deepcopy(a) for a in self.appts.values() if a.doctor_id == doctor_id and a.date == date and a.status != "cancelled"]

    def create(self, data: NewAppointment):
        taken = any(a.time == data.time for a in self.list_active_for_doctor_date(data.doctor_id, data.date))
        if self.race_on_create or taken:
            raise SlotTakenError("taken")
        appt_id = f"appt-{self._id}"
        self._id += 1
        doctor = self.doctors.get(data.doctor_id)
        a = AppointmentDto(
            id=appt_id,
            doctor_id=data.doctor_id,
            user_id=data.user_id,
            patient_name=data.patient_name,
            patient_email=data.patient_email,
            patient_phone=data.patient_phone,
            reason=data.reason,
            notes=data.notes,
            date=data.date,
            time=data.time,
            status=data.status,
            flow=data.flow,
            payment=PaymentDto(id=f"pay-{appt_id}", amount=data.amount, currency=data.currency),
            created_at=datetime.now(timezone.utc),
            doctor_name=doctor.name if doctor else None,
            doctor_specialty=doctor.specialty if doctor else None,
        )
        self.appts[appt_id] = a
        return copy.deepcopy(a)

    def get_by_id(self, appointment_id: str):
        return copy.deepcopy(self.appts.get(appointment_id))

    def list_for_user(self, user_id: str):
        return [copy.deepcopy(a) for a in self.appts.values() if a.user_id == user_id]

    def list_for_doctor(self, doctor_id: str):
        return [copy.deepcopy(a) for a in self.appts.values() if a.doctor_id == doctor_id]

    def list_all(self):
        return [copy.deepcopy(a) for a in self.appts.values()]

    def save(self, appointment: AppointmentDto):
        self.saves += 1
        self.appts[appointment.id] = copy.deepcopy(appointment)
        return copy.deepcopy(appointment)


@dataclass
class FakeGateway:
    name: str = "razorpay"
    key_id: str = "rzp_test_key"
    secret: str = GATEWAY_SECRET
    fail: bool = False
    orders: List[dict] = field(default_factory=list)
    refunds: List[dict] = field(default_factory=list)

    def create_order(self, amount, currency, receipt, notes):
        if self.fail:
            raise GatewayError("gateway unavailable")
        self.orders.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": notes})
        return GatewayOrder(order_id=f"order_{len(self.orders)}", amount=amount, currency=currency)

    def refund(self, payment_id, amount, notes):
        if self.fail:
            raise GatewayError("The refund amount provided is greater than amount captured")
        self.refunds.append({"payment_id": payment_id, "amount": amount, "notes": notes})
        return GatewayRefund(refund_id=f"rfnd_{len(self.refunds)}", amount=amount, status="processed")

    def verify_signature(self, order_id, payment_id, signature):
        return bool(signature) and hmac.compare_digest(sign(order_id, payment_id, self.secret), signature)


@dataclass
class RecordingScheduler:
    scheduled: List[AppointmentDto] = field(default_factory=list)

    def schedule(self, appointment):
        self.scheduled.append(appointment)


@dataclass
class RecordingAudit:
    entries: List[dict] = field(default_factory=list)

    def log(self, action, appointment_id, actor_id=None, success=True, details=None):
        self.entries.append({"action": action, "appointment_id": appointment_id, "actor_id": actor_id, "details": details or {}})


def sign(order_id: str, payment_id: str, secret: str = GATEWAY_SECRET) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def create_jwt_token(data: dict, expires_minutes: int = 60 * 24) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes), "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def repo():
    r = FakeApptRepo()
    r.add_doctor()
    return r


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def audit():
    return RecordingAudit()
