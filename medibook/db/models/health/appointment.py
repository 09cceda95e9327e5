# medibook/db/models/health/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ...clock import utc_now

ACTIVE_SLOT_PREDICATE = text("status != 'cancelled'")

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # at most one non-cancelled appointment per doctor/date/time
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "date",
            "time",
            unique=True,
            sqlite_where=ACTIVE_SLOT_PREDICATE,
            postgresql_where=ACTIVE_SLOT_PREDICATE,
        ),
    )
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    patient_name: str
    patient_email: str
    patient_phone: str
    reason: str
    notes: Optional[str] = None
    date: str  # YYYY-MM-DD, matched as a plain string
    time: str  # slot label, e.g. "9:00 AM"
    status: str = Field(default="booked")
    flow: str = Field(default="pay_first")  # pay_first, approve_first
    payment_id: str = Field(foreign_key="payments.id", unique=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
