# medibook/db/models/health/doctor.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ...clock import utc_now

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    specialty: str
    experience: int = Field(default=0)
    location: str = Field(default="")
    image: Optional[str] = None
    is_available: bool = Field(default=True)
    # JSON list of {"day", "isWorking", "timeSlots": [labels]}
    working_hours: str = Field(default="[]")
    created_at: datetime = Field(default_factory=utc_now)
