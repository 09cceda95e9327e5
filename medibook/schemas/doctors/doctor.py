# medibook/schemas/doctors/doctor.py
from pydantic import Field
from typing import List, Optional, Union

from ..common.common import CamelModel
from ...application.ports.appointments_repo import DoctorDto, WorkingDay


class LegacySlot(CamelModel):
    """Older clients send slots as objects; only the label survives."""

    time: str
    is_booked: Optional[bool] = None


class WorkingDaySchema(CamelModel):
    day: str
    is_working: bool = False
    time_slots: List[Union[str, LegacySlot]] = []

    def to_domain(self) -> WorkingDay:
        labels = [s if isinstance(s, str) else s.time for s in self.time_slots]
        return WorkingDay(day=self.day, is_working=self.is_working, time_slots=labels)


class WorkingHoursUpdate(CamelModel):
    working_hours: List[WorkingDaySchema] = Field(min_length=1, max_length=7)


class SlotAvailability(CamelModel):
    time: str
    is_available: bool


class DoctorCreate(CamelModel):
    user_id: str
    specialty: str = Field(min_length=1, max_length=100)
    experience: int = Field(default=0, ge=0, le=80)
    location: str = ""
    image: Optional[str] = None
    working_hours: Optional[List[WorkingDaySchema]] = None


class DoctorResponse(CamelModel):
    id: str
    user_id: str
    name: str
    specialty: str
    image: Optional[str] = None
    is_available: bool
    experience: int = 0
    location: str = ""
    phone: Optional[str] = None
    working_hours: List[WorkingDaySchema]

    @classmethod
    def from_dto(cls, d: DoctorDto) -> "DoctorResponse":
        return cls(
            id=d.id,
            user_id=d.user_id,
            name=d.name,
            specialty=d.specialty,
            image=d.image,
            is_available=d.is_available,
            experience=d.experience,
            location=d.location,
            phone=d.phone,
            working_hours=[WorkingDaySchema(day=w.day, is_working=w.is_working, time_slots=list(w.time_slots)) for w in d.working_hours],
        )


class DoctorSummary(CamelModel):
    """Directory entry; the weekly template is only on the detail view."""

    id: str
    name: str
    specialty: str
    experience: int
    location: str
    image: Optional[str] = None
    is_available: bool

    @classmethod
    def from_dto(cls, d: DoctorDto) -> "DoctorSummary":
        return cls(
            id=d.id,
            name=d.name,
            specialty=d.specialty,
            experience=d.experience,
            location=d.location,
            image=d.image,
            is_available=d.is_available,
        )


class DoctorProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    specialty: Optional[str] = Field(default=None, max_length=100)
    experience: Optional[int] = Field(default=None, ge=0, le=80)
    location: Optional[str] = Field(default=None, max_length=200)
    image: Optional[str] = None


class DoctorAdminUpdate(CamelModel):
    specialty: Optional[str] = Field(default=None, max_length=100)
    experience: Optional[int] = Field(default=None, ge=0, le=80)
    location: Optional[str] = Field(default=None, max_length=200)
    image: Optional[str] = None
    is_available: Optional[bool] = None
