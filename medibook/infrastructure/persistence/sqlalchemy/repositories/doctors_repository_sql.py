import json
from typing import Any, Dict, List, Optional
from sqlmodel import Session, select

from .....db.clock import utc_now
from .....db.models import Appointment, Doctor, User
from .....application.ports.appointments_repo import DoctorDto, WorkingDay
from .....application.ports.doctors_repo import DoctorsRepository


def hours_from_json(raw: Optional[str]) -> List[WorkingDay]:
    if not raw:
        return []
    days = []
    for d in json.loads(raw):
        slots = []
        for slot in d.get("timeSlots", []):
            # older templates stored {"time": ..., "isBooked": ...}; only the label is kept
            label = slot.get("time") if isinstance(slot, dict) else slot
            if label:
                slots.append(label)
        days.append(WorkingDay(day=d.get("day", ""), is_working=bool(d.get("isWorking", False)), time_slots=slots))
    return days


def hours_to_json(days: List[WorkingDay]) -> str:
    return json.dumps([{"day": d.day, "isWorking": d.is_working, "timeSlots": list(d.time_slots)} for d in days])


def doctor_to_dto(d: Doctor, user: Optional[User]) -> DoctorDto:
    return DoctorDto(
        id=d.id,
        user_id=d.user_id,
        name=user.name if user else "Unknown Doctor",
        specialty=d.specialty,
        image=d.image,
        is_available=bool(d.is_available),
        working_hours=hours_from_json(d.working_hours),
        experience=d.experience or 0,
        location=d.location or "",
        phone=user.phone if user else None,
    )


class SqlDoctorsRepository(DoctorsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return select(Doctor, User).join(User, Doctor.user_id == User.id, isouter=True)

    def _first(self, *conditions) -> Optional[DoctorDto]:
        row = self.session.exec(self._query().where(*conditions)).first()
        if not row:
            return None
        doctor, user = row
        return doctor_to_dto(doctor, user)

    def get_by_id(self, doctor_id: str) -> Optional[DoctorDto]:
        return self._first(Doctor.id == doctor_id)

    def get_for_user(self, user_id: str) -> Optional[DoctorDto]:
        return self._first(Doctor.user_id == user_id)

    def list_all(self, specialty: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        query = self._query()
        if specialty:
            query = query.where(Doctor.specialty.ilike(f"%{specialty}%"))
        if available is not None:
            query = query.where(Doctor.is_available == available)
        rows = self.session.exec(query.order_by(User.name, Doctor.created_at)).all()
        return [doctor_to_dto(doctor, user) for doctor, user in rows]

    def user_exists(self, user_id: str) -> bool:
        return self.session.get(User, user_id) is not None

    def create(self, user_id: str, specialty: str, experience: int, location: str, image: Optional[str], working_hours: List[WorkingDay]) -> DoctorDto:
        user = self.session.get(User, user_id)
        doctor = Doctor(
            user_id=user_id,
            specialty=specialty,
            experience=experience,
            location=location,
            image=image,
            working_hours=hours_to_json(working_hours),
        )
        if user and user.role != "admin":
            user.role = "doctor"
            self.session.add(user)
        self.session.add(doctor)
        self.session.commit()
        self.session.refresh(doctor)
        return doctor_to_dto(doctor, user)

    def update(self, doctor_id: str, changes: Dict[str, Any], user_changes: Optional[Dict[str, Any]] = None) -> DoctorDto:
        doctor = self.session.get(Doctor, doctor_id)
        for key, value in changes.items():
            setattr(doctor, key, value)
        self.session.add(doctor)
        if user_changes:
            user = self.session.get(User, doctor.user_id)
            if user:
                for key, value in user_changes.items():
                    setattr(user, key, value)
                user.updated_at = utc_now()
                self.session.add(user)
        self.session.commit()
        return self.get_by_id(doctor_id)

    def update_working_hours(self, doctor_id: str, working_hours: List[WorkingDay]) -> DoctorDto:
        doctor = self.session.get(Doctor, doctor_id)
        doctor.working_hours = hours_to_json(working_hours)
        self.session.add(doctor)
        self.session.commit()
        return self.get_by_id(doctor_id)

    def has_appointments(self, doctor_id: str) -> bool:
        return self.session.exec(select(Appointment.id).where(Appointment.doctor_id == doctor_id)).first() is not None

    def delete(self, doctor_id: str) -> None:
        doctor = self.session.get(Doctor, doctor_id)
        user = self.session.get(User, doctor.user_id)
        if user and user.role == "doctor":
            user.role = "patient"
            user.updated_at = utc_now()
            self.session.add(user)
        self.session.delete(doctor)
        self.session.commit()
