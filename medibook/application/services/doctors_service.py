import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from ...exceptions import NotAuthorized, NotFound, ValidationFailed
from ..ports.appointments_repo import DoctorDto, WorkingDay
from ..ports.doctors_repo import DoctorsRepository
from ..ports.identity import Actor
from .slot_availability import SlotAvailabilityChecker, WEEKDAYS

logger = logging.getLogger(__name__)

DEFAULT_TIME_SLOTS = ["9:00 AM", "10:00 AM", "11:00 AM", "2:00 PM", "3:00 PM"]

ALL_SPECIALTIES = "all specialties"

# columns each caller may change
PROFILE_FIELDS = ("specialty", "experience", "location", "image")
ADMIN_FIELDS = PROFILE_FIELDS + ("is_available",)
USER_FIELDS = ("name", "phone")


def default_working_hours() -> List[WorkingDay]:
    """Monday to Friday with the standard clinic slots, weekends off."""
    return [
        WorkingDay(day=day, is_working=day not in ("Saturday", "Sunday"), time_slots=list(DEFAULT_TIME_SLOTS) if day not in ("Saturday", "Sunday") else [])
        for day in WEEKDAYS
    ]


def validate_working_hours(days: List[WorkingDay]) -> List[WorkingDay]:
    seen = set()
    cleaned = []
    for d in days:
        name = d.day.strip().capitalize()
        if name not in WEEKDAYS:
            raise ValidationFailed(f"Invalid day: {d.day}")
        if name in seen:
            raise ValidationFailed(f"Duplicate day: {name}")
        seen.add(name)
        slots = []
        for label in d.time_slots:
            label = label.strip()
            try:
                datetime.strptime(label, "%I:%M %p")
            except ValueError:
                raise ValidationFailed(f"Invalid time slot: {label}. Use e.g. 9:00 AM")
            if label not in slots:
                slots.append(label)
        cleaned.append(WorkingDay(day=name, is_working=d.is_working, time_slots=slots))
    return cleaned


def split_changes(changes: Dict[str, Any], doctor_fields: Tuple[str, ...], user_fields: Tuple[str, ...] = ()) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Drop unset values and unknown keys, then check what remains."""
    given = {k: v for k, v in changes.items() if v is not None}
    doctor = {k: v for k, v in given.items() if k in doctor_fields}
    user = {k: v for k, v in given.items() if k in user_fields}
    for key in ("specialty", "name"):
        for bucket in (doctor, user):
            if key in bucket:
                bucket[key] = str(bucket[key]).strip()
                if not bucket[key]:
                    raise ValidationFailed(f"{key.capitalize()} cannot be empty")
    if "experience" in doctor and doctor["experience"] < 0:
        raise ValidationFailed("Experience cannot be negative")
    return doctor, user


@dataclass
class DoctorsService:
    repo: DoctorsRepository
    checker: SlotAvailabilityChecker

    def list_doctors(self, specialty: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        specialty = (specialty or "").strip()
        if specialty.lower() == ALL_SPECIALTIES:
            specialty = ""
        return self.repo.list_all(specialty=specialty or None, available=available)

    def get_doctor(self, doctor_id: str) -> DoctorDto:
        doctor = self.repo.get_by_id(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def availability(self, doctor_id: str, date: str) -> List[Dict[str, Union[str, bool]]]:
        doctor = self.repo.get_by_id(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        return self.checker.day_slots(doctor, date)

    def update_working_hours(self, actor: Actor, working_hours: List[WorkingDay]) -> DoctorDto:
        doctor = self.repo.get_for_user(actor.user_id)
        if not doctor:
            raise NotFound("Doctor profile not found")
        return self.repo.update_working_hours(doctor.id, validate_working_hours(working_hours))

    def create_doctor(
        self,
        actor: Actor,
        user_id: str,
        specialty: str,
        experience: int = 0,
        location: str = "",
        image: Optional[str] = None,
        working_hours: Optional[List[WorkingDay]] = None,
    ) -> DoctorDto:
        if not actor.is_admin:
            raise NotAuthorized("Admin access required")
        if not self.repo.user_exists(user_id):
            raise NotFound("User not found")
        if self.repo.get_for_user(user_id):
            raise ValidationFailed("Doctor profile already exists for this user")
        hours = validate_working_hours(working_hours) if working_hours else default_working_hours()
        return self.repo.create(user_id, specialty, experience, location, image, hours)

    def update_profile(self, actor: Actor, changes: Dict[str, Any]) -> DoctorDto:
        doctor = self.repo.get_for_user(actor.user_id)
        if not doctor:
            raise NotFound("Doctor profile not found")
        doctor_changes, user_changes = split_changes(changes, PROFILE_FIELDS, USER_FIELDS)
        return self.repo.update(doctor.id, doctor_changes, user_changes)

    def update_doctor(self, actor: Actor, doctor_id: str, changes: Dict[str, Any]) -> DoctorDto:
        if not actor.is_admin:
            raise NotAuthorized("Admin access required")
        self.get_doctor(doctor_id)
        doctor_changes, _ = split_changes(changes, ADMIN_FIELDS)
        return self.repo.update(doctor_id, doctor_changes)

    def delete_doctor(self, actor: Actor, doctor_id: str) -> None:
        if not actor.is_admin:
            raise NotAuthorized("Admin access required")
        self.get_doctor(doctor_id)
        if self.repo.has_appointments(doctor_id):
            raise ValidationFailed("Doctor has appointments; set isAvailable to false instead")
        self.repo.delete(doctor_id)
        logger.info(f"Doctor {doctor_id} deleted by {actor.user_id}")
