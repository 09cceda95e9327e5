from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from ...exceptions import ValidationFailed
from ..ports.appointments_repo import AppointmentsRepository, DoctorDto, WorkingDay

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DAY_UNAVAILABLE = "Doctor is not available on this day"
SLOT_NOT_OFFERED = "Doctor does not offer this time slot"
SLOT_TAKEN = "This time slot is already booked"


@dataclass
class Availability:
    available: bool
    reason: Optional[str] = None


def parse_booking_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationFailed("Invalid date format. Use YYYY-MM-DD")


def working_day_for(doctor: DoctorDto, on: date) -> Optional[WorkingDay]:
    name = WEEKDAYS[on.weekday()]
    return next((d for d in doctor.working_hours if d.day.lower() == name.lower()), None)


@dataclass
class SlotAvailabilityChecker:
    repo: AppointmentsRepository
    enforce_window: bool = False
    advance_days: int = 30
    today: Callable[[], date] = date.today

    def check(self, doctor: DoctorDto, date_str: str, time: str) -> Availability:
        on = parse_booking_date(date_str)
        self._check_window(on)

        day = working_day_for(doctor, on)
        if day is None or not day.is_working:
            return Availability(False, DAY_UNAVAILABLE)
        if time not in day.time_slots:
            return Availability(False, SLOT_NOT_OFFERED)

        taken = {a.time for a in self.repo.list_active_for_doctor_date(doctor.id, date_str)}
        if time in taken:
            return Availability(False, SLOT_TAKEN)
        return Availability(True)

    def day_slots(self, doctor: DoctorDto, date_str: str) -> List[Dict[str, Union[str, bool]]]:
        on = parse_booking_date(date_str)
        day = working_day_for(doctor, on)
        if day is None or not day.is_working:
            return []
        taken = {a.time for a in self.repo.list_active_for_doctor_date(doctor.id, date_str)}
        return [{"time": slot, "isAvailable": slot not in taken} for slot in day.time_slots]

    def _check_window(self, on: date) -> None:
        if not self.enforce_window:
            return
        today = self.today()
        if on < today:
            raise ValidationFailed("Appointment date cannot be in the past")
        if on > today + timedelta(days=self.advance_days):
            raise ValidationFailed(f"Appointments can only be booked up to {self.advance_days} days in advance")
