from datetime import date

import pytest
from fastapi import HTTPException

from medibook.application.ports.appointments_repo import NewAppointment
from medibook.application.services.slot_availability import (
    DAY_UNAVAILABLE,
    SLOT_NOT_OFFERED,
    SLOT_TAKEN,
    SlotAvailabilityChecker,
)

from conftest import MONDAY, SUNDAY


def book(repo, time="9:00 AM", on=MONDAY):
    return repo.create(NewAppointment("doc-1", "patient-1", "Asha", "asha@example.com", "+919800000000", "Checkup", None, on, time, "booked", "pay_first", 4999, "INR"))


def test_free_slot_is_available(repo):
    checker = SlotAvailabilityChecker(repo=repo)
    result = checker.check(repo.get_doctor("doc-1"), MONDAY, "9:00 AM")
    assert result.available is True
    assert result.reason is None


def test_non_working_day(repo):
    checker = SlotAvailabilityChecker(repo=repo)
    result = checker.check(repo.get_doctor("doc-1"), SUNDAY, "9:00 AM")
    assert result.available is False
    assert result.reason == DAY_UNAVAILABLE


def test_day_missing_from_template(repo):
    doctor = repo.add_doctor("doc-2", "doc-user-2", hours=[])
    result = SlotAvailabilityChecker(repo=repo).check(doctor, MONDAY, "9:00 AM")
    assert result.reason == DAY_UNAVAILABLE


def test_slot_not_in_template(repo):
    result = SlotAvailabilityChecker(repo=repo).check(repo.get_doctor("doc-1"), MONDAY, "6:00 PM")
    assert result.available is False
    assert result.reason == SLOT_NOT_OFFERED


def test_booked_slot_is_taken_until_cancelled(repo):
    checker = SlotAvailabilityChecker(repo=repo)
    doctor = repo.get_doctor("doc-1")
    appt = book(repo)
    assert checker.check(doctor, MONDAY, "9:00 AM").reason == SLOT_TAKEN

    repo.appts[appt.id].status = "cancelled"
    assert checker.check(doctor, MONDAY, "9:00 AM").available is True


@pytest.mark.parametrize("bad", ["07-01-2030", "2030/01/07", "tomorrow", ""])
def test_malformed_date(repo, bad):
    with pytest.raises(HTTPException) as e:
        SlotAvailabilityChecker(repo=repo).check(repo.get_doctor("doc-1"), bad, "9:00 AM")
    assert e.value.status_code == 400


def test_booking_window_only_when_enforced(repo):
    doctor = repo.get_doctor("doc-1")
    today = lambda: date(2030, 1, 1)  # noqa: E731
    assert SlotAvailabilityChecker(repo=repo, today=today).check(doctor, "2030-03-04", "9:00 AM").available is True

    strict = SlotAvailabilityChecker(repo=repo, enforce_window=True, advance_days=30, today=today)
    assert strict.check(doctor, MONDAY, "9:00 AM").available is True
    with pytest.raises(HTTPException):
        strict.check(doctor, "2030-03-04", "9:00 AM")
    with pytest.raises(HTTPException):
        strict.check(doctor, "2029-12-31", "9:00 AM")


def test_day_slots(repo):
    book(repo, time="10:00 AM")
    slots = SlotAvailabilityChecker(repo=repo).day_slots(repo.get_doctor("doc-1"), MONDAY)
    assert slots[0] == {"time": "9:00 AM", "isAvailable": True}
    assert {"time": "10:00 AM", "isAvailable": False} in slots
    assert len(slots) == 5
    assert SlotAvailabilityChecker(repo=repo).day_slots(repo.get_doctor("doc-1"), SUNDAY) == []
