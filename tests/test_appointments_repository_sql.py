import pytest
from datetime import datetime
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from medibook.db.models import Appointment, Doctor, Notification, Payment, User
from medibook.application.services.appointment_lifecycle import AppointmentLifecycle
from medibook.application.ports.appointments_repo import NewAppointment, SlotTakenError, WorkingDay
from medibook.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from medibook.infrastructure.persistence.sqlalchemy.repositories.doctors_repository_sql import SqlDoctorsRepository, hours_from_json

from conftest import MONDAY


@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        s.add(User(id="doc-user-1", name="Dr. Rao", email="rao@example.com", role="doctor"))
        s.add(User(id="patient-1", name="Asha", email="asha@example.com"))
        s.add(Doctor(id="doc-1", user_id="doc-user-1", specialty="Cardiology", working_hours='[{"day": "Monday", "isWorking": true, "timeSlots": ["9:00 AM"]}]'))
        s.commit()
        yield s


def new_appt(time="9:00 AM", user_id="patient-1"):
    return NewAppointment("doc-1", user_id, "Asha", "asha@example.com", "+919800000000", "Checkup", "bring reports", MONDAY, time, "booked", "pay_first", 4999, "INR")


def test_create_populates_doctor_and_payment(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())
    assert a.status == "booked"
    assert a.doctor_name == "Dr. Rao"
    assert a.doctor_specialty == "Cardiology"
    assert a.payment.status == "pending"
    assert a.payment.amount == 4999
    assert repo.list_for_user("patient-1")[0].id == a.id


def test_storage_rejects_second_active_booking(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(new_appt())
    with pytest.raises(SlotTakenError):
        repo.create(new_appt())
    assert len(repo.list_all()) == 1
    # the session is usable after the rollback
    assert repo.create(new_appt(time="10:00 AM")).time == "10:00 AM"


def test_cancelled_booking_frees_the_slot(session):
    repo = SqlAppointmentsRepository(session)
    first = repo.create(new_appt())
    first.status = "cancelled"
    repo.save(first)
    second = repo.create(new_appt())
    assert second.id != first.id
    assert [a.id for a in repo.list_active_for_doctor_date("doc-1", MONDAY)] == [second.id]


def test_save_writes_payment_state(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())
    a.status = "confirmed"
    a.payment.status = "completed"
    a.payment.method = "online"
    a.payment.gateway_payment_id = "pay_1"
    a.payment.meta = {"order": {"id": "order_1"}}
    repo.save(a)

    stored = repo.get_by_id(a.id)
    assert stored.status == "confirmed"
    assert stored.payment.status == "completed"
    assert stored.payment.gateway_payment_id == "pay_1"
    assert stored.payment.meta == {"order": {"id": "order_1"}}


def test_doctor_lookup_by_user(session):
    repo = SqlAppointmentsRepository(session)
    assert repo.get_doctor_for_user("doc-user-1").id == "doc-1"
    assert repo.get_doctor_for_user("patient-1") is None
    assert repo.get_doctor("doc-1").working_hours[0].time_slots == ["9:00 AM"]


def test_doctor_repository_create_and_update(session):
    repo = SqlDoctorsRepository(session)
    d = repo.create("patient-1", "Dermatology", 4, "Pune", None, [WorkingDay("Tuesday", True, ["9:00 AM"])])
    assert d.name == "Asha"
    assert session.get(User, "patient-1").role == "doctor"

    updated = repo.update_working_hours(d.id, [WorkingDay("Tuesday", False, [])])
    assert updated.working_hours[0].is_working is False


def test_legacy_slot_objects_are_read_as_labels():
    days = hours_from_json('[{"day": "Monday", "isWorking": true, "timeSlots": [{"time": "9:00 AM", "isBooked": true}, "10:00 AM"]}]')
    assert days[0].time_slots == ["9:00 AM", "10:00 AM"]


def test_row_timestamps_default_to_utc():
    for row in (User(name="x", email="x@example.com"), Payment(), Notification(user_id="u", type="t", title="t", message="m")):
        assert row.created_at.tzinfo is not None
    assert Appointment(doctor_id="d", user_id="u", patient_name="p", patient_email="e", patient_phone="1", reason="r", date=MONDAY, time="9:00 AM", payment_id="p").updated_at.utcoffset().total_seconds() == 0


def test_lifecycle_writes_survive_repeated_saves(session):
    repo = SqlAppointmentsRepository(session)
    lifecycle = AppointmentLifecycle(repo)
    a = repo.create(new_appt())

    lifecycle.record_order(a, "razorpay", "order_1", 4999, "INR")
    a = repo.get_by_id(a.id)
    assert a.payment.initiated_at.tzinfo is not None

    lifecycle.settle_payment(a, "online", 4999, "INR", gateway="razorpay", order_id="order_1", payment_id="pay_1", signature="sig")
    stored = repo.get_by_id(a.id)
    assert stored.status == "confirmed"
    assert stored.payment.captured_at >= stored.payment.initiated_at
    assert isinstance(stored.created_at, datetime)

    lifecycle.cancel(stored)
    assert repo.get_by_id(a.id).payment.status == "refund_pending"


def test_doctor_directory_queries(session):
    session.add(User(id="doc-user-2", name="Dr. Sen", email="sen@example.com", role="doctor"))
    session.add(Doctor(id="doc-2", user_id="doc-user-2", specialty="ENT", is_available=False))
    session.commit()
    repo = SqlDoctorsRepository(session)

    assert [d.id for d in repo.list_all()] == ["doc-1", "doc-2"]
    assert [d.id for d in repo.list_all(specialty="CARDIO")] == ["doc-1"]
    assert [d.id for d in repo.list_all(available=False)] == ["doc-2"]


def test_doctor_update_touches_doctor_and_user_rows(session):
    repo = SqlDoctorsRepository(session)
    out = repo.update("doc-1", {"experience": 11, "location": "Pune"}, {"name": "Dr. R. Rao", "phone": "+919811111111"})
    assert (out.experience, out.location, out.name, out.phone) == (11, "Pune", "Dr. R. Rao", "+919811111111")
    assert session.get(User, "doc-user-1").updated_at is not None


def test_doctor_delete_returns_user_to_patient(session):
    repo = SqlDoctorsRepository(session)
    appts = SqlAppointmentsRepository(session)
    assert repo.has_appointments("doc-1") is False
    appts.create(new_appt())
    assert repo.has_appointments("doc-1") is True

    session.add(User(id="doc-user-3", name="Dr. Iyer", email="iyer@example.com", role="doctor"))
    session.add(Doctor(id="doc-3", user_id="doc-user-3", specialty="ENT"))
    session.commit()
    repo.delete("doc-3")
    assert repo.get_by_id("doc-3") is None
    assert session.get(User, "doc-user-3").role == "patient"
