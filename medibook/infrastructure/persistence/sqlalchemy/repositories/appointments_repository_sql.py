import json
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.clock import as_utc, utc_now
from .....db.models import Appointment, Doctor, Payment, User
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    DoctorDto,
    NewAppointment,
    PaymentDto,
    SlotTakenError,
)
from .doctors_repository_sql import doctor_to_dto


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _payment_to_dto(self, p: Payment) -> PaymentDto:
        return PaymentDto(
            id=p.id,
            status=p.status,
            method=p.method,
            amount=p.amount,
            currency=p.currency,
            gateway=p.gateway,
            gateway_order_id=p.gateway_order_id,
            gateway_payment_id=p.gateway_payment_id,
            gateway_signature=p.gateway_signature,
            initiated_at=as_utc(p.initiated_at),
            captured_at=as_utc(p.captured_at),
            meta=json.loads(p.meta) if p.meta else {},
            refund_id=p.refund_id,
            refund_amount=p.refund_amount,
            refunded_at=as_utc(p.refunded_at),
        )

    def _appt_to_dto(self, a: Appointment, p: Payment, d: Optional[Doctor] = None, u: Optional[User] = None) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            doctor_id=a.doctor_id,
            user_id=a.user_id,
            patient_name=a.patient_name,
            patient_email=a.patient_email,
            patient_phone=a.patient_phone,
            reason=a.reason,
            notes=a.notes,
            date=a.date,
            time=a.time,
            status=a.status,
            flow=a.flow,
            payment=self._payment_to_dto(p),
            created_at=as_utc(a.created_at),
            doctor_name=u.name if u else None,
            doctor_specialty=d.specialty if d else None,
            doctor_image=d.image if d else None,
        )

    def _populated(self):
        return (
            select(Appointment, Payment, Doctor, User)
            .join(Payment, Appointment.payment_id == Payment.id)
            .join(Doctor, Appointment.doctor_id == Doctor.id, isouter=True)
            .join(User, Doctor.user_id == User.id, isouter=True)
        )

    def _list(self, query) -> List[AppointmentDto]:
        return [self._appt_to_dto(*row) for row in self.session.exec(query).all()]

    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        row = self.session.exec(
            select(Doctor, User).join(User, Doctor.user_id == User.id, isouter=True).where(Doctor.id == doctor_id)
        ).first()
        return doctor_to_dto(*row) if row else None

    def get_doctor_for_user(self, user_id: str) -> Optional[DoctorDto]:
        row = self.session.exec(
            select(Doctor, User).join(User, Doctor.user_id == User.id, isouter=True).where(Doctor.user_id == user_id)
        ).first()
        return doctor_to_dto(*row) if row else None

    def list_active_for_doctor_date(self, doctor_id: str, date: str) -> List[AppointmentDto]:
        return self._list(
            self._populated()
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.date == date)
            .where(Appointment.status != "cancelled")
        )

    def create(self, data: NewAppointment) -> AppointmentDto:
        payment = Payment(amount=data.amount, currency=data.currency)
        appt = Appointment(
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
            payment_id=payment.id,
        )
        self.session.add(payment)
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise SlotTakenError(f"{data.doctor_id} {data.date} {data.time}")
        return self.get_by_id(appt.id)

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        row = self.session.exec(self._populated().where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(*row) if row else None

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        return self._list(
            self._populated().where(Appointment.user_id == user_id).order_by(Appointment.date.desc(), Appointment.created_at.desc())
        )

    def list_for_doctor(self, doctor_id: str) -> List[AppointmentDto]:
        return self._list(
            self._populated().where(Appointment.doctor_id == doctor_id).order_by(Appointment.date.desc(), Appointment.created_at.desc())
        )

    def list_all(self) -> List[AppointmentDto]:
        return self._list(self._populated().order_by(Appointment.created_at.desc()))

    def save(self, appointment: AppointmentDto) -> AppointmentDto:
        now = utc_now()
        a = self.session.get(Appointment, appointment.id)
        p = self.session.get(Payment, a.payment_id)
        a.status = appointment.status
        a.updated_at = now

        src = appointment.payment
        p.status = src.status
        p.method = src.method
        p.amount = src.amount
        p.currency = src.currency
        p.gateway = src.gateway
        p.gateway_order_id = src.gateway_order_id
        p.gateway_payment_id = src.gateway_payment_id
        p.gateway_signature = src.gateway_signature
        p.initiated_at = as_utc(src.initiated_at)
        p.captured_at = as_utc(src.captured_at)
        p.meta = json.dumps(src.meta) if src.meta else None
        p.refund_id = src.refund_id
        p.refund_amount = src.refund_amount
        p.refunded_at = as_utc(src.refunded_at)
        p.updated_at = now

        self.session.add(a)
        self.session.add(p)
        self.session.commit()
        return self.get_by_id(appointment.id)
