from dataclasses import dataclass
from typing import List, Optional

from ...exceptions import NotAuthorized, NotFound, SlotConflict, ValidationFailed
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, NewAppointment, PaymentDto, SlotTakenError
from ..ports.audit_logger import AuditLogger
from ..ports.identity import Actor
from ..ports.notifier import ConfirmationScheduler, ReceiptRenderer
from .appointment_lifecycle import AppointmentLifecycle, TransitionResult, PAY_FIRST, PAYMENT_COMPLETED, initial_status
from .confirmation_dispatcher import schedule_confirmation
from .slot_availability import SlotAvailabilityChecker, SLOT_TAKEN


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    lifecycle: AppointmentLifecycle
    checker: SlotAvailabilityChecker
    scheduler: Optional[ConfirmationScheduler] = None
    renderer: Optional[ReceiptRenderer] = None
    audit: Optional[AuditLogger] = None
    flow: str = PAY_FIRST
    consultation_fee: int = 4999
    currency: str = "INR"

    def book(self, actor: Actor, doctor_id: str, patient_name: str, patient_email: str, patient_phone: str, reason: str, date: str, time: str, notes: Optional[str] = None) -> AppointmentDto:
        doctor = self.repo.get_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        if not doctor.is_available:
            raise ValidationFailed("Doctor is not available")

        availability = self.checker.check(doctor, date, time)
        if not availability.available:
            if availability.reason == SLOT_TAKEN:
                raise SlotConflict(SLOT_TAKEN)
            raise ValidationFailed(availability.reason)

        try:
            appt = self.repo.create(
                NewAppointment(
                    doctor_id=doctor.id,
                    user_id=actor.user_id,
                    patient_name=patient_name,
                    patient_email=patient_email,
                    patient_phone=patient_phone,
                    reason=reason,
                    notes=notes,
                    date=date,
                    time=time,
                    status=initial_status(self.flow),
                    flow=self.flow,
                    amount=self.consultation_fee,
                    currency=self.currency,
                )
            )
        except SlotTakenError:
            # lost the race against a concurrent booking for the same slot
            raise SlotConflict(SLOT_TAKEN)

        if self.audit:
            self.audit.log("appointment.booked", appt.id, actor_id=actor.user_id, details={"doctor_id": doctor.id, "date": date, "time": time, "status": appt.status})
        return appt

    def list_for_user(self, actor: Actor) -> List[AppointmentDto]:
        return self.repo.list_for_user(actor.user_id)

    def list_for_doctor(self, actor: Actor) -> List[AppointmentDto]:
        doctor = self.repo.get_doctor_for_user(actor.user_id)
        if not doctor:
            raise NotFound("Doctor profile not found")
        return self.repo.list_for_doctor(doctor.id)

    def list_all(self, actor: Actor) -> List[AppointmentDto]:
        if not actor.is_admin:
            raise NotAuthorized("Admin access required")
        return self.repo.list_all()

    def get(self, actor: Actor, appointment_id: str) -> AppointmentDto:
        appt = self._load(appointment_id)
        self._ensure_can_view(appt, actor)
        return appt

    def update_status(self, actor: Actor, appointment_id: str, status: str) -> TransitionResult:
        appt = self._load(appointment_id)
        self._ensure_assigned_doctor(appt, actor)
        result = self.lifecycle.change_status(appt, status, actor.user_id)
        schedule_confirmation(self.scheduler, result)
        return result

    def cancel(self, actor: Actor, appointment_id: str) -> TransitionResult:
        appt = self._load(appointment_id)
        self._ensure_owner(appt, actor, "Not authorized to cancel this appointment")
        return self.lifecycle.cancel(appt, actor.user_id)

    def payment_status(self, actor: Actor, appointment_id: str) -> PaymentDto:
        appt = self._load(appointment_id)
        self._ensure_owner(appt, actor, "Not authorized to view this payment")
        return appt.payment

    def receipt(self, actor: Actor, appointment_id: str) -> bytes:
        appt = self._load(appointment_id)
        self._ensure_can_view(appt, actor)
        if appt.payment.status != PAYMENT_COMPLETED:
            raise ValidationFailed("Receipt is only available after payment is completed")
        if self.renderer is None:
            raise RuntimeError("No receipt renderer configured")
        return self.renderer.render(appt)

    def _load(self, appointment_id: str) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")
        return appt

    def _is_assigned_doctor(self, appt: AppointmentDto, actor: Actor) -> bool:
        doctor = self.repo.get_doctor_for_user(actor.user_id)
        return doctor is not None and doctor.id == appt.doctor_id

    def _ensure_assigned_doctor(self, appt: AppointmentDto, actor: Actor) -> None:
        if actor.is_admin:
            return
        if not self._is_assigned_doctor(appt, actor):
            raise NotAuthorized("Not authorized to update this appointment")

    def _ensure_owner(self, appt: AppointmentDto, actor: Actor, message: str) -> None:
        if actor.is_admin or appt.user_id == actor.user_id:
            return
        raise NotAuthorized(message)

    def _ensure_can_view(self, appt: AppointmentDto, actor: Actor) -> None:
        if actor.is_admin or appt.user_id == actor.user_id:
            return
        if self._is_assigned_doctor(appt, actor):
            return
        raise NotAuthorized("Not authorized to view this appointment")
