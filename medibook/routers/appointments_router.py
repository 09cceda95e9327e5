import logging
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..exceptions import create_success_response
from ..application.ports.identity import Actor
from ..application.services.appointments_service import AppointmentsService
from ..application.services.payment_service import GatewayProof, PaymentService
from ..schemas.appointments.appointment import AppointmentCreate, AppointmentResponse, PaymentStatusResponse, StatusUpdate
from ..schemas.payments.payment import PaymentRequest, PaymentResponse
from .deps import get_appointments_service, get_current_actor, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", status_code=201)
def book_appointment(
    body: AppointmentCreate,
    actor: Actor = Depends(get_current_actor),
    svc: AppointmentsService = Depends(get_appointments_service),
):
    appt = svc.book(
        actor,
        doctor_id=body.doctor_id,
        patient_name=body.patient_name,
        patient_email=body.patient_email,
        patient_phone=body.patient_phone,
        reason=body.reason,
        date=body.date,
        time=body.time,
        notes=body.notes,
    )
    logger.info(f"Appointment {appt.id} booked by user {actor.user_id}")
    return create_success_response(AppointmentResponse.from_dto(appt).to_wire(), "Appointment booked successfully")


@router.get("/user")
def get_user_appointments(actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    return create_success_response([AppointmentResponse.from_dto(a).to_wire() for a in svc.list_for_user(actor)])


@router.get("/doctor")
def get_doctor_appointments(actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    return create_success_response([AppointmentResponse.from_dto(a).to_wire() for a in svc.list_for_doctor(actor)])


@router.put("/status/{appointment_id}")
def update_appointment_status(
    appointment_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    svc: AppointmentsService = Depends(get_appointments_service),
):
    result = svc.update_status(actor, appointment_id, body.status)
    return create_success_response(
        AppointmentResponse.from_dto(result.appointment).to_wire(),
        result.message or "Appointment status updated successfully",
    )


@router.get("/{appointment_id}")
def get_appointment(appointment_id: str, actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    return create_success_response(AppointmentResponse.from_dto(svc.get(actor, appointment_id)).to_wire())


@router.put("/{appointment_id}/cancel")
def cancel_appointment(appointment_id: str, actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    result = svc.cancel(actor, appointment_id)
    return create_success_response(AppointmentResponse.from_dto(result.appointment).to_wire(), result.message)


@router.post("/{appointment_id}/pay")
def pay_for_appointment(
    appointment_id: str,
    body: PaymentRequest,
    actor: Actor = Depends(get_current_actor),
    svc: PaymentService = Depends(get_payment_service),
):
    proof = None
    if body.razorpay is not None:
        proof = GatewayProof(body.razorpay.order_id, body.razorpay.payment_id, body.razorpay.signature)
    result = svc.process_payment(
        actor,
        appointment_id,
        method=body.payment_method,
        amount=body.amount,
        currency=body.currency,
        proof=proof,
        order=body.order,
        verification=body.verification,
    )
    return create_success_response(PaymentResponse.from_dto(result.appointment).to_wire(), result.message)


@router.get("/{appointment_id}/payment-status")
def get_payment_status(appointment_id: str, actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    return create_success_response(PaymentStatusResponse.from_dto(svc.payment_status(actor, appointment_id)).to_wire())


@router.get("/{appointment_id}/receipt")
def download_receipt(appointment_id: str, actor: Actor = Depends(get_current_actor), svc: AppointmentsService = Depends(get_appointments_service)):
    pdf = svc.receipt(actor, appointment_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="receipt-{appointment_id}.pdf"'},
    )
