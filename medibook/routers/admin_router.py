from fastapi import APIRouter, Depends

from ..exceptions import create_success_response
from ..application.ports.identity import Actor
from ..application.services.appointments_service import AppointmentsService
from ..application.services.doctors_service import DoctorsService
from ..schemas.appointments.appointment import AppointmentResponse
from ..schemas.doctors.doctor import DoctorAdminUpdate, DoctorCreate, DoctorResponse
from .deps import get_appointments_service, get_doctors_service, require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/appointments")
def list_all_appointments(actor: Actor = Depends(require_admin), svc: AppointmentsService = Depends(get_appointments_service)):
    return create_success_response([AppointmentResponse.from_dto(a).to_wire() for a in svc.list_all(actor)])


@router.post("/doctors", status_code=201)
def create_doctor(body: DoctorCreate, actor: Actor = Depends(require_admin), svc: DoctorsService = Depends(get_doctors_service)):
    doctor = svc.create_doctor(
        actor,
        user_id=body.user_id,
        specialty=body.specialty,
        experience=body.experience,
        location=body.location,
        image=body.image,
        working_hours=[d.to_domain() for d in body.working_hours] if body.working_hours else None,
    )
    return create_success_response(DoctorResponse.from_dto(doctor).to_wire(), "Doctor created successfully")


@router.put("/doctors/{doctor_id}")
def update_doctor(doctor_id: str, body: DoctorAdminUpdate, actor: Actor = Depends(require_admin), svc: DoctorsService = Depends(get_doctors_service)):
    doctor = svc.update_doctor(actor, doctor_id, body.model_dump(exclude_unset=True))
    return create_success_response(DoctorResponse.from_dto(doctor).to_wire(), "Doctor updated successfully")


@router.delete("/doctors/{doctor_id}")
def delete_doctor(doctor_id: str, actor: Actor = Depends(require_admin), svc: DoctorsService = Depends(get_doctors_service)):
    svc.delete_doctor(actor, doctor_id)
    return create_success_response({}, "Doctor deleted successfully")
