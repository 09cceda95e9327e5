from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..exceptions import create_success_response
from ..application.ports.identity import Actor
from ..application.services.doctors_service import DoctorsService
from ..schemas.doctors.doctor import DoctorProfileUpdate, DoctorResponse, DoctorSummary, WorkingHoursUpdate
from .deps import get_current_actor, get_doctors_service

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("")
def list_doctors(
    specialty: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    svc: DoctorsService = Depends(get_doctors_service),
):
    doctors = svc.list_doctors(specialty, available)
    return create_success_response([DoctorSummary.from_dto(d).to_wire() for d in doctors])


@router.get("/{doctor_id}/availability")
def get_doctor_availability(doctor_id: str, date: str = Query(..., description="YYYY-MM-DD"), svc: DoctorsService = Depends(get_doctors_service)):
    return create_success_response(svc.availability(doctor_id, date))


@router.get("/{doctor_id}")
def get_doctor(doctor_id: str, svc: DoctorsService = Depends(get_doctors_service)):
    return create_success_response(DoctorResponse.from_dto(svc.get_doctor(doctor_id)).to_wire())


@router.put("/availability")
def update_availability(body: WorkingHoursUpdate, actor: Actor = Depends(get_current_actor), svc: DoctorsService = Depends(get_doctors_service)):
    doctor = svc.update_working_hours(actor, [d.to_domain() for d in body.working_hours])
    return create_success_response(DoctorResponse.from_dto(doctor).to_wire(), "Availability updated successfully")


@router.put("/profile")
def update_profile(body: DoctorProfileUpdate, actor: Actor = Depends(get_current_actor), svc: DoctorsService = Depends(get_doctors_service)):
    doctor = svc.update_profile(actor, body.model_dump(exclude_unset=True))
    return create_success_response(DoctorResponse.from_dto(doctor).to_wire(), "Profile updated successfully")
