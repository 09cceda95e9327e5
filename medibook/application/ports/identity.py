from dataclasses import dataclass

PATIENT = "patient"
DOCTOR = "doctor"
ADMIN = "admin"

ROLES = (PATIENT, DOCTOR, ADMIN)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str = PATIENT

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == DOCTOR
