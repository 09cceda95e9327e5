from typing import Any, Dict, List, Optional

from .appointments_repo import DoctorDto, WorkingDay


class DoctorsRepository:
    def get_by_id(self, doctor_id: str) -> Optional[DoctorDto]:
        ...

    def get_for_user(self, user_id: str) -> Optional[DoctorDto]:
        ...

    def list_all(self, specialty: Optional[str] = None, available: Optional[bool] = None) -> List[DoctorDto]:
        ...

    def user_exists(self, user_id: str) -> bool:
        ...

    def create(self, user_id: str, specialty: str, experience: int, location: str, image: Optional[str], working_hours: List[WorkingDay]) -> DoctorDto:
        ...

    def update(self, doctor_id: str, changes: Dict[str, Any], user_changes: Optional[Dict[str, Any]] = None) -> DoctorDto:
        """Apply column changes to the doctor row and, optionally, to its user row."""
        ...

    def update_working_hours(self, doctor_id: str, working_hours: List[WorkingDay]) -> DoctorDto:
        ...

    def has_appointments(self, doctor_id: str) -> bool:
        ...

    def delete(self, doctor_id: str) -> None:
        ...
