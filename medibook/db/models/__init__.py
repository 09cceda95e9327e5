# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.doctor import Doctor
from .health.payment import Payment
from .health.appointment import Appointment
from .health.notification import Notification

__all__ = [
    "User",
    "Doctor",
    "Payment",
    "Appointment",
    "Notification",
]
