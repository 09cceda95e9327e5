import logging
from fastapi import BackgroundTasks, Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..config import settings
from ..database import get_session
from ..utils import decode_jwt_token
from ..application.ports.appointments_repo import AppointmentDto
from ..application.ports.identity import Actor, PATIENT, ROLES
from ..application.ports.payment_gateway import PaymentGateway
from ..application.services.appointment_lifecycle import AppointmentLifecycle
from ..application.services.appointments_service import AppointmentsService
from ..application.services.confirmation_dispatcher import ConfirmationDispatcher
from ..application.services.doctors_service import DoctorsService
from ..application.services.payment_service import PaymentService
from ..application.services.slot_availability import SlotAvailabilityChecker
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.doctors_repository_sql import SqlDoctorsRepository
from ..infrastructure.receipts.reportlab_receipt import ReportLabReceiptRenderer

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer()


def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> Actor:
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    role = payload.get("role") or PATIENT
    if role not in ROLES:
        logger.warning(f"Token for user {user_id} carries unknown role {role!r}")
        raise HTTPException(status_code=401, detail="Invalid token: unknown role")
    return Actor(user_id=str(user_id), role=role)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


class BackgroundConfirmationScheduler:
    """Runs the dispatcher after the response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, dispatcher: ConfirmationDispatcher):
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    def schedule(self, appointment: AppointmentDto) -> None:
        self.background_tasks.add_task(self.dispatcher.dispatch, appointment)


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


def get_dispatcher(request: Request) -> ConfirmationDispatcher:
    return request.app.state.dispatcher


def get_scheduler(background_tasks: BackgroundTasks, dispatcher: ConfirmationDispatcher = Depends(get_dispatcher)) -> BackgroundConfirmationScheduler:
    return BackgroundConfirmationScheduler(background_tasks, dispatcher)


def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


def get_appointments_repo(session: Session = Depends(get_session)) -> SqlAppointmentsRepository:
    return SqlAppointmentsRepository(session)


def get_lifecycle(repo: SqlAppointmentsRepository = Depends(get_appointments_repo), audit: StdAuditLogger = Depends(get_audit_logger)) -> AppointmentLifecycle:
    return AppointmentLifecycle(repo=repo, audit=audit)


def get_checker(repo: SqlAppointmentsRepository = Depends(get_appointments_repo)) -> SlotAvailabilityChecker:
    return SlotAvailabilityChecker(
        repo=repo,
        enforce_window=settings.ENFORCE_BOOKING_WINDOW,
        advance_days=settings.ADVANCE_BOOKING_DAYS,
    )


def get_appointments_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repo),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
    checker: SlotAvailabilityChecker = Depends(get_checker),
    scheduler: BackgroundConfirmationScheduler = Depends(get_scheduler),
    audit: StdAuditLogger = Depends(get_audit_logger),
) -> AppointmentsService:
    return AppointmentsService(
        repo=repo,
        lifecycle=lifecycle,
        checker=checker,
        scheduler=scheduler,
        renderer=ReportLabReceiptRenderer(settings.APP_NAME),
        audit=audit,
        flow=settings.BOOKING_FLOW,
        consultation_fee=settings.CONSULTATION_FEE,
        currency=settings.PAYMENT_CURRENCY,
    )


def get_payment_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repo),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    scheduler: BackgroundConfirmationScheduler = Depends(get_scheduler),
) -> PaymentService:
    return PaymentService(
        repo=repo,
        lifecycle=lifecycle,
        gateway=gateway,
        scheduler=scheduler,
        trust_wallet_redirects=settings.TRUST_WALLET_REDIRECTS,
        consultation_fee=settings.CONSULTATION_FEE,
        max_amount=settings.MAX_PAYMENT_AMOUNT,
        currency=settings.PAYMENT_CURRENCY,
    )


def get_doctors_service(session: Session = Depends(get_session), checker: SlotAvailabilityChecker = Depends(get_checker)) -> DoctorsService:
    return DoctorsService(repo=SqlDoctorsRepository(session), checker=checker)
