from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime, timezone
from sqlmodel import Session
import logging

# Load environment variables as early as possible
load_dotenv()

from .config import settings
from .database import create_db_and_tables, engine
from .exceptions import http_exception_handler, validation_exception_handler
from .middleware import RateLimitMiddleware, SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware
from .application.services.confirmation_dispatcher import ConfirmationDispatcher
from .infrastructure.notifications.email_smtp import EmailNotifier
from .infrastructure.notifications.in_app import InAppNotifier
from .infrastructure.notifications.twilio_sms import SmsNotifier
from .infrastructure.payments.razorpay_gateway import RazorpayGateway
from .infrastructure.receipts.reportlab_receipt import ReportLabReceiptRenderer
from .routers import admin_router, appointments_router, doctors_router, payments_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


def build_dispatcher() -> ConfirmationDispatcher:
    notifiers = [InAppNotifier(lambda: Session(engine))]
    if settings.smtp_configured:
        notifiers.append(EmailNotifier())
    else:
        logger.info("SMTP not configured; confirmation emails disabled")
    if settings.twilio_configured:
        notifiers.append(SmsNotifier())
    else:
        logger.info("Twilio not configured; confirmation SMS disabled")
    return ConfirmationDispatcher(notifiers=notifiers, renderer=ReportLabReceiptRenderer(settings.APP_NAME))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME}...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # keep serving; /health reports the failure
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")

    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        logger.warning("Razorpay keys not configured; gateway payments will fail verification")
    if settings.TRUST_WALLET_REDIRECTS:
        logger.warning("Wallet payments (gpay/paytm/phonepe) are settled without gateway verification")
    app.state.payment_gateway = RazorpayGateway()
    app.state.dispatcher = build_dispatcher()
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router.router, prefix="/api")
app.include_router(payments_router.router, prefix="/api")
app.include_router(doctors_router.router, prefix="/api")
app.include_router(admin_router.router, prefix="/api")


@app.get("/health")
def health_check():
    return {
        "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": getattr(app.state, "db_init_ok", True),
            "error": getattr(app.state, "db_init_error", None),
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("medibook.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
