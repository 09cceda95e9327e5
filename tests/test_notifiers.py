import json
from datetime import datetime, timezone
from email import message_from_string

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from medibook.application.ports.appointments_repo import AppointmentDto, PaymentDto
from medibook.db.models import Notification, User
from medibook.infrastructure.notifications.email_smtp import EmailNotifier
from medibook.infrastructure.notifications.in_app import InAppNotifier
from medibook.infrastructure.notifications.twilio_sms import SmsNotifier
from medibook.infrastructure.receipts.reportlab_receipt import ReportLabReceiptRenderer, format_amount


def appointment():
    return AppointmentDto(
        id="appt-1", doctor_id="doc-1", user_id="patient-1", patient_name="Asha",
        patient_email="asha@example.com", patient_phone="+919800000000", reason="Checkup",
        notes=None, date="2030-01-07", time="9:00 AM", status="confirmed", flow="pay_first",
        payment=PaymentDto(id="pay-1", status="completed", method="online", amount=4999, gateway_payment_id="pay_1", captured_at=datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)),
        created_at=datetime.now(timezone.utc), doctor_name="Dr. Rao", doctor_specialty="Cardiology",
    )


class FakeSMTP:
    instances = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.sent = []
        self.logged_in = None
        self.closed = False
        FakeSMTP.instances.append(self)

    def login(self, user, password):
        self.logged_in = (user, password)

    def sendmail(self, sender, recipients, body):
        self.sent.append((sender, recipients, body))

    def quit(self):
        self.closed = True


def test_receipt_is_a_pdf():
    pdf = ReportLabReceiptRenderer("MediBook").render(appointment())
    assert pdf.startswith(b"%PDF")
    assert format_amount(4999, "INR") == "INR 49.99"


def test_email_attaches_receipt():
    FakeSMTP.instances.clear()
    notifier = EmailNotifier(host="smtp.test", port=2525, username="u", password="p", from_address="noreply@test", smtp_factory=FakeSMTP)
    notifier.appointment_confirmed(appointment(), b"%PDF-1.4")

    smtp = FakeSMTP.instances[0]
    assert smtp.logged_in == ("u", "p")
    assert smtp.closed is True
    sender, recipients, body = smtp.sent[0]
    assert recipients == ["asha@example.com"]
    msg = message_from_string(body)
    filenames = [part.get_filename() for part in msg.walk() if part.get_filename()]
    assert filenames == ["receipt-appt-1.pdf"]


def test_email_skipped_without_smtp_host():
    FakeSMTP.instances.clear()
    EmailNotifier(host="", smtp_factory=FakeSMTP).appointment_confirmed(appointment(), None)
    assert FakeSMTP.instances == []


def test_sms_goes_to_patient_phone():
    class Messages:
        def __init__(self):
            self.created = []

        def create(self, **kwargs):
            self.created.append(kwargs)
            return type("M", (), {"sid": "SM1"})

    class Client:
        messages = Messages()

    client = Client()
    SmsNotifier(client=client, from_number="+15550000000").appointment_confirmed(appointment(), None)
    sent = client.messages.created[0]
    assert sent["to"] == "+919800000000"
    assert sent["from_"] == "+15550000000"
    assert "9:00 AM" in sent["body"]


def test_in_app_notification_row():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        s.add(User(id="patient-1", name="Asha", email="asha@example.com"))
        s.commit()

    InAppNotifier(lambda: Session(engine)).appointment_confirmed(appointment(), b"%PDF")

    with Session(engine) as s:
        row = s.exec(select(Notification)).one()
    assert row.user_id == "patient-1"
    assert row.type == "appointment_confirmed"
    assert json.loads(row.data) == {"appointmentId": "appt-1", "receiptAvailable": True}
