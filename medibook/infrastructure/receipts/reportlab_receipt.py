import io
import logging
from datetime import datetime, timezone

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import ReceiptRenderer

logger = logging.getLogger(__name__)


def format_amount(amount: int, currency: str) -> str:
    return f"{currency} {amount / 100:,.2f}"


class ReportLabReceiptRenderer(ReceiptRenderer):
    """Payment receipt for a confirmed appointment, rendered as a one-page PDF."""

    def __init__(self, clinic_name: str = "MediBook"):
        self.clinic_name = clinic_name

    def render(self, appointment: AppointmentDto) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.75 * inch, bottomMargin=0.75 * inch)
        styles = getSampleStyleSheet()
        payment = appointment.payment

        rows = [
            ["Receipt number", f"RCPT-{appointment.id[:12].upper()}"],
            ["Patient", appointment.patient_name],
            ["Email", appointment.patient_email],
            ["Doctor", appointment.doctor_name or appointment.doctor_id],
            ["Specialty", appointment.doctor_specialty or "-"],
            ["Date", appointment.date],
            ["Time", appointment.time],
            ["Status", appointment.status.capitalize()],
            ["Payment method", (payment.method or "-").upper()],
            ["Payment status", payment.status.replace("_", " ").capitalize()],
            ["Amount", format_amount(payment.amount, payment.currency)],
        ]
        if payment.gateway_payment_id:
            rows.append(["Transaction id", payment.gateway_payment_id])
        if payment.captured_at:
            rows.append(["Paid on", payment.captured_at.strftime("%Y-%m-%d %H:%M UTC")])

        table = Table(rows, colWidths=[2 * inch, 4 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#374151")),
            ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#E5E7EB")),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]))

        story = [
            Paragraph(f"{self.clinic_name} - Appointment Receipt", styles["Title"]),
            Spacer(1, 0.2 * inch),
            table,
            Spacer(1, 0.3 * inch),
            Paragraph(f"Generated on {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC", styles["Normal"]),
        ]
        doc.build(story)
        pdf = buffer.getvalue()
        buffer.close()
        logger.debug(f"Rendered receipt for appointment {appointment.id} ({len(pdf)} bytes)")
        return pdf
