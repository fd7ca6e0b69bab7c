"""PDF and Excel rendering for patient records."""

import io
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from mri_records.config import settings
from mri_records.core.identifiers import generate_invoice_number
from mri_records.core.money import format_naira
from mri_records.schemas.patients import PatientDetailResponse

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 20 * mm
RIGHT = PAGE_WIDTH - 20 * mm
BOTTOM = 25 * mm


def _safe(value: Any) -> str:
    return "" if value is None else str(value)


def _fmt_datetime(value: datetime | None) -> str:
    return value.strftime("%d-%m-%Y %H:%M") if value else "-"


class _PdfWriter:
    """Top-down line writer over a reportlab canvas that adds pages as needed."""

    def __init__(self, title: str):
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(title)
        self.y = PAGE_HEIGHT - 20 * mm

    def _ensure_room(self, height: float) -> None:
        if self.y - height < BOTTOM:
            self.canvas.showPage()
            self.y = PAGE_HEIGHT - 20 * mm

    def heading(self, text: str, size: int = 16) -> None:
        self._ensure_room(size + 4)
        self.canvas.setFont("Helvetica-Bold", size)
        self.canvas.drawString(LEFT, self.y, text)
        self.y -= size + 6

    def line(self, label: str, value: Any = "") -> None:
        self._ensure_room(14)
        self.canvas.setFont("Helvetica-Bold", 10)
        self.canvas.drawString(LEFT, self.y, label)
        self.canvas.setFont("Helvetica", 10)
        self.canvas.drawString(LEFT + 45 * mm, self.y, _safe(value))
        self.y -= 14

    def row(self, left: str, right: str, bold: bool = False) -> None:
        self._ensure_room(14)
        self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
        self.canvas.drawString(LEFT, self.y, left)
        self.canvas.drawRightString(RIGHT, self.y, right)
        self.y -= 14

    def rule(self) -> None:
        self._ensure_room(10)
        self.canvas.line(LEFT, self.y + 4, RIGHT, self.y + 4)
        self.y -= 8

    def gap(self, height: float = 8) -> None:
        self.y -= height

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


def _patient_block(pdf: _PdfWriter, patient: PatientDetailResponse) -> None:
    pdf.line("Patient:", patient.patient_name)
    pdf.line("MRI code:", patient.mri_code)
    pdf.line("Serial number:", patient.serial_number)
    pdf.line("Gender / Age:", f"{_safe(patient.gender) or '-'} / {_safe(patient.age) or '-'}")
    pdf.line("Scan date:", _fmt_datetime(patient.mri_date_time))
    pdf.line("Referred by:", patient.referring_doctor or "-")
    pdf.line("Referral hospital:", patient.referral_hospital or "-")


def _line_items(pdf: _PdfWriter, patient: PatientDetailResponse) -> None:
    pdf.row("Examination", "Amount", bold=True)
    pdf.rule()
    for exam in patient.examinations or []:
        pdf.row(exam.exam_name, format_naira(exam.exam_amount))
    pdf.rule()
    pdf.row("Total", format_naira(patient.total_amount), bold=True)


def render_invoice(patient: PatientDetailResponse, issued_on: datetime | None = None) -> bytes:
    """
    Render an invoice PDF for a patient snapshot.

    Args:
        patient: Patient with examinations
        issued_on: Invoice date, defaults to now

    Returns:
        PDF bytes
    """
    issued_on = issued_on or datetime.now(UTC)
    invoice_number = generate_invoice_number(patient.id, issued_on.year)

    pdf = _PdfWriter(f"Invoice {invoice_number}")
    pdf.heading(settings.clinic_name)
    pdf.heading(f"INVOICE {invoice_number}", size=12)
    pdf.line("Date:", issued_on.strftime("%d-%m-%Y"))
    pdf.gap()
    _patient_block(pdf, patient)
    pdf.gap()
    _line_items(pdf, patient)
    pdf.gap()
    pdf.line("Recorded by:", patient.recorded_by_staff_name or "-")
    pdf.line("Radiographer:", patient.radiographer_name or "-")
    pdf.line("Radiologist:", patient.radiologist_name or "-")
    return pdf.finish()


def render_receipt(patient: PatientDetailResponse) -> bytes:
    """Render a payment receipt PDF for a patient snapshot."""
    pdf = _PdfWriter(f"Receipt {patient.receipt_number}")
    pdf.heading(settings.clinic_name)
    pdf.heading(f"RECEIPT {patient.receipt_number}", size=12)
    pdf.gap()
    _patient_block(pdf, patient)
    pdf.gap()
    pdf.line("Payment type:", patient.payment_type or "-")
    pdf.line("Payment status:", patient.payment_status)
    pdf.line("Approved by:", patient.approved_by_name or "-")
    pdf.line("Approved at:", _fmt_datetime(patient.approved_at))
    pdf.gap()
    _line_items(pdf, patient)
    return pdf.finish()


def render_result_placeholder(patient: PatientDetailResponse) -> bytes:
    """Render the stand-in result document used when no file is uploaded."""
    pdf = _PdfWriter(f"Result {patient.mri_code}")
    pdf.heading(settings.clinic_name)
    pdf.heading("MRI RESULT", size=12)
    pdf.gap()
    _patient_block(pdf, patient)
    pdf.gap()
    pdf.line("Radiologist:", patient.radiologist_name or "-")
    pdf.line("Remarks:", patient.remarks or "-")
    pdf.gap()
    pdf.line("Status:", "Report pending upload")
    return pdf.finish()


EXPORT_HEADERS = [
    "MRI Code",
    "Serial Number",
    "Patient Name",
    "Gender",
    "Age",
    "Phone",
    "Email",
    "Referral Hospital",
    "Referring Doctor",
    "Scan Date",
    "Examinations",
    "Total Amount",
    "Payment Type",
    "Payment Status",
    "Receipt Number",
    "Recorded By",
]


def build_patients_workbook(rows: Iterable[PatientDetailResponse]) -> bytes:
    """
    Build an Excel workbook of patients.

    Args:
        rows: Patients with examinations

    Returns:
        XLSX bytes
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Patients"

    ws.append(EXPORT_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for patient in rows:
        exam_names = ", ".join(exam.exam_name for exam in patient.examinations or [])
        ws.append(
            [
                patient.mri_code,
                patient.serial_number,
                patient.patient_name,
                patient.gender or "",
                patient.age,
                patient.contact_phone_number or "",
                patient.contact_email or "",
                patient.referral_hospital or "",
                patient.referring_doctor or "",
                _fmt_datetime(patient.mri_date_time),
                exam_names,
                float(patient.total_amount),
                patient.payment_type or "",
                patient.payment_status,
                patient.receipt_number,
                patient.recorded_by_staff_name or "",
            ]
        )

    for col in range(1, len(EXPORT_HEADERS) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 20

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
