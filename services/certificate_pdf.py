"""
Certificate PDF rendering (A4 landscape) with reportlab.
"""

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from core.config import settings
from services.helpers import sanitize_filename, to_local

PRIMARY = colors.HexColor("#2563eb")
SECONDARY = colors.HexColor("#1e40af")
GOLD = colors.HexColor("#f59e0b")
TEXT = colors.HexColor("#1f2937")
GREEN = colors.HexColor("#10b981")
GREY = colors.HexColor("#6b7280")
LIGHT_GREY = colors.HexColor("#9ca3af")

TAGLINE = "Care & Intelligence Ready for You"


@dataclass
class CertificateContent:
    recipient_name: str
    quiz_title: str
    score: int
    verification_code: str
    issued_at: datetime
    user_id: int


def score_color(score: int):
    if score >= 90:
        return GREEN
    if score >= 70:
        return GOLD
    return GREY


def certificate_filename(quiz_title: str, user_id: int) -> str:
    return f"certificate_{sanitize_filename(quiz_title)}_{user_id}.pdf"


def verify_url() -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/verify"


def render_certificate(content: CertificateContent) -> bytes:
    buffer = BytesIO()
    width, height = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f"Certificate - {content.quiz_title}")
    center = width / 2

    # reportlab's origin is bottom-left; positions below are measured from the top
    def y(top: float) -> float:
        return height - top

    pdf.setLineWidth(8)
    pdf.setStrokeColor(PRIMARY)
    pdf.rect(30, 30, width - 60, height - 60)
    pdf.setLineWidth(2)
    pdf.setStrokeColor(GOLD)
    pdf.rect(40, 40, width - 80, height - 80)

    pdf.setFillColor(PRIMARY)
    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(center, y(100), "CIRY")
    pdf.setFillColor(SECONDARY)
    pdf.setFont("Helvetica", 14)
    pdf.drawCentredString(center, y(125), TAGLINE)

    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica-Bold", 36)
    pdf.drawCentredString(center, y(200), "CERTIFICATE OF ACHIEVEMENT")
    pdf.setStrokeColor(GOLD)
    pdf.setLineWidth(2)
    pdf.line(center - 100, y(220), center + 100, y(220))

    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(center, y(265), "This is to certify that")
    pdf.setFillColor(PRIMARY)
    pdf.setFont("Helvetica-Bold", 32)
    pdf.drawCentredString(center, y(310), content.recipient_name)
    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(center, y(345), "has successfully completed")

    pdf.setFillColor(SECONDARY)
    pdf.setFont("Helvetica-Bold", 24)
    title_lines = simpleSplit(content.quiz_title, "Helvetica-Bold", 24, width - 200)
    top = 380
    for line in title_lines[:2]:
        pdf.drawCentredString(center, y(top), line)
        top += 28

    pdf.setFillColor(score_color(content.score))
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawCentredString(center, y(top + 12), f"with a score of {content.score}%")

    bottom = height - 150
    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica", 12)
    pdf.drawString(100, y(bottom), f"Date: {to_local(content.issued_at).strftime('%d %B %Y')}")
    pdf.setFillColor(GREY)
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(center, y(bottom + 30), f"Verification Code: {content.verification_code}")

    sig_x = width - 200
    sig_y = y(bottom + 60)
    pdf.setStrokeColor(LIGHT_GREY)
    pdf.setLineWidth(1)
    pdf.line(sig_x, sig_y, sig_x + 150, sig_y)
    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica-Oblique", 10)
    pdf.drawCentredString(sig_x + 75, sig_y - 14, "Director of Certifications")

    pdf.setFillColor(LIGHT_GREY)
    pdf.setFont("Helvetica", 8)
    pdf.drawCentredString(
        center,
        55,
        f"This certificate verifies successful completion and can be verified at {verify_url()}",
    )

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
