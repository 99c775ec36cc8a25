# sample_generator.py
# Generates sample (unstamped) certificates using reportlab, Pillow and Faker.

import io
import random
from faker import Faker
from PIL import Image, ImageDraw
from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm

FAKE = Faker('en_IN')

UNIVERSITIES = [
    ("Birla Institute of Technology, Mesra", "bitmesra.ac.in"),
    ("Indian Institute of Technology, Dhanbad", "iitism.ac.in"),
    ("National Institute of Technology, Jamshedpur", "nitjsr.ac.in"),
]
COURSES = [
    "Computer Science Engineering", "Mechanical Engineering", "Civil Engineering",
    "Electrical Engineering", "Physics", "Chemistry", "Mathematics"
]


class CertificateGenerator:
    """Draws plain certificates in memory, as PDF bytes or PNG bytes."""

    def __init__(self, pagesize=landscape(A4)):
        self.pagesize = pagesize

    def create_pdf(self, fields: dict, background=None) -> bytes:
        width, height = self.pagesize
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=self.pagesize)
        if background:
            c.setFillColorRGB(*background)
            c.rect(0, 0, width, height, stroke=0, fill=1)
            c.setFillColorRGB(0, 0, 0)

        margin = 20 * mm
        c.setLineWidth(2)
        c.rect(margin, margin, width - 2 * margin, height - 2 * margin)
        c.setFont("Helvetica-Bold", 28)
        c.drawCentredString(width / 2, height - 45 * mm, "Certificate of Completion")
        c.setFont("Helvetica", 14)
        c.drawCentredString(width / 2, height - 55 * mm, f"Issued by: {fields.get('university_name', 'Sample University')}")

        y_pos = height - 80 * mm
        for label, key in (("Name", "student_name"), ("Course", "course_name"), ("Date of Issue", "issue_date")):
            value = fields.get(key)
            if value:
                c.setFont("Helvetica-Bold", 13)
                c.drawString(margin + 20 * mm, y_pos, f"{label}:")
                c.setFont("Helvetica", 13)
                c.drawString(margin + 65 * mm, y_pos, str(value))
                y_pos -= 12 * mm

        c.setFont("Helvetica", 10)
        c.drawString(margin + 20 * mm, margin + 15 * mm, "Authorized Signature")
        c.showPage()
        c.save()
        return buffer.getvalue()

    def create_image(self, fields: dict, size=(1200, 850), background=(250, 246, 232)) -> bytes:
        img = Image.new("RGB", size, background)
        draw = ImageDraw.Draw(img)
        width, height = size
        draw.rectangle([40, 40, width - 40, height - 40], outline=(40, 40, 40), width=4)
        draw.text((width // 2 - 120, 120), "Certificate of Completion", fill=(0, 0, 0))
        y_pos = 260
        for key in ("student_name", "course_name", "issue_date", "university_name"):
            if fields.get(key):
                draw.text((160, y_pos), str(fields[key]), fill=(0, 0, 0))
                y_pos += 60
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()


def random_fields() -> dict:
    university_name, domain = random.choice(UNIVERSITIES)
    return {
        "student_name": FAKE.name(),
        "course_name": random.choice(COURSES),
        "issue_date": FAKE.date_between(start_date='-3y', end_date='today').strftime("%B %d, %Y"),
        "university_name": university_name,
        "university_domain": domain,
    }
