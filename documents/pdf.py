"""PDF builders for receipts, lists, transcripts and sheets using reportlab platypus."""
from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

HEADER_BLUE = colors.HexColor("#1e3a8a")
ROW_SHADE = colors.HexColor("#eef2ff")
GRID_GREY = colors.HexColor("#cbd5e1")


def _text(value) -> str:
    if value is None or value == "":
        return "-"
    return str(value)


def _money(value) -> str:
    return f"{value:,.2f}" if value is not None else "-"


class PortalDocument:
    """A titled A4 document with the institution header; lists use landscape pages."""

    def __init__(self, title: str, wide: bool = False, subtitle: str = ""):
        self.title = title
        self.pagesize = landscape(A4) if wide else A4
        self.styles = getSampleStyleSheet()
        self.story = []
        institution = getattr(settings, "PORTAL_INSTITUTION_NAME", "Campus University")
        header_style = ParagraphStyle("PortalHeader", parent=self.styles["Title"], textColor=HEADER_BLUE)
        self.story.append(Paragraph(escape(institution), header_style))
        self.story.append(Paragraph(escape(title), self.styles["Heading2"]))
        if subtitle:
            self.story.append(Paragraph(escape(subtitle), self.styles["Italic"]))
        generated = timezone.localtime().strftime("%Y-%m-%d %H:%M")
        self.story.append(Paragraph(f"Generated {generated}", self.styles["Normal"]))
        self.story.append(Spacer(1, 6 * mm))

    def heading(self, text: str) -> None:
        self.story.append(Spacer(1, 4 * mm))
        self.story.append(Paragraph(escape(text), self.styles["Heading3"]))

    def paragraph(self, text: str) -> None:
        self.story.append(Paragraph(text, self.styles["Normal"]))

    def key_values(self, pairs) -> None:
        table = Table([[label, _text(value)] for label, value in pairs], hAlign="LEFT", colWidths=[50 * mm, None])
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        self.story.append(table)

    def table(self, headers, rows, empty_message: str = "No records found.") -> None:
        if not rows:
            self.paragraph(empty_message)
            return
        data = [list(headers)] + [[_text(cell) for cell in row] for row in rows]
        table = Table(data, repeatRows=1, hAlign="LEFT")
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        for index in range(2, len(data), 2):
            style.append(("BACKGROUND", (0, index), (-1, index), ROW_SHADE))
        table.setStyle(TableStyle(style))
        self.story.append(table)

    def render(self) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            title=self.title,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
        )
        doc.build(self.story)
        return buffer.getvalue()


def payment_receipt(payment) -> bytes:
    invoice = payment.invoice
    student = payment.student
    doc = PortalDocument(f"Payment receipt #{payment.pk}")
    doc.key_values(
        [
            ("Student", student.full_name),
            ("Registration number", student.registration_number),
            ("Program", student.program.name),
            ("Semester", invoice.semester.name),
            ("Invoice", f"INV-{invoice.pk}"),
            ("Amount paid", _money(payment.amount)),
            ("Method", payment.get_payment_method_display()),
            ("Reference", payment.reference_number),
            ("Transaction date", timezone.localtime(payment.transaction_date).strftime("%Y-%m-%d %H:%M")),
        ]
    )
    doc.heading("Invoice position after this payment")
    doc.key_values(
        [
            ("Amount due", _money(invoice.amount_due)),
            ("Total paid", _money(invoice.amount_paid)),
            ("Balance", _money(invoice.balance)),
            ("Status", invoice.get_status_display()),
        ]
    )
    return doc.render()


def student_list(students, subtitle: str = "") -> bytes:
    doc = PortalDocument("Student list", wide=True, subtitle=subtitle)
    doc.table(
        ["#", "Student no.", "Reg. no.", "Name", "Email", "Program", "Department", "Semester"],
        [
            [
                index,
                student.student_number,
                student.registration_number,
                student.full_name,
                student.email,
                student.program.code,
                student.department.name,
                student.current_semester.name,
            ]
            for index, student in enumerate(students, start=1)
        ],
    )
    return doc.render()


def staff_list(staff_members, subtitle: str = "") -> bytes:
    doc = PortalDocument("Staff list", wide=True, subtitle=subtitle)
    doc.table(
        ["#", "Name", "Email", "Position", "Role", "Department"],
        [
            [index, staff.full_name, staff.email, staff.position, staff.get_role_display(), staff.department.name]
            for index, staff in enumerate(staff_members, start=1)
        ],
    )
    return doc.render()


def invoice_list(invoices, subtitle: str = "") -> bytes:
    invoices = list(invoices)
    doc = PortalDocument("Invoice list", wide=True, subtitle=subtitle)
    doc.table(
        ["Invoice", "Student", "Reg. no.", "Semester", "Due", "Paid", "Balance", "Due date", "Status"],
        [
            [
                f"INV-{invoice.pk}",
                invoice.student.full_name,
                invoice.student.registration_number,
                invoice.semester.name,
                _money(invoice.amount_due),
                _money(invoice.amount_paid),
                _money(invoice.balance),
                invoice.due_date,
                invoice.get_status_display(),
            ]
            for invoice in invoices
        ],
    )
    if invoices:
        doc.heading("Totals")
        doc.key_values(
            [
                ("Amount due", _money(sum(invoice.amount_due for invoice in invoices))),
                ("Amount paid", _money(sum(invoice.amount_paid for invoice in invoices))),
                ("Outstanding", _money(sum(invoice.balance for invoice in invoices))),
            ]
        )
    return doc.render()


def payment_list(payments, subtitle: str = "") -> bytes:
    payments = list(payments)
    doc = PortalDocument("Payment list", wide=True, subtitle=subtitle)
    doc.table(
        ["Payment", "Date", "Student", "Reg. no.", "Invoice", "Method", "Reference", "Amount"],
        [
            [
                payment.pk,
                timezone.localtime(payment.transaction_date).strftime("%Y-%m-%d"),
                payment.student.full_name,
                payment.student.registration_number,
                f"INV-{payment.invoice_id}",
                payment.get_payment_method_display(),
                payment.reference_number,
                _money(payment.amount),
            ]
            for payment in payments
        ],
    )
    if payments:
        doc.paragraph(f"Total collected: {_money(sum(payment.amount for payment in payments))}")
    return doc.render()


def transcript(student, semesters) -> bytes:
    """``semesters`` is a list of ``(semester, grades, transcript_or_none)`` tuples."""

    doc = PortalDocument("Academic transcript")
    doc.key_values(
        [
            ("Student", student.full_name),
            ("Registration number", student.registration_number),
            ("Student number", student.student_number),
            ("Program", student.program.name),
            ("Department", student.department.name),
        ]
    )
    if not semesters:
        doc.paragraph("No graded courses recorded.")
    for semester, grades, record in semesters:
        doc.heading(semester.name)
        doc.table(
            ["Code", "Course", "Credits", "CAT", "Exam", "Total", "Grade", "Points"],
            [
                [
                    grade.enrollment.course.code,
                    grade.enrollment.course.name,
                    grade.enrollment.course.credits,
                    grade.cat_score,
                    grade.exam_score,
                    grade.total_score,
                    grade.letter_grade,
                    grade.gpa,
                ]
                for grade in grades
            ],
        )
        if record is not None:
            doc.paragraph(f"Semester GPA: {_text(record.gpa)} &nbsp;&nbsp; CGPA: {_text(record.cgpa)}")
    return doc.render()


def fee_structure_sheet(fee_structure, invoices) -> bytes:
    invoices = list(invoices)
    doc = PortalDocument(f"Fee structure: {fee_structure.program.name}")
    doc.key_values(
        [
            ("Program", f"{fee_structure.program.code} - {fee_structure.program.name}"),
            ("Semester", fee_structure.semester.name),
            ("Total amount", _money(fee_structure.total_amount)),
            ("Description", fee_structure.description),
            ("Invoices issued", len(invoices)),
            ("Total invoiced", _money(sum(invoice.amount_due for invoice in invoices))),
            ("Total collected", _money(sum(invoice.amount_paid for invoice in invoices))),
        ]
    )
    return doc.render()


def attendance_list(course, semester, enrollments, sessions: int = 6) -> bytes:
    doc = PortalDocument(
        f"Attendance list: {course.code} {course.name}",
        wide=True,
        subtitle=f"{semester.name} | Lecturer: {course.lecturer.full_name if course.lecturer else 'TBA'}",
    )
    headers = ["#", "Reg. no.", "Name"] + [f"Session {n}" for n in range(1, sessions + 1)]
    doc.table(
        headers,
        [
            [index, enrollment.student.registration_number, enrollment.student.full_name] + [" "] * sessions
            for index, enrollment in enumerate(enrollments, start=1)
        ],
        empty_message="No students are enrolled in this course.",
    )
    return doc.render()
