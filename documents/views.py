"""PDF download endpoints; every generation is recorded in the document log."""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError, transaction
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404

from academics.api import ApiView, date_param, id_param, json_response
from academics.models import Course, Department, Grade, Program, Semester, StaffProfile, StudentProfile, Transcript
from academics.services import course_enrollments, record_activity
from finance.models import FeeStructure, Invoice, Payment

from . import pdf
from .models import DocumentLog

logger = logging.getLogger(__name__)


def client_ip(request) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or None


class DocumentView(ApiView):
    """Render a PDF, log the download and return it as an attachment."""

    http_method_names = ["get"]
    document_type = ""

    def build(self, request, **kwargs) -> tuple[bytes, str, int | None]:
        """Return ``(pdf bytes, filename, target id)``."""
        raise NotImplementedError

    def log_generation(self, request, target_id) -> None:
        try:
            with transaction.atomic():
                DocumentLog.objects.create(
                    user=request.user,
                    document_type=self.document_type,
                    target_id=target_id,
                    ip_address=client_ip(request),
                    user_agent=request.META.get("HTTP_USER_AGENT", ""),
                )
                record_activity(
                    request.user,
                    "generate",
                    table=DocumentLog._meta.db_table,
                    target_id=target_id,
                    description=f"Generated {self.document_type.replace('_', ' ')}",
                )
        except DatabaseError:
            logger.exception("Could not record %s generation for %s", self.document_type, request.user)

    def get(self, request, *args, **kwargs):
        try:
            content, filename, target_id = self.build(request, **kwargs)
        except (PermissionDenied, Http404, ValidationError):
            raise
        except Exception:
            logger.exception("Failed to generate %s", self.document_type)
            return json_response({"error": "The document could not be generated.", "details": {}}, status=500)

        self.log_generation(request, target_id)
        response = HttpResponse(content, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


def _describe_filters(**labels) -> str:
    return ", ".join(f"{key}: {value}" for key, value in labels.items() if value)


class ReceiptView(DocumentView):
    document_type = "receipt"
    allowed_roles = ("accountant", "student")

    def build(self, request, pk):
        payment = get_object_or_404(
            Payment.objects.select_related("invoice__semester", "student__program"), pk=pk
        )
        if self.role == "student" and payment.student.user_id != request.user.pk:
            raise PermissionDenied("Students may only download their own receipts.")
        return pdf.payment_receipt(payment), f"receipt_{payment.pk}.pdf", payment.pk


class StudentListDocumentView(DocumentView):
    document_type = "student_list"
    allowed_roles = ("registrar", "hod")

    def build(self, request):
        students = StudentProfile.objects.select_related("program", "department", "current_semester")
        params = request.GET
        department_id = id_param(params, "department")
        program_id = id_param(params, "program")
        semester_id = id_param(params, "semester")
        department = get_object_or_404(Department, pk=department_id) if department_id else None
        program = get_object_or_404(Program, pk=program_id) if program_id else None
        semester = get_object_or_404(Semester, pk=semester_id) if semester_id else None
        if department:
            students = students.filter(department=department)
        if program:
            students = students.filter(program=program)
        if semester:
            students = students.filter(current_semester=semester)
        subtitle = _describe_filters(Department=department, Program=program, Semester=semester)
        return pdf.student_list(students, subtitle), "students.pdf", None


class StaffListDocumentView(DocumentView):
    document_type = "staff_list"
    allowed_roles = ("registrar", "hod", "accountant")

    def build(self, request):
        staff = StaffProfile.objects.select_related("department")
        department_id = id_param(request.GET, "department")
        subtitle = ""
        if department_id:
            department = get_object_or_404(Department, pk=department_id)
            staff = staff.filter(department=department)
            subtitle = f"Department: {department.name}"
        return pdf.staff_list(staff, subtitle), "staff.pdf", None


class InvoiceListDocumentView(DocumentView):
    document_type = "invoice_list"
    allowed_roles = ("accountant", "registrar")

    def build(self, request):
        invoices = Invoice.objects.select_related("student", "semester")
        status = request.GET.get("status")
        semester_id = id_param(request.GET, "semester")
        semester = get_object_or_404(Semester, pk=semester_id) if semester_id else None
        if status:
            invoices = invoices.filter(status=status)
        if semester:
            invoices = invoices.filter(semester=semester)
        subtitle = _describe_filters(Status=status, Semester=semester)
        return pdf.invoice_list(invoices, subtitle), "invoices.pdf", None


class PaymentListDocumentView(DocumentView):
    document_type = "payment_list"
    allowed_roles = ("accountant",)

    def build(self, request):
        payments = Payment.objects.select_related("student")
        params = request.GET
        date_from, date_to = date_param(params, "date_from"), date_param(params, "date_to")
        if date_from:
            payments = payments.filter(transaction_date__date__gte=date_from)
        if date_to:
            payments = payments.filter(transaction_date__date__lte=date_to)
        if params.get("method"):
            payments = payments.filter(payment_method=params["method"])
        subtitle = _describe_filters(From=date_from, To=date_to, Method=params.get("method"))
        return pdf.payment_list(payments, subtitle), "payments.pdf", None


class TranscriptDocumentView(DocumentView):
    document_type = "transcript"
    allowed_roles = ("registrar", "hod", "student")

    def build(self, request, pk):
        student = get_object_or_404(StudentProfile.objects.select_related("program", "department"), pk=pk)
        if self.role == "student" and student.user_id != request.user.pk:
            raise PermissionDenied("Students may only download their own transcript.")
        grades = (
            Grade.objects.filter(enrollment__student=student)
            .select_related("enrollment__course", "enrollment__semester")
            .order_by("enrollment__semester__start_date", "enrollment__course__code")
        )
        records = {item.semester_id: item for item in Transcript.objects.filter(student=student)}
        sections = []
        for grade in grades:
            semester = grade.enrollment.semester
            if not sections or sections[-1][0].pk != semester.pk:
                sections.append((semester, [], records.get(semester.pk)))
            sections[-1][1].append(grade)
        return pdf.transcript(student, sections), f"transcript_{student.student_number}.pdf", student.pk


class FeeStructureDocumentView(DocumentView):
    document_type = "fee_structure"
    allowed_roles = ("accountant", "registrar", "student")

    def build(self, request, pk):
        fee_structure = get_object_or_404(FeeStructure.objects.select_related("program", "semester"), pk=pk)
        return (
            pdf.fee_structure_sheet(fee_structure, fee_structure.invoices.all()),
            f"fee_structure_{fee_structure.pk}.pdf",
            fee_structure.pk,
        )


class AttendanceListDocumentView(DocumentView):
    document_type = "attendance_list"
    allowed_roles = ("registrar", "hod", "lecturer")

    def build(self, request, pk):
        course = get_object_or_404(Course.objects.select_related("lecturer", "semester"), pk=pk)
        semester = get_object_or_404(Semester, pk=id_param(request.GET, "semester") or course.semester_id)
        enrollments = course_enrollments(course, semester)
        return pdf.attendance_list(course, semester, enrollments), f"attendance_{course.code}.pdf", course.pk
