"""JSON endpoints for fee structures, invoices, payments and staff salaries."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Sum
from django.http import Http404
from django.shortcuts import get_object_or_404

from academics.api import FINANCE_ROLES, ApiView, form_error_response, json_response
from academics.resources import ResourceDetailView, ResourceListView
from academics.services import record_activity
from academics.views import StudentRecordMixin

from . import services
from .forms import FeeStructureForm, InvoiceForm, IssueInvoicesForm, PaymentForm, StaffSalaryForm
from .models import FeeStructure, Invoice, Payment, StaffSalary
from .serializers import fee_structure_dto, invoice_dto, payment_dto, salary_dto

logger = logging.getLogger(__name__)

FINANCE_READ_ROLES = FINANCE_ROLES + ("registrar",)


class FeeStructureResource:
    model = FeeStructure
    form_class = FeeStructureForm
    serializer = fee_structure_dto
    allowed_roles = FINANCE_READ_ROLES
    write_roles = FINANCE_ROLES
    select_related = ("program", "semester")
    search_fields = ("program__name", "program__code", "semester__name", "description")
    filter_params = {"program": "program", "semester": "semester"}

    def get_queryset(self):
        return super().get_queryset().annotate(
            invoice_count=Count("invoices", distinct=True),
            total_invoiced=Sum("invoices__amount_due"),
        )


class FeeStructureListView(FeeStructureResource, ResourceListView):
    pass


class FeeStructureDetailView(FeeStructureResource, ResourceDetailView):
    def perform_delete(self, obj):
        if obj.invoices.exists():
            logger.warning("Refused to delete fee structure %s with issued invoices", obj.pk)
            raise ValidationError("The fee structure has issued invoices and cannot be deleted.")
        obj.delete()


class IssueInvoicesView(ApiView):
    http_method_names = ["post"]
    allowed_roles = FINANCE_ROLES

    def post(self, request, pk):
        fee_structure = get_object_or_404(FeeStructure.objects.select_related("program", "semester"), pk=pk)
        form = IssueInvoicesForm(data=self.payload())
        if not form.is_valid():
            return form_error_response(form)
        outcome = services.issue_invoices(fee_structure, form.cleaned_data["due_date"])
        record_activity(
            request.user,
            "generate",
            fee_structure,
            f"Issued {outcome['created']} invoices ({outcome['skipped']} skipped)",
        )
        return json_response(
            {
                "created": outcome["created"],
                "skipped": outcome["skipped"],
                "invoices": [invoice_dto(invoice) for invoice in outcome["invoices"]],
            },
            status=201,
        )


class InvoiceResource:
    model = Invoice
    form_class = InvoiceForm
    serializer = invoice_dto
    allowed_roles = FINANCE_READ_ROLES
    write_roles = FINANCE_ROLES
    select_related = ("student", "semester")
    filter_params = {"student": "student", "semester": "semester", "status": "status"}


class InvoiceListView(InvoiceResource, ResourceListView):
    pass


class InvoiceDetailView(InvoiceResource, ResourceDetailView):
    def detail(self, obj):
        return invoice_dto(obj, with_payments=True)


class OverdueInvoicesView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_READ_ROLES

    def get(self, request):
        invoices = [invoice_dto(invoice) for invoice in services.overdue_invoices()]
        return json_response({"results": invoices, "count": len(invoices)})


class FinancialSummaryView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_READ_ROLES

    def get(self, request):
        return json_response(services.financial_summary())


class PaymentResource:
    model = Payment
    form_class = PaymentForm
    serializer = payment_dto
    allowed_roles = FINANCE_READ_ROLES
    write_roles = FINANCE_ROLES
    select_related = ("student", "invoice")
    filter_params = {"student": "student", "invoice": "invoice", "method": "payment_method"}

    def describe(self, obj) -> str:
        return f"payment of {obj.amount} on invoice {obj.invoice_id}"

    def perform_create(self, form):
        with transaction.atomic():
            return form.save()

    def perform_update(self, form):
        with transaction.atomic():
            return form.save()

    def perform_delete(self, obj):
        with transaction.atomic():
            obj.delete()


class PaymentListView(PaymentResource, ResourceListView):
    pass


class PaymentDetailView(PaymentResource, ResourceDetailView):
    pass


class PaymentSummaryView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_READ_ROLES

    def get(self, request):
        return json_response(services.payment_summary())


class RecentPaymentsView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_READ_ROLES

    def get(self, request):
        return json_response({"results": [payment_dto(item) for item in services.recent_payments()]})


class SalaryResource:
    model = StaffSalary
    form_class = StaffSalaryForm
    serializer = salary_dto
    allowed_roles = FINANCE_ROLES
    select_related = ("staff",)
    filter_params = {"staff": "staff", "status": "status"}


class SalaryListView(SalaryResource, ResourceListView):
    pass


class SalaryDetailView(SalaryResource, ResourceDetailView):
    pass


class SalarySummaryView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_ROLES

    def get(self, request):
        return json_response(services.salary_summary())


class RecentSalariesView(ApiView):
    http_method_names = ["get"]
    allowed_roles = FINANCE_ROLES

    def get(self, request):
        return json_response({"results": [salary_dto(item) for item in services.recent_salaries()]})


class StudentFinanceView(StudentRecordMixin, ApiView):
    """One student's invoices and payments; ``me/`` resolves the signed-in student."""

    http_method_names = ["get"]
    allowed_roles = FINANCE_READ_ROLES + ("student",)

    def get_student(self):
        if "pk" in self.kwargs:
            return super().get_student()
        if self.student_profile is None:
            raise Http404("No student record is linked to this account.")
        return self.student_profile

    def get(self, request, pk=None):
        student = self.get_student()
        overview = services.student_financial_overview(student)
        return json_response(
            {
                "student": {
                    "id": student.pk,
                    "full_name": student.full_name,
                    "registration_number": student.registration_number,
                    "program": student.program.name,
                },
                "totals": overview["totals"],
                "invoices": [invoice_dto(invoice) for invoice in overview["invoices"]],
                "payments": [payment_dto(payment) for payment in overview["payments"]],
            }
        )
