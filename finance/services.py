"""Finance operations: invoicing runs and summaries."""
from __future__ import annotations

import datetime
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum

from academics.models import StudentProfile

from .models import ZERO, FeeStructure, Invoice, Payment, StaffSalary

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    return Decimal(value or ZERO).quantize(Decimal("0.01"))


@transaction.atomic
def issue_invoices(fee_structure: FeeStructure, due_date: datetime.date) -> dict:
    """Invoice every student of the structure's program currently in its semester.

    Students that already hold an invoice for the semester are skipped.
    """

    students = StudentProfile.objects.filter(
        program=fee_structure.program_id,
        current_semester=fee_structure.semester_id,
    )
    invoiced = set(
        Invoice.objects.filter(semester=fee_structure.semester_id).values_list("student_id", flat=True)
    )
    created, skipped = [], 0
    for student in students:
        if student.pk in invoiced:
            skipped += 1
            continue
        invoice = Invoice(
            student=student,
            semester=fee_structure.semester,
            fee_structure=fee_structure,
            amount_due=fee_structure.total_amount,
            due_date=due_date,
        )
        invoice.save()
        created.append(invoice)
    logger.info(
        "Issued %s invoices from fee structure %s (%s skipped)", len(created), fee_structure.pk, skipped
    )
    return {"created": len(created), "skipped": skipped, "invoices": created}


def overdue_invoices(today: datetime.date | None = None):
    today = today or datetime.date.today()
    return Invoice.objects.filter(due_date__lt=today, balance__gt=0).select_related("student", "semester")


def financial_summary() -> dict:
    invoices = Invoice.objects.aggregate(outstanding=Sum("balance"), paid=Sum("amount_paid"), due=Sum("amount_due"))
    revenue = Payment.objects.aggregate(total=Sum("amount"))["total"]
    return {
        "total_revenue": _money(revenue),
        "outstanding_balance": _money(invoices["outstanding"]),
        "paid_amount": _money(invoices["paid"]),
        "invoiced_amount": _money(invoices["due"]),
        "invoice_count": Invoice.objects.count(),
        "overdue_count": overdue_invoices().count(),
    }


def _breakdown(queryset, key: str, choices) -> dict:
    rows = {
        row[key]: row
        for row in queryset.values(key).annotate(count=Count("id"), total=Sum("amount")).order_by(key)
    }
    return {
        code: {"count": rows.get(code, {}).get("count", 0), "total": _money(rows.get(code, {}).get("total"))}
        for code, _ in choices
    }


def payment_summary() -> dict:
    totals = Payment.objects.aggregate(count=Count("id"), total=Sum("amount"))
    return {
        "count": totals["count"],
        "total_revenue": _money(totals["total"]),
        "by_method": _breakdown(Payment.objects.all(), "payment_method", Payment.METHOD_CHOICES),
    }


def recent_payments(limit: int = 10):
    return Payment.objects.select_related("student", "invoice")[:limit]


def salary_summary() -> dict:
    totals = StaffSalary.objects.aggregate(count=Count("id"), total=Sum("amount"))
    return {
        "count": totals["count"],
        "total": _money(totals["total"]),
        "by_status": _breakdown(StaffSalary.objects.all(), "status", StaffSalary.STATUS_CHOICES),
    }


def recent_salaries(limit: int = 10):
    return StaffSalary.objects.select_related("staff")[:limit]


def student_financial_overview(student) -> dict:
    """Invoices, payment history and running totals of one student."""

    invoices = Invoice.objects.filter(student=student).select_related("student", "semester")
    payments = Payment.objects.filter(student=student).select_related("student", "invoice")
    totals = invoices.aggregate(due=Sum("amount_due"), paid=Sum("amount_paid"), balance=Sum("balance"))
    return {
        "invoices": invoices,
        "payments": payments,
        "totals": {
            "amount_due": _money(totals["due"]),
            "amount_paid": _money(totals["paid"]),
            "balance": _money(totals["balance"]),
        },
    }
