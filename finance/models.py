"""Fee, invoice, payment and salary records."""
from __future__ import annotations

import datetime
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum
from django.utils import timezone

from academics.models import Program, Semester, StaffProfile, StudentProfile

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
TWO_PLACES = Decimal("0.01")
POSITIVE = [MinValueValidator(Decimal("0.01"))]
NON_NEGATIVE = [MinValueValidator(ZERO)]


class FeeStructure(models.Model):
    program = models.ForeignKey(Program, on_delete=models.PROTECT, related_name="fee_structures", verbose_name="Program")
    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="fee_structures", verbose_name="Semester")
    total_amount = models.DecimalField("Total amount", max_digits=12, decimal_places=2, validators=POSITIVE)
    description = models.TextField("Description", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Fee structure"
        verbose_name_plural = "Fee structures"
        unique_together = [("program", "semester")]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.program.code} / {self.semester}: {self.total_amount}"


class Invoice(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("partial", "Partially paid"),
        ("paid", "Paid"),
    ]

    student = models.ForeignKey(StudentProfile, on_delete=models.PROTECT, related_name="invoices", verbose_name="Student")
    semester = models.ForeignKey(Semester, on_delete=models.PROTECT, related_name="invoices", verbose_name="Semester")
    fee_structure = models.ForeignKey(
        FeeStructure,
        on_delete=models.SET_NULL,
        related_name="invoices",
        null=True,
        blank=True,
        verbose_name="Fee structure",
    )
    amount_due = models.DecimalField("Amount due", max_digits=12, decimal_places=2, validators=NON_NEGATIVE, blank=True)
    amount_paid = models.DecimalField(
        "Amount paid", max_digits=12, decimal_places=2, default=ZERO, validators=NON_NEGATIVE
    )
    balance = models.DecimalField("Balance", max_digits=12, decimal_places=2, default=ZERO, editable=False)
    due_date = models.DateField("Due date")
    issued_date = models.DateField("Issued on", default=datetime.date.today)
    status = models.CharField("Status", max_length=20, choices=STATUS_CHOICES, default="pending", editable=False)

    class Meta:
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        unique_together = [("student", "semester")]
        ordering = ["-issued_date", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"INV-{self.pk or 'new'} {self.student} {self.semester}"

    @staticmethod
    def status_for(amount_paid: Decimal, balance: Decimal) -> str:
        if balance <= 0:
            return "paid"
        if amount_paid > 0:
            return "partial"
        return "pending"

    def recompute(self) -> None:
        """Refresh balance and status from amount due and amount paid."""

        due = Decimal(self.amount_due or 0)
        paid = Decimal(self.amount_paid or 0)
        self.balance = (due - paid).quantize(TWO_PLACES)
        self.status = self.status_for(paid, self.balance)

    def clean(self):
        super().clean()
        if self.amount_due is None and self.fee_structure_id:
            self.amount_due = self.fee_structure.total_amount
        if self.amount_due is None:
            raise ValidationError({"amount_due": "Provide an amount due or a fee structure."})
        if self.fee_structure_id and self.fee_structure.semester_id != self.semester_id:
            raise ValidationError({"fee_structure": "The fee structure belongs to a different semester."})
        if Decimal(self.amount_paid or 0) > Decimal(self.amount_due):
            raise ValidationError({"amount_paid": "The amount paid cannot exceed the amount due."})

    def save(self, *args, **kwargs):
        if self.amount_due is None and self.fee_structure_id:
            self.amount_due = self.fee_structure.total_amount
        self.recompute()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"balance", "status"}
        super().save(*args, **kwargs)

    def sync_payments(self) -> None:
        """Set amount paid to the sum of recorded payments and persist the result."""

        total = self.payments.aggregate(total=Sum("amount"))["total"] or ZERO
        self.amount_paid = Decimal(total).quantize(TWO_PLACES)
        self.save(update_fields=["amount_paid"])
        logger.info("Invoice %s now paid %s of %s (%s)", self.pk, self.amount_paid, self.amount_due, self.status)


class Payment(models.Model):
    METHOD_CHOICES = [
        ("cash", "Cash"),
        ("bank_transfer", "Bank transfer"),
        ("mobile_money", "Mobile money"),
        ("card", "Card"),
        ("cheque", "Cheque"),
    ]

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="payments", verbose_name="Invoice")
    student = models.ForeignKey(StudentProfile, on_delete=models.PROTECT, related_name="payments", verbose_name="Student")
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2, validators=POSITIVE)
    payment_method = models.CharField("Method", max_length=20, choices=METHOD_CHOICES)
    transaction_date = models.DateTimeField("Transaction date", default=timezone.now)
    reference_number = models.CharField("Reference number", max_length=100, unique=True, null=True, blank=True)

    class Meta:
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ["-transaction_date", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.amount} via {self.get_payment_method_display()} for invoice {self.invoice_id}"

    def clean(self):
        super().clean()
        if not self.reference_number:
            self.reference_number = None
        if not (self.invoice_id and self.amount is not None):
            return
        if self.student_id and self.student_id != self.invoice.student_id:
            raise ValidationError({"student": "The payment must be made by the invoiced student."})
        others = self.invoice.payments.exclude(pk=self.pk).aggregate(total=Sum("amount"))["total"] or ZERO
        outstanding = Decimal(self.invoice.amount_due) - Decimal(others)
        if Decimal(self.amount) > outstanding:
            raise ValidationError(
                {"amount": f"The payment exceeds the outstanding balance of {outstanding.quantize(TWO_PLACES)}."}
            )

    def save(self, *args, **kwargs):
        if self.invoice_id and not self.student_id:
            self.student_id = self.invoice.student_id
        self.full_clean()
        return super().save(*args, **kwargs)


class StaffSalary(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("cancelled", "Cancelled"),
    ]

    staff = models.ForeignKey(StaffProfile, on_delete=models.PROTECT, related_name="salaries", verbose_name="Staff member")
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2, validators=POSITIVE)
    payment_date = models.DateField("Payment date")
    description = models.TextField("Description", blank=True)
    status = models.CharField("Status", max_length=20, choices=STATUS_CHOICES, default="pending")

    class Meta:
        verbose_name = "Staff salary"
        verbose_name_plural = "Staff salaries"
        ordering = ["-payment_date", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.staff} {self.amount} ({self.status})"
