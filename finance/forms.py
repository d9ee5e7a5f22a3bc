"""Forms validating JSON payloads for the finance endpoints."""
from __future__ import annotations

from django import forms
from django.core.exceptions import NON_FIELD_ERRORS

from .models import FeeStructure, Invoice, Payment, StaffSalary


class _FriendlyUniqueMixin:
    """Replace Django's generic unique-together message with a domain one."""

    duplicate_message = ""

    def validate_unique(self):
        try:
            self.instance.validate_unique(exclude=self._get_validation_exclusions())
        except forms.ValidationError as exc:
            errors = exc.error_dict if hasattr(exc, "error_dict") else {}
            if NON_FIELD_ERRORS in errors:
                self.add_error(None, self.duplicate_message)
                errors = {key: value for key, value in errors.items() if key != NON_FIELD_ERRORS}
            if errors:
                self._update_errors(forms.ValidationError(errors))


class FeeStructureForm(_FriendlyUniqueMixin, forms.ModelForm):
    duplicate_message = "A fee structure already exists for this program and semester."

    class Meta:
        model = FeeStructure
        fields = ("program", "semester", "total_amount", "description")


class InvoiceForm(_FriendlyUniqueMixin, forms.ModelForm):
    duplicate_message = "The student has already been invoiced for this semester."

    class Meta:
        model = Invoice
        fields = ("student", "semester", "fee_structure", "amount_due", "amount_paid", "due_date", "issued_date")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["amount_due"].required = False
        self.fields["amount_paid"].required = False
        self.fields["issued_date"].required = False

    def clean_amount_paid(self):
        value = self.cleaned_data.get("amount_paid")
        # Once payments exist, amount_paid is their sum and cannot be edited.
        if value is None or (self.instance.pk is not None and self.instance.payments.exists()):
            return self.instance.amount_paid
        return value

    def clean_issued_date(self):
        return self.cleaned_data.get("issued_date") or self.instance.issued_date


class PaymentForm(forms.ModelForm):
    class Meta:
        model = Payment
        fields = ("invoice", "student", "amount", "payment_method", "transaction_date", "reference_number")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["student"].required = False
        self.fields["transaction_date"].required = False

    def clean(self):
        cleaned = super().clean()
        invoice = cleaned.get("invoice")
        if invoice is not None and not cleaned.get("student"):
            cleaned["student"] = invoice.student
        if not cleaned.get("transaction_date"):
            cleaned["transaction_date"] = self.instance.transaction_date
        return cleaned


class StaffSalaryForm(forms.ModelForm):
    class Meta:
        model = StaffSalary
        fields = ("staff", "amount", "payment_date", "description", "status")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["status"].required = False

    def clean_status(self):
        return self.cleaned_data.get("status") or self.instance.status


class IssueInvoicesForm(forms.Form):
    due_date = forms.DateField()
