"""Admin configuration for fees, invoices, payments and salaries."""
import datetime

from django.contrib import admin, messages

from academics.services import record_activity

from . import services
from .forms import InvoiceForm
from .models import FeeStructure, Invoice, Payment, StaffSalary


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("amount", "payment_method", "transaction_date", "reference_number", "student")


@admin.register(FeeStructure)
class FeeStructureAdmin(admin.ModelAdmin):
    list_display = ("program", "semester", "total_amount", "updated_at")
    list_filter = ("semester", "program")
    search_fields = ("program__code", "program__name", "description")
    actions = ["issue_invoices"]

    @admin.action(description="Issue invoices due in 30 days")
    def issue_invoices(self, request, queryset):
        due_date = datetime.date.today() + datetime.timedelta(days=30)
        created = skipped = 0
        for fee_structure in queryset:
            outcome = services.issue_invoices(fee_structure, due_date)
            created += outcome["created"]
            skipped += outcome["skipped"]
            record_activity(request.user, "generate", fee_structure, f"Issued {outcome['created']} invoices")
        self.message_user(
            request, f"Issued {created} invoices, skipped {skipped} already invoiced students.", level=messages.SUCCESS
        )


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    form = InvoiceForm
    list_display = ("id", "student", "semester", "amount_due", "amount_paid", "balance", "status", "due_date")
    list_filter = ("status", "semester")
    search_fields = ("student__registration_number", "student__first_name", "student__last_name")
    readonly_fields = ("balance", "status")
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "invoice", "student", "amount", "payment_method", "transaction_date", "reference_number")
    list_filter = ("payment_method",)
    search_fields = ("reference_number", "student__registration_number")


@admin.register(StaffSalary)
class StaffSalaryAdmin(admin.ModelAdmin):
    list_display = ("staff", "amount", "payment_date", "status")
    list_filter = ("status",)
    search_fields = ("staff__first_name", "staff__last_name", "description")
