"""Plain-dict representations returned by the finance endpoints."""
from __future__ import annotations


def _student(student) -> dict:
    return {
        "id": student.pk,
        "full_name": student.full_name,
        "registration_number": student.registration_number,
    }


def fee_structure_dto(fee) -> dict:
    data = {
        "id": fee.pk,
        "program": {"id": fee.program_id, "name": fee.program.name, "code": fee.program.code},
        "semester": {"id": fee.semester_id, "name": fee.semester.name},
        "total_amount": fee.total_amount,
        "description": fee.description,
        "created_at": fee.created_at,
        "updated_at": fee.updated_at,
    }
    for counter in ("invoice_count", "total_invoiced"):
        if hasattr(fee, counter):
            data[counter] = getattr(fee, counter)
    return data


def payment_dto(payment) -> dict:
    return {
        "id": payment.pk,
        "invoice_id": payment.invoice_id,
        "student": _student(payment.student),
        "amount": payment.amount,
        "payment_method": payment.payment_method,
        "payment_method_label": payment.get_payment_method_display(),
        "transaction_date": payment.transaction_date,
        "reference_number": payment.reference_number,
    }


def invoice_dto(invoice, with_payments: bool = False) -> dict:
    data = {
        "id": invoice.pk,
        "student": _student(invoice.student),
        "semester": {"id": invoice.semester_id, "name": invoice.semester.name},
        "fee_structure_id": invoice.fee_structure_id,
        "amount_due": invoice.amount_due,
        "amount_paid": invoice.amount_paid,
        "balance": invoice.balance,
        "due_date": invoice.due_date,
        "issued_date": invoice.issued_date,
        "status": invoice.status,
    }
    if with_payments:
        data["payments"] = [payment_dto(item) for item in invoice.payments.select_related("student")]
    return data


def salary_dto(salary) -> dict:
    return {
        "id": salary.pk,
        "staff": {"id": salary.staff_id, "full_name": salary.staff.full_name, "position": salary.staff.position},
        "amount": salary.amount,
        "payment_date": salary.payment_date,
        "description": salary.description,
        "status": salary.status,
    }
