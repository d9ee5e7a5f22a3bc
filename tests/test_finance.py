import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from academics.models import ActivityLog
from finance.models import FeeStructure, Invoice, Payment, StaffSalary
from finance.services import issue_invoices, overdue_invoices


@pytest.fixture
def fee_structure(program, semester):
    return FeeStructure.objects.create(program=program, semester=semester, total_amount=Decimal("1000.00"))


@pytest.fixture
def invoice(student, semester, fee_structure):
    return Invoice.objects.create(
        student=student, semester=semester, fee_structure=fee_structure, due_date=datetime.date(2025, 2, 15)
    )


@pytest.mark.django_db
def test_invoice_takes_amount_from_fee_structure(invoice):
    assert invoice.amount_due == Decimal("1000.00")
    assert invoice.balance == Decimal("1000.00")
    assert invoice.status == "pending"


@pytest.mark.django_db
def test_payments_keep_invoice_totals_in_step(invoice):
    first = Payment.objects.create(invoice=invoice, amount=Decimal("400.00"), payment_method="cash")
    invoice.refresh_from_db()
    assert (invoice.amount_paid, invoice.balance, invoice.status) == (Decimal("400.00"), Decimal("600.00"), "partial")
    assert first.student_id == invoice.student_id

    Payment.objects.create(invoice=invoice, amount=Decimal("600.00"), payment_method="card")
    invoice.refresh_from_db()
    assert invoice.balance == Decimal("0.00")
    assert invoice.status == "paid"

    first.delete()
    invoice.refresh_from_db()
    assert invoice.amount_paid == Decimal("600.00")
    assert invoice.status == "partial"


@pytest.mark.django_db
def test_overpayment_is_rejected(invoice):
    Payment.objects.create(invoice=invoice, amount=Decimal("900.00"), payment_method="cash")
    with pytest.raises(ValidationError) as excinfo:
        Payment.objects.create(invoice=invoice, amount=Decimal("100.01"), payment_method="cash")
    assert "amount" in excinfo.value.message_dict
    invoice.refresh_from_db()
    assert invoice.amount_paid == Decimal("900.00")


@pytest.mark.django_db
def test_payment_for_another_students_invoice_is_rejected(invoice, make_student):
    stranger = make_student(first_name="John")
    with pytest.raises(ValidationError):
        Payment.objects.create(invoice=invoice, student=stranger, amount=Decimal("10"), payment_method="cash")


@pytest.mark.django_db
def test_moving_payment_resyncs_both_invoices(invoice, student, next_semester):
    other_invoice = Invoice.objects.create(
        student=student, semester=next_semester, amount_due=Decimal("500.00"), due_date=datetime.date(2025, 10, 1)
    )
    payment = Payment.objects.create(invoice=invoice, amount=Decimal("200.00"), payment_method="cash")
    payment.invoice = other_invoice
    payment.save()

    invoice.refresh_from_db()
    other_invoice.refresh_from_db()
    assert invoice.amount_paid == Decimal("0.00")
    assert invoice.status == "pending"
    assert other_invoice.amount_paid == Decimal("200.00")


@pytest.mark.django_db
def test_issue_invoices_skips_already_invoiced(fee_structure, make_student, next_semester, semester):
    first = make_student()
    second = make_student(first_name="John")
    make_student(first_name="Later", current_semester=next_semester)
    Invoice.objects.create(student=first, semester=semester, amount_due=Decimal("800"), due_date=datetime.date(2025, 2, 1))

    outcome = issue_invoices(fee_structure, datetime.date(2025, 2, 28))

    assert outcome["created"] == 1
    assert outcome["skipped"] == 1
    assert [invoice.student for invoice in outcome["invoices"]] == [second]
    assert outcome["invoices"][0].amount_due == Decimal("1000.00")


@pytest.mark.django_db
def test_issue_invoices_endpoint_records_activity(api, accountant, fee_structure, student):
    response = api(accountant.user).post(f"/api/finance/fee-structures/{fee_structure.pk}/issue/", {"due_date": "2025-02-28"})
    assert response.status_code == 201
    assert response.json()["created"] == 1
    assert ActivityLog.objects.filter(action="generate", target_id=fee_structure.pk).exists()


@pytest.mark.django_db
def test_duplicate_fee_structure_is_rejected(api, accountant, fee_structure, program, semester):
    response = api(accountant.user).post(
        "/api/finance/fee-structures/",
        {"program": program.pk, "semester": semester.pk, "total_amount": "1200.00"},
    )
    assert response.status_code == 400
    assert response.json()["details"]["__all__"] == ["A fee structure already exists for this program and semester."]


@pytest.mark.django_db
def test_fee_structure_with_invoices_cannot_be_deleted(api, accountant, fee_structure, invoice):
    response = api(accountant.user).delete(f"/api/finance/fee-structures/{fee_structure.pk}/")
    assert response.status_code == 400
    assert FeeStructure.objects.filter(pk=fee_structure.pk).exists()


@pytest.mark.django_db
def test_payment_endpoint_updates_invoice(api, accountant, invoice):
    response = api(accountant.user).post(
        "/api/finance/payments/",
        {"invoice": invoice.pk, "amount": "250.00", "payment_method": "mobile_money", "reference_number": "MP-001"},
    )
    assert response.status_code == 201
    assert response.json()["student"]["id"] == invoice.student_id

    detail = api(accountant.user).get(f"/api/finance/invoices/{invoice.pk}/").json()
    assert detail["status"] == "partial"
    assert detail["balance"] == "750.00"
    assert [payment["reference_number"] for payment in detail["payments"]] == ["MP-001"]


@pytest.mark.django_db
def test_payment_endpoint_rejects_overpayment(api, accountant, invoice):
    response = api(accountant.user).post(
        "/api/finance/payments/", {"invoice": invoice.pk, "amount": "1500.00", "payment_method": "cash"}
    )
    assert response.status_code == 400
    assert "amount" in response.json()["details"]
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_overdue_invoices_only_with_balance(invoice, student, next_semester):
    settled = Invoice.objects.create(
        student=student, semester=next_semester, amount_due=Decimal("100"), due_date=datetime.date(2025, 1, 1)
    )
    Payment.objects.create(invoice=settled, amount=Decimal("100"), payment_method="cash")
    assert list(overdue_invoices(today=datetime.date(2025, 3, 1))) == [invoice]


@pytest.mark.django_db
def test_financial_summary_totals(api, accountant, invoice):
    Payment.objects.create(invoice=invoice, amount=Decimal("300.00"), payment_method="cash")
    body = api(accountant.user).get("/api/finance/summary/").json()
    assert body["total_revenue"] == "300.00"
    assert body["outstanding_balance"] == "700.00"
    assert body["invoice_count"] == 1


@pytest.mark.django_db
def test_salary_summary_groups_by_status(api, accountant, lecturer):
    StaffSalary.objects.create(staff=lecturer, amount=Decimal("5000"), payment_date=datetime.date(2025, 1, 31), status="paid")
    StaffSalary.objects.create(staff=lecturer, amount=Decimal("5000"), payment_date=datetime.date(2025, 2, 28))
    body = api(accountant.user).get("/api/finance/salaries/summary/").json()
    assert body["count"] == 2
    assert body["by_status"]["paid"] == {"count": 1, "total": "5000.00"}
    assert body["by_status"]["pending"]["count"] == 1


@pytest.mark.django_db
def test_lecturer_cannot_read_finance(api, lecturer):
    response = api(lecturer.user).get("/api/finance/invoices/")
    assert response.status_code == 403
    assert "error" in response.json()


@pytest.mark.django_db
def test_registrar_reads_but_cannot_write_invoices(api, registrar, student, semester):
    client = api(registrar.user)
    assert client.get("/api/finance/invoices/").status_code == 200
    response = client.post(
        "/api/finance/invoices/",
        {"student": student.pk, "semester": semester.pk, "amount_due": "10", "due_date": "2025-03-01"},
    )
    assert response.status_code == 403


@pytest.mark.django_db
def test_invoice_update_recomputes_balance_and_status(api, accountant, invoice):
    client = api(accountant.user)
    raised = client.patch(f"/api/finance/invoices/{invoice.pk}/", {"amount_due": "1200.00"}).json()
    assert Decimal(raised["balance"]) == Decimal("1200.00")
    assert raised["status"] == "pending"

    Payment.objects.create(invoice=invoice, amount=Decimal("400.00"), payment_method="cash")
    lowered = client.patch(f"/api/finance/invoices/{invoice.pk}/", {"amount_due": "400.00"}).json()
    assert Decimal(lowered["balance"]) == Decimal("0.00")
    assert lowered["status"] == "paid"


@pytest.mark.django_db
def test_invoice_update_cannot_override_paid_amount(api, accountant, invoice):
    Payment.objects.create(invoice=invoice, amount=Decimal("400.00"), payment_method="cash")
    response = api(accountant.user).put(f"/api/finance/invoices/{invoice.pk}/", {"amount_paid": "1500.00"})
    assert response.status_code == 200
    invoice.refresh_from_db()
    assert invoice.amount_paid == Decimal("400.00")
    assert invoice.balance == Decimal("600.00")
    assert invoice.status == "partial"


@pytest.mark.django_db
def test_invoice_amount_due_cannot_drop_below_payments(api, accountant, invoice):
    Payment.objects.create(invoice=invoice, amount=Decimal("400.00"), payment_method="cash")
    response = api(accountant.user).patch(f"/api/finance/invoices/{invoice.pk}/", {"amount_due": "300.00"})
    assert response.status_code == 400
    assert "amount_paid" in response.json()["details"]
    invoice.refresh_from_db()
    assert invoice.amount_due == Decimal("1000.00")


@pytest.mark.django_db
def test_unpaid_invoice_rejects_paid_amount_above_due(api, accountant, invoice):
    response = api(accountant.user).patch(f"/api/finance/invoices/{invoice.pk}/", {"amount_paid": "1000.01"})
    assert response.status_code == 400
    invoice.refresh_from_db()
    assert invoice.amount_paid == Decimal("0.00")


@pytest.mark.django_db
def test_invoice_filter_with_bad_id_is_rejected(api, accountant):
    response = api(accountant.user).get("/api/finance/invoices/", {"student": "abc"})
    assert response.status_code == 400
    assert "student" in response.json()["details"]


@pytest.mark.django_db
def test_student_reads_own_financial_overview(api, invoice):
    Payment.objects.create(invoice=invoice, amount=Decimal("250.00"), payment_method="card", reference_number="C-9")
    client = api(invoice.student.user)

    body = client.get("/api/finance/students/me/").json()
    assert body["student"]["id"] == invoice.student_id
    assert [row["id"] for row in body["invoices"]] == [invoice.pk]
    assert [row["reference_number"] for row in body["payments"]] == ["C-9"]
    assert body["totals"] == {"amount_due": "1000.00", "amount_paid": "250.00", "balance": "750.00"}

    assert client.get(f"/api/finance/students/{invoice.student_id}/").status_code == 200


@pytest.mark.django_db
def test_student_cannot_read_another_students_finances(api, invoice, make_student):
    other = make_student(first_name="John")
    response = api(other.user).get(f"/api/finance/students/{invoice.student_id}/")
    assert response.status_code == 403
    assert api(other.user).get("/api/finance/students/me/").json()["invoices"] == []


@pytest.mark.django_db
def test_finance_staff_read_any_student_overview(api, accountant, invoice):
    response = api(accountant.user).get(f"/api/finance/students/{invoice.student_id}/")
    assert response.status_code == 200
    assert response.json()["totals"]["balance"] == "1000.00"
    assert api(accountant.user).get("/api/finance/students/me/").status_code == 404
