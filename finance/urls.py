from django.urls import path

from . import views

app_name = "finance"

urlpatterns = [
    path("summary/", views.FinancialSummaryView.as_view(), name="financial_summary"),
    path("fee-structures/", views.FeeStructureListView.as_view(), name="fee_structure_list"),
    path("fee-structures/<int:pk>/", views.FeeStructureDetailView.as_view(), name="fee_structure_detail"),
    path("fee-structures/<int:pk>/issue/", views.IssueInvoicesView.as_view(), name="fee_structure_issue"),
    path("invoices/", views.InvoiceListView.as_view(), name="invoice_list"),
    path("invoices/overdue/", views.OverdueInvoicesView.as_view(), name="invoice_overdue"),
    path("invoices/<int:pk>/", views.InvoiceDetailView.as_view(), name="invoice_detail"),
    path("payments/", views.PaymentListView.as_view(), name="payment_list"),
    path("payments/summary/", views.PaymentSummaryView.as_view(), name="payment_summary"),
    path("payments/recent/", views.RecentPaymentsView.as_view(), name="payment_recent"),
    path("payments/<int:pk>/", views.PaymentDetailView.as_view(), name="payment_detail"),
    path("students/me/", views.StudentFinanceView.as_view(), name="my_finance"),
    path("students/<int:pk>/", views.StudentFinanceView.as_view(), name="student_finance"),
    path("salaries/", views.SalaryListView.as_view(), name="salary_list"),
    path("salaries/summary/", views.SalarySummaryView.as_view(), name="salary_summary"),
    path("salaries/recent/", views.RecentSalariesView.as_view(), name="salary_recent"),
    path("salaries/<int:pk>/", views.SalaryDetailView.as_view(), name="salary_detail"),
]
