from django.urls import path

from . import views

app_name = "documents"

urlpatterns = [
    path("receipts/<int:pk>/", views.ReceiptView.as_view(), name="receipt"),
    path("students/", views.StudentListDocumentView.as_view(), name="student_list"),
    path("staff/", views.StaffListDocumentView.as_view(), name="staff_list"),
    path("invoices/", views.InvoiceListDocumentView.as_view(), name="invoice_list"),
    path("payments/", views.PaymentListDocumentView.as_view(), name="payment_list"),
    path("transcripts/<int:pk>/", views.TranscriptDocumentView.as_view(), name="transcript"),
    path("fee-structures/<int:pk>/", views.FeeStructureDocumentView.as_view(), name="fee_structure"),
    path("attendance/<int:pk>/", views.AttendanceListDocumentView.as_view(), name="attendance_list"),
]
