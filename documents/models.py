from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class DocumentLog(models.Model):
    DOCUMENT_TYPE_CHOICES = [
        ("receipt", "Payment receipt"),
        ("student_list", "Student list"),
        ("staff_list", "Staff list"),
        ("invoice_list", "Invoice list"),
        ("payment_list", "Payment list"),
        ("transcript", "Transcript"),
        ("fee_structure", "Fee structure"),
        ("attendance_list", "Attendance list"),
    ]

    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, related_name="document_logs", verbose_name="Generated by"
    )
    document_type = models.CharField("Document type", max_length=50, choices=DOCUMENT_TYPE_CHOICES)
    target_id = models.BigIntegerField("Target id", null=True, blank=True)
    ip_address = models.GenericIPAddressField("IP address", null=True, blank=True)
    user_agent = models.TextField("User agent", blank=True)
    created_at = models.DateTimeField("Generated at", auto_now_add=True)

    class Meta:
        verbose_name = "Document log"
        verbose_name_plural = "Document logs"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover - human readable labels
        return f"{self.get_document_type_display()} by {self.user} at {self.created_at:%Y-%m-%d %H:%M}"
