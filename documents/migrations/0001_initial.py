# Generated manually for initial Django models
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DocumentLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "document_type",
                    models.CharField(
                        choices=[
                            ("receipt", "Payment receipt"),
                            ("student_list", "Student list"),
                            ("staff_list", "Staff list"),
                            ("invoice_list", "Invoice list"),
                            ("payment_list", "Payment list"),
                            ("transcript", "Transcript"),
                            ("fee_structure", "Fee structure"),
                            ("attendance_list", "Attendance list"),
                        ],
                        max_length=50,
                        verbose_name="Document type",
                    ),
                ),
                ("target_id", models.BigIntegerField(blank=True, null=True, verbose_name="Target id")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True, verbose_name="IP address")),
                ("user_agent", models.TextField(blank=True, verbose_name="User agent")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Generated at")),
                (
                    "user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="document_logs",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Generated by",
                    ),
                ),
            ],
            options={
                "verbose_name": "Document log",
                "verbose_name_plural": "Document logs",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
