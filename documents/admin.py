from django.contrib import admin

from .models import DocumentLog


@admin.register(DocumentLog)
class DocumentLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "document_type", "target_id", "user", "ip_address")
    list_filter = ("document_type",)
    search_fields = ("user__username", "ip_address")
    readonly_fields = ("user", "document_type", "target_id", "ip_address", "user_agent", "created_at")
