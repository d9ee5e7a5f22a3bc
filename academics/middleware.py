"""Middleware translating domain exceptions into JSON errors for API paths."""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError
from django.http import Http404

from academics.api import json_response

logger = logging.getLogger(__name__)


class ApiErrorMiddleware:
    """Render validation, permission and lookup failures under /api/ as JSON."""

    api_prefix = "/api/"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path_info.startswith(self.api_prefix):
            return None

        if isinstance(exception, ValidationError):
            details = exception.message_dict if hasattr(exception, "error_dict") else {}
            logger.warning("Rejected %s %s: %s", request.method, request.path_info, exception.messages)
            return json_response({"error": " ".join(exception.messages), "details": details}, status=400)
        if isinstance(exception, ProtectedError):
            blocked = sorted({obj._meta.verbose_name_plural for obj in exception.protected_objects})
            message = "The record is still referenced by: " + ", ".join(str(name) for name in blocked) + "."
            logger.warning("Blocked delete on %s: %s", request.path_info, message)
            return json_response({"error": message, "details": {}}, status=400)
        if isinstance(exception, IntegrityError):
            logger.warning("Integrity error on %s: %s", request.path_info, exception)
            return json_response({"error": "The change conflicts with existing data.", "details": {}}, status=400)
        if isinstance(exception, PermissionDenied):
            return json_response({"error": str(exception) or "Permission denied.", "details": {}}, status=403)
        if isinstance(exception, Http404):
            return json_response({"error": str(exception) or "Not found.", "details": {}}, status=404)
        return None
