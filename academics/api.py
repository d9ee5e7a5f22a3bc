"""Shared plumbing for the JSON endpoints: roles, payload parsing and paging."""
from __future__ import annotations

import datetime
import json

from django import forms
from django.conf import settings
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.paginator import Paginator
from django.core.serializers.json import DjangoJSONEncoder
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

ROLE_CHOICES = [
    ("admin", "Administrator"),
    ("registrar", "Registrar"),
    ("hod", "Head of department"),
    ("accountant", "Accountant"),
    ("lecturer", "Lecturer"),
    ("staff", "Staff"),
    ("student", "Student"),
]

ACADEMIC_ROLES = ("registrar", "hod")
TEACHING_ROLES = ("registrar", "hod", "lecturer")
FINANCE_ROLES = ("accountant",)

READ_METHODS = {"GET", "HEAD", "OPTIONS"}


def role_for(user) -> str | None:
    if not user.is_authenticated:
        return None
    if user.is_superuser:
        return "admin"
    staff = getattr(user, "staff_profile", None)
    if staff is not None:
        return staff.role
    if hasattr(user, "student_profile"):
        return "student"
    return None


def json_response(data, status: int = 200) -> JsonResponse:
    return JsonResponse(data, status=status, safe=False, encoder=DjangoJSONEncoder)


def form_errors(form) -> dict:
    return {
        field: [error["message"] for error in errors]
        for field, errors in form.errors.get_json_data().items()
    }


def form_error_response(form) -> JsonResponse:
    return json_response({"error": "Invalid data.", "details": form_errors(form)}, status=400)


def id_param(data, name: str) -> int | None:
    """A record id taken from the query string or body; ``None`` when absent."""

    value = data.get(name)
    if value in (None, ""):
        return None
    try:
        return forms.IntegerField(min_value=1).clean(value)
    except ValidationError as exc:
        raise ValidationError({name: exc.messages}) from exc


def date_param(data, name: str) -> datetime.date | None:
    value = data.get(name)
    if value in (None, ""):
        return None
    try:
        return forms.DateField().clean(value)
    except ValidationError as exc:
        raise ValidationError({name: exc.messages}) from exc


def paginate(queryset, page, serializer) -> dict:
    paginator = Paginator(queryset, getattr(settings, "PORTAL_PAGE_SIZE", 10))
    page_obj = paginator.get_page(page)
    return {
        "results": [serializer(item) for item in page_obj.object_list],
        "page": page_obj.number,
        "total_pages": paginator.num_pages,
        "count": paginator.count,
    }


@method_decorator(csrf_exempt, name="dispatch")
class ApiView(LoginRequiredMixin, View):
    """Base class for JSON endpoints.

    ``allowed_roles`` guards reads and ``write_roles`` guards mutating
    methods; administrators pass both checks.
    """

    raise_exception = True
    allowed_roles: tuple[str, ...] = ()
    write_roles: tuple[str, ...] | None = None

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()
        self.role = role_for(request.user)
        roles = self.allowed_roles
        if request.method not in READ_METHODS and self.write_roles is not None:
            roles = self.write_roles
        if self.role != "admin" and self.role not in roles:
            raise PermissionDenied("Your role is not allowed to perform this action.")
        return super().dispatch(request, *args, **kwargs)

    def payload(self) -> dict:
        if not self.request.body:
            return {}
        try:
            data = json.loads(self.request.body)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise ValidationError("The request body must be a JSON object.")
        return data

    def merged_payload(self, instance) -> dict:
        """Stored field values overlaid with the request body, for partial updates."""

        data = model_to_dict(instance)
        data.update(self.payload())
        return data

    @property
    def staff_profile(self):
        return getattr(self.request.user, "staff_profile", None)

    @property
    def student_profile(self):
        return getattr(self.request.user, "student_profile", None)
