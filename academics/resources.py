"""Generic list/detail endpoints built on :class:`academics.api.ApiView`."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db.models import Q
from django.shortcuts import get_object_or_404

from .api import ApiView, form_error_response, json_response, paginate
from .services import record_activity

logger = logging.getLogger(__name__)


class ResourceMixin:
    model = None
    form_class = None
    serializer = None
    select_related: tuple[str, ...] = ()
    search_fields: tuple[str, ...] = ()
    filter_params: dict[str, str] = {}

    def get_queryset(self):
        queryset = self.model.objects.all()
        if self.select_related:
            queryset = queryset.select_related(*self.select_related)
        return queryset

    def get_form(self, data, instance=None):
        return self.form_class(data=data, instance=instance)

    def describe(self, obj) -> str:
        return f"{self.model._meta.verbose_name} {obj}"

    def serialize(self, obj) -> dict:
        return type(self).serializer(obj)


class ResourceListView(ResourceMixin, ApiView):
    """GET lists (searchable, filterable, optionally paged); POST creates."""

    paginated = False

    def filter_queryset(self, queryset):
        params = self.request.GET
        for param, lookup in self.filter_params.items():
            value = params.get(param)
            if value in (None, ""):
                continue
            try:
                queryset = queryset.filter(**{lookup: value})
            except (ValueError, ValidationError) as exc:
                raise ValidationError({param: [f"'{value}' is not a valid value."]}) from exc
        query = params.get("q", "").strip()
        if query and self.search_fields:
            condition = Q()
            for field in self.search_fields:
                condition |= Q(**{f"{field}__icontains": query})
            queryset = queryset.filter(condition)
        return queryset

    def get(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        if self.paginated or "page" in request.GET:
            return json_response(paginate(queryset, request.GET.get("page", 1), self.serialize))
        results = [self.serialize(obj) for obj in queryset]
        return json_response({"results": results, "count": len(results)})

    def perform_create(self, form):
        return form.save()

    def post(self, request, *args, **kwargs):
        form = self.get_form(self.payload())
        if not form.is_valid():
            logger.warning("Rejected new %s: %s", self.model._meta.verbose_name, form.errors.as_text())
            return form_error_response(form)
        obj = self.perform_create(form)
        record_activity(request.user, "create", obj, f"Created {self.describe(obj)}")
        return json_response(self.serialize(obj), status=201)


class ResourceDetailView(ResourceMixin, ApiView):
    """GET one row; PUT/PATCH merge the body over stored values; DELETE removes."""

    def get_object(self):
        return get_object_or_404(self.get_queryset(), pk=self.kwargs["pk"])

    def detail(self, obj) -> dict:
        return self.serialize(obj)

    def get(self, request, *args, **kwargs):
        return json_response(self.detail(self.get_object()))

    def perform_update(self, form):
        return form.save()

    def put(self, request, *args, **kwargs):
        obj = self.get_object()
        form = self.get_form(self.merged_payload(obj), instance=obj)
        if not form.is_valid():
            logger.warning("Rejected update of %s #%s: %s", self.model._meta.verbose_name, obj.pk, form.errors.as_text())
            return form_error_response(form)
        obj = self.perform_update(form)
        record_activity(request.user, "update", obj, f"Updated {self.describe(obj)}")
        return json_response(self.serialize(obj))

    patch = put

    def perform_delete(self, obj) -> None:
        obj.delete()

    def delete(self, request, *args, **kwargs):
        obj = self.get_object()
        pk, description = obj.pk, self.describe(obj)
        self.perform_delete(obj)
        record_activity(
            request.user,
            "delete",
            description=f"Deleted {description}",
            table=self.model._meta.db_table,
            target_id=pk,
        )
        return json_response({"deleted": True, "id": pk})
