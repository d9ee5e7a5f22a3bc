"""URL configuration for the campus portal."""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("academics.urls")),
    path("api/finance/", include("finance.urls")),
    path("api/documents/", include("documents.urls")),
]
