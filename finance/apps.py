from django.apps import AppConfig


class FinanceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "finance"
    verbose_name = "Finance"

    def ready(self) -> None:  # pragma: no cover - Django convention
        from . import signals  # noqa: F401
