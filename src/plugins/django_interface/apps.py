import structlog
from django.apps import AppConfig

logger = structlog.get_logger(__name__)

class DjangoInterfaceConfig(AppConfig):
    name = "plugins.django_interface"
    verbose_name = "Land Sales"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from django.conf import settings

        # ─── DI container ───────────────────────────────────────────
        from land_sales.adapters.config.composition_root import setup_di_container_from_settings

        from . import signals  # noqa: F401

        setup_di_container_from_settings(settings)
        logger.info("DjangoAppConfig ready")
