"""
Fábrica de notifiers de proprietários: devolve o canal configurado.
"""
from functools import lru_cache
from typing import Literal

from django.conf import settings

from land_sales.adapters.notifiers.owner_notifier import (
    DatabaseOwnerNotifier,
    OwnerNotifier,
    WebhookOwnerNotifier,
)
from land_sales.adapters.repositories.owner_notification_repo_impl import OwnerNotificationRepoImpl


@lru_cache
def get_owner_notifier(kind: Literal["database", "webhook"] = "database") -> OwnerNotifier:
    """
    - 'database' → linhas em `notifications`, uma por proprietário ativo
    - 'webhook'  → POST JSON em OWNER_WEBHOOK_URL
    """
    if kind == "database":
        return DatabaseOwnerNotifier(OwnerNotificationRepoImpl())
    if kind == "webhook":
        url = getattr(settings, "OWNER_WEBHOOK_URL", "")
        if not url:
            raise ValueError("OWNER_WEBHOOK_URL não configurada")
        return WebhookOwnerNotifier(url, getattr(settings, "OWNER_WEBHOOK_TOKEN", None) or None)
    raise ValueError(f"Canal de notificação desconhecido: {kind}")
