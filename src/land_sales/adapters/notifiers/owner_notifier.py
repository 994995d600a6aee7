"""
Canal de notificação para proprietários.

`notify_owners` é fire-and-forget: qualquer falha é registrada e contada,
nunca propagada para a transição que a originou.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import backoff
import structlog
from django.db import DatabaseError

from land_sales.adapters.notifiers.base import BaseNotifier
from land_sales.adapters.observability.metrics import OWNER_NOTIFICATIONS
from land_sales.core.application.services.audit_trail_service import to_json_safe
from land_sales.core.domain.repositories.owner_notification_repository import (
    OwnerNotificationRepository,
)

logger = structlog.get_logger(__name__)


class OwnerNotifier(ABC):
    def notify_owners(  # noqa: PLR0913
        self,
        event_type: str,
        title: str,
        body: str,
        subject_type: str | None = None,
        subject_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        try:
            self.send(
                event_type=event_type,
                title=title,
                body=body,
                subject_type=subject_type,
                subject_id=str(subject_id) if subject_id is not None else None,
                metadata=to_json_safe(metadata or {}),
            )
        except Exception as exc:
            OWNER_NOTIFICATIONS.labels("failed").inc()
            logger.error(
                "owner_notification.failed",
                event_type=event_type,
                subject_id=str(subject_id),
                error=str(exc),
                exc_info=True,
            )
            return False
        OWNER_NOTIFICATIONS.labels("sent").inc()
        logger.info("owner_notification.sent", event_type=event_type, subject_id=str(subject_id))
        return True

    @abstractmethod
    def send(
        self,
        *,
        event_type: str,
        title: str,
        body: str,
        subject_type: str | None,
        subject_id: str | None,
        metadata: dict[str, Any],
    ) -> None:
        ...


class DatabaseOwnerNotifier(OwnerNotifier):
    """Grava uma linha em `notifications` para cada proprietário ativo."""

    def __init__(self, repo: OwnerNotificationRepository) -> None:
        self.repo = repo

    @backoff.on_exception(backoff.expo, DatabaseError, max_tries=2, jitter=None)
    def send(self, *, event_type, title, body, subject_type, subject_id, metadata) -> None:
        created = self.repo.create_for_owners(
            event_type=event_type,
            title=title,
            message=body,
            entity_type=subject_type,
            entity_id=subject_id,
            metadata=metadata,
        )
        logger.debug("owner_notification.rows_created", event_type=event_type, count=created)


class WebhookOwnerNotifier(BaseNotifier, OwnerNotifier):
    """Publica a notificação como JSON em um webhook externo."""

    def __init__(self, url: str, token: str | None = None) -> None:
        super().__init__("webhook", "owners")
        self._url = url
        self._token = token

    def send(self, *, event_type, title, body, subject_type, subject_id, metadata) -> None:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._request(
            "POST",
            self._url,
            json={
                "type": event_type,
                "title": title,
                "message": body,
                "entity_type": subject_type,
                "entity_id": subject_id,
                "metadata": metadata,
            },
            headers=headers,
        )
