from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import structlog

from land_sales.core.domain.entities.audit_log_entity import AuditLogEntity
from land_sales.core.domain.events.events import AuditableEvent
from land_sales.core.domain.repositories.audit_log_repository import AuditLogRepository

logger = structlog.get_logger(__name__)

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"


def to_json_safe(value: Any) -> Any:
    """Converte Decimal/datas/UUID em tipos aceitos por JSONField."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_json_safe(v) for v in value]
    return value


def diff_values(before: dict[str, Any] | None, after: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Somente os campos que mudaram: {campo: {old, new}}."""
    old = to_json_safe(before or {})
    new = to_json_safe(after or {})
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(old) | set(new)):
        if old.get(key) != new.get(key):
            changes[key] = {"old": old.get(key), "new": new.get(key)}
    return changes


class AuditTrailRecorder:
    """
    Grava a proveniência das mutações em `audit_logs`.

    A gravação é best-effort: uma falha é registrada em log e nunca
    desfaz nem interrompe a mutação principal, que já foi confirmada.
    """

    def __init__(self, repo: AuditLogRepository) -> None:
        self.repo = repo

    def record_change(  # noqa: PLR0913
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        actor_id: uuid.UUID | str | None = None,
        actor_name: str | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        *,
        actor_email: str | None = None,
        notes: str | None = None,
    ) -> AuditLogEntity | None:
        if action == CREATED:
            entry_values = {"new_values": to_json_safe(after or {}), "old_values": None, "changes": None}
        elif action == DELETED:
            entry_values = {"old_values": to_json_safe(before or {}), "new_values": None, "changes": None}
        else:
            changes = diff_values(before, after)
            if not changes:
                logger.debug("audit.no_changes", entity_type=entity_type, entity_id=str(entity_id))
                return None
            entry_values = {
                "old_values": to_json_safe(before or {}),
                "new_values": to_json_safe(after or {}),
                "changes": changes,
            }

        entry = AuditLogEntity(
            id=0,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            user_id=uuid.UUID(str(actor_id)) if actor_id else None,
            user_email=actor_email,
            user_name=actor_name,
            notes=notes,
            **entry_values,
        )
        try:
            saved = self.repo.append(entry)
        except Exception as exc:
            logger.error(
                "audit.write_failed",
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=action,
                error=str(exc),
                exc_info=True,
            )
            return None
        logger.info("audit.recorded", entity_type=entity_type, entity_id=str(entity_id), action=action)
        return saved

    def get_audit_logs(self, entity_type: str, entity_id: str) -> list[AuditLogEntity]:
        return self.repo.list_for(entity_type, str(entity_id))

    # ------------------------------------------------------------------
    def on_event(self, event: AuditableEvent) -> None:
        """Assinante do EventDispatcher para qualquer AuditableEvent."""
        self.record_change(
            event.entity_type,
            event.entity_id,
            event.action,
            actor_id=event.actor_id,
            actor_name=event.actor_name,
            before=event.before,
            after=event.after,
            actor_email=event.actor_email,
            notes=event.notes,
        )
