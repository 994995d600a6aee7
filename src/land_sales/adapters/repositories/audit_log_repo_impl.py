from __future__ import annotations

from collections.abc import Callable

from land_sales.adapters.config.schema_capabilities import SchemaCapabilities
from land_sales.core.domain.entities.audit_log_entity import AuditLogEntity
from land_sales.core.domain.repositories.audit_log_repository import AuditLogRepository
from plugins.django_interface.models import AuditLog as AuditLogModel


class AuditLogRepoImpl(AuditLogRepository):
    def __init__(self, capabilities: Callable[[], SchemaCapabilities] | None = None) -> None:
        self._capabilities = capabilities or SchemaCapabilities

    def append(self, entry: AuditLogEntity) -> AuditLogEntity:
        with_actor = self._capabilities().audit_actor_columns
        obj = AuditLogModel.objects.create(
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            action=entry.action,
            user_id=entry.user_id,
            user_email=entry.user_email if with_actor else None,
            user_name=entry.user_name if with_actor else None,
            old_values=entry.old_values,
            new_values=entry.new_values,
            changes=entry.changes,
            notes=entry.notes,
        )
        return AuditLogEntity.from_model(obj)

    def list_for(self, entity_type: str, entity_id: str) -> list[AuditLogEntity]:
        qs = AuditLogModel.objects.filter(entity_type=entity_type, entity_id=str(entity_id)).order_by(
            "-created_at", "-id"
        )
        return [AuditLogEntity.from_model(obj) for obj in qs]
