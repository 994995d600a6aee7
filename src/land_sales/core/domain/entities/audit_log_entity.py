import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from land_sales.core.domain.entities._base import EntityMixin

AuditEntityType = Literal["sale", "piece", "client", "installment", "appointment"]
AuditAction = Literal["created", "updated", "deleted"]


@dataclass(slots=True)
class AuditLogEntity(EntityMixin):
    id: int
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    user_id: uuid.UUID | None = None
    user_email: str | None = None
    user_name: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    notes: str | None = None
    created_at: datetime | None = None
