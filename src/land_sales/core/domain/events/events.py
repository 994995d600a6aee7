from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, kw_only=True)
class AuditableEvent(DomainEvent):
    """
    Evento que carrega a proveniência de uma mutação já confirmada.
    `before`/`after` são os estados do registro antes e depois da mudança.
    """
    entity_type: str
    entity_id: str
    action: str
    actor_id: uuid.UUID | None = None
    actor_name: str | None = None
    actor_email: str | None = None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    notes: str | None = None


# ╭──────────────────────────────────────────────╮
# │ 1. Vendas                                   │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class SaleChangedEvent(AuditableEvent):
    """Base de toda mudança de linha na tabela de vendas."""
    sale_id: uuid.UUID
    change: str = "UPDATE"  # INSERT | UPDATE | DELETE
    client_name: str | None = None
    piece_number: str | None = None
    batch_name: str | None = None
    sale_price: Decimal | None = None
    entity_type: str = "sale"
    action: str = "updated"


@dataclass(frozen=True, kw_only=True)
class SaleReservedEvent(SaleChangedEvent):
    payment_method: str | None = None
    change: str = "INSERT"
    action: str = "created"


@dataclass(frozen=True, kw_only=True)
class SaleUpdatedEvent(SaleChangedEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class SaleConfirmedEvent(SaleChangedEvent):
    payment_method: str
    installments_created: int = 0


@dataclass(frozen=True, kw_only=True)
class PromisePaymentRecordedEvent(SaleChangedEvent):
    amount: Decimal
    remaining: Decimal


@dataclass(frozen=True, kw_only=True)
class SaleRevertedEvent(SaleChangedEvent):
    installments_deleted: int = 0


@dataclass(frozen=True, kw_only=True)
class SaleCancelledEvent(SaleChangedEvent):
    previous_status: str = "pending"
    installments_deleted: int = 0


@dataclass(frozen=True, kw_only=True)
class SaleRemovedEvent(SaleChangedEvent):
    change: str = "DELETE"
    action: str = "deleted"
    installments_deleted: int = 0


@dataclass(frozen=True, kw_only=True)
class InstallmentPaymentRecordedEvent(SaleChangedEvent):
    amount: Decimal
    applied: Decimal
    unapplied: Decimal
    paid_date: date


# ╭──────────────────────────────────────────────╮
# │ 2. Agendamentos                             │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class AppointmentChangedEvent(AuditableEvent):
    appointment_id: uuid.UUID
    entity_type: str = "appointment"


@dataclass(frozen=True, kw_only=True)
class AppointmentScheduledEvent(AppointmentChangedEvent):
    action: str = "created"


@dataclass(frozen=True, kw_only=True)
class AppointmentRescheduledEvent(AppointmentChangedEvent):
    action: str = "updated"


@dataclass(frozen=True, kw_only=True)
class AppointmentStatusChangedEvent(AppointmentChangedEvent):
    status: str
    action: str = "updated"


@dataclass(frozen=True, kw_only=True)
class AppointmentDeletedEvent(AppointmentChangedEvent):
    action: str = "deleted"


# ╭──────────────────────────────────────────────╮
# │ 3. Prazos                                   │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class SaleDeadlinePassedEvent(DomainEvent):
    sale_id: uuid.UUID
    client_name: str
    piece_number: str
    batch_name: str
    deadline_date: date
    overdue_days: int
