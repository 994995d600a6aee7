"""
Traduz eventos de venda em notificações para os proprietários.
"""
from __future__ import annotations

from typing import Any, Protocol

from land_sales.core.domain.events.events import (
    DomainEvent,
    SaleCancelledEvent,
    SaleChangedEvent,
    SaleConfirmedEvent,
    SaleDeadlinePassedEvent,
    SaleReservedEvent,
)

_METHOD_LABELS = {"full": "à vista", "installment": "parcelado", "promise": "promessa"}


class OwnerNotifierPort(Protocol):
    def notify_owners(
        self,
        event_type: str,
        title: str,
        body: str,
        subject_type: str | None = None,
        subject_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        ...


def _describe(event: SaleChangedEvent) -> str:
    parts = [
        f"Lote {event.piece_number or '?'}",
        event.client_name or "cliente desconhecido",
        event.batch_name or "loteamento desconhecido",
    ]
    return " - ".join(parts)


def _sale_metadata(event: SaleChangedEvent, **extra: Any) -> dict[str, Any]:
    return {
        "client_name": event.client_name,
        "piece_number": event.piece_number,
        "batch_name": event.batch_name,
        "sale_price": event.sale_price,
        **extra,
    }


class OwnerAlertsService:
    def __init__(self, notifier: OwnerNotifierPort) -> None:
        self.notifier = notifier

    def on_sale_reserved(self, event: SaleReservedEvent) -> None:
        method = _METHOD_LABELS.get(event.payment_method or "", "não definida")
        self.notifier.notify_owners(
            "sale_created",
            "Nova venda registrada",
            f"{_describe(event)} - forma de pagamento: {method}",
            "sale",
            str(event.sale_id),
            _sale_metadata(event, payment_method=event.payment_method, seller_name=event.actor_name),
        )

    def on_sale_confirmed(self, event: SaleConfirmedEvent) -> None:
        body = _describe(event)
        if event.actor_name:
            body += f"\nConfirmado por: {event.actor_name}"
        self.notifier.notify_owners(
            "sale_confirmed",
            "Venda confirmada",
            body,
            "sale",
            str(event.sale_id),
            _sale_metadata(
                event,
                payment_method=event.payment_method,
                confirmed_by_name=event.actor_name,
                installments_created=event.installments_created,
            ),
        )

    def on_sale_cancelled(self, event: SaleCancelledEvent) -> None:
        self.notifier.notify_owners(
            "sale_cancelled",
            "Venda cancelada",
            f"Venda cancelada - {_describe(event)}",
            "sale",
            str(event.sale_id),
            _sale_metadata(event, previous_status=event.previous_status),
        )

    def on_deadline_passed(self, event: SaleDeadlinePassedEvent) -> None:
        self.notifier.notify_owners(
            "sale_overdue",
            "Prazo de venda vencido",
            f"Lote {event.piece_number} - {event.client_name} - {event.batch_name}: "
            f"{event.overdue_days} dia(s) após o prazo",
            "sale",
            str(event.sale_id),
            {
                "client_name": event.client_name,
                "piece_number": event.piece_number,
                "batch_name": event.batch_name,
                "deadline_date": event.deadline_date,
                "overdue_days": event.overdue_days,
            },
        )

    # ------------------------------------------------------------------
    def subscriptions(self) -> list[tuple[type[DomainEvent], Any]]:
        return [
            (SaleReservedEvent, self.on_sale_reserved),
            (SaleConfirmedEvent, self.on_sale_confirmed),
            (SaleCancelledEvent, self.on_sale_cancelled),
            (SaleDeadlinePassedEvent, self.on_deadline_passed),
        ]
