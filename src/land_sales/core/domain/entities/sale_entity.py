from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from land_sales.core.domain.entities._base import EntityMixin

SaleStatus = Literal["pending", "completed", "cancelled"]
PaymentMethod = Literal["full", "installment", "promise"]

PENDING = "pending"
COMPLETED = "completed"
CANCELLED = "cancelled"

FULL = "full"
INSTALLMENT = "installment"
PROMISE = "promise"
PAYMENT_METHODS = (FULL, INSTALLMENT, PROMISE)


@dataclass(slots=True)
class SaleEntity(EntityMixin):
    id: uuid.UUID
    client_id: uuid.UUID
    land_piece_id: uuid.UUID
    batch_id: uuid.UUID
    sale_price: Decimal
    sale_date: date
    status: SaleStatus = PENDING
    payment_method: PaymentMethod | None = None
    payment_offer_id: uuid.UUID | None = None

    # --- valores --- #
    deposit_amount: Decimal | None = None
    partial_payment_amount: Decimal | None = None
    remaining_payment_amount: Decimal | None = None
    company_fee_amount: Decimal | None = None

    # --- prazos / condições --- #
    deadline_date: date | None = None
    installment_start_date: date | None = None
    offer_snapshot: dict[str, Any] | None = None
    notes: str | None = None
    contract_writer: str | None = None

    # --- proveniência --- #
    sold_by_id: uuid.UUID | None = None
    confirmed_by_id: uuid.UUID | None = None
    confirmed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_payment_method(self) -> PaymentMethod | None:
        """
        Forma de pagamento usada pelas transições.
        Registros antigos sem forma de pagamento mas com oferta vinculada
        são tratados como parcelamento.
        """
        if self.payment_method:
            return self.payment_method
        if self.payment_offer_id:
            return INSTALLMENT
        return None

    @property
    def needs_payment_method_backfill(self) -> bool:
        return self.payment_method is None and self.payment_offer_id is not None

    def audit_payload(self) -> dict[str, Any]:
        data = self.to_dict()
        data.pop("created_at", None)
        data.pop("updated_at", None)
        return data
