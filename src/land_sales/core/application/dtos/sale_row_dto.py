"""
Formato único de uma linha de venda com seus relacionamentos.

A camada de consulta pode entregar relacionamentos ora como objeto, ora
como lista com um único elemento; aqui tudo é normalizado para objeto
(ou None) antes de chegar ao agrupamento e às transições.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


def _collapse_relation(value: Any) -> Any:
    if isinstance(value, list | tuple):
        return value[0] if value else None
    return value


class ClientRef(BaseModel):
    id: uuid.UUID
    name: str
    id_number: str | None = None
    phone: str | None = None


class PieceRef(BaseModel):
    id: uuid.UUID
    piece_number: str
    surface_m2: Decimal
    status: str


class BatchRef(BaseModel):
    id: uuid.UUID
    name: str


class OfferRef(BaseModel):
    id: uuid.UUID
    name: str | None = None
    price_per_m2_installment: Decimal
    advance_mode: Literal["fixed", "percent"] = "percent"
    advance_value: Decimal = Decimal("0")
    calc_mode: Literal["monthly_amount", "months"] = "months"
    monthly_amount: Decimal | None = None
    months: int | None = None
    company_fee_percentage: Decimal | None = None


class SaleRowDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    client_id: uuid.UUID
    land_piece_id: uuid.UUID
    batch_id: uuid.UUID
    payment_offer_id: uuid.UUID | None = None
    sale_price: Decimal
    deposit_amount: Decimal | None = None
    partial_payment_amount: Decimal | None = None
    remaining_payment_amount: Decimal | None = None
    company_fee_amount: Decimal | None = None
    payment_method: Literal["full", "installment", "promise"] | None = None
    status: Literal["pending", "completed", "cancelled"]
    sale_date: date
    deadline_date: date | None = None
    installment_start_date: date | None = None
    notes: str | None = None
    contract_writer: str | None = None
    confirmed_at: datetime | None = None
    updated_at: datetime | None = None

    client: ClientRef | None = None
    piece: PieceRef | None = None
    batch: BatchRef | None = None
    payment_offer: OfferRef | None = None
    offer_snapshot: dict[str, Any] | None = None

    @field_validator("client", "piece", "batch", "payment_offer", mode="before")
    @classmethod
    def _single_relation(cls, value: Any) -> Any:
        return _collapse_relation(value)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _blank_method(cls, value: Any) -> Any:
        return value or None

    @property
    def effective_payment_method(self) -> str | None:
        if self.payment_method:
            return self.payment_method
        if self.payment_offer_id:
            return "installment"
        return None

    @property
    def client_name(self) -> str:
        return self.client.name if self.client else ""
