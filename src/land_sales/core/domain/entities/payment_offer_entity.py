from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from land_sales.core.domain.entities._base import EntityMixin

AdvanceMode = Literal["fixed", "percent"]
CalcMode = Literal["monthly_amount", "months"]

_DECIMAL_FIELDS = ("price_per_m2_installment", "company_fee_percentage", "advance_value", "monthly_amount")


@dataclass(slots=True)
class PaymentOfferEntity(EntityMixin):
    """
    Modelo de plano de parcelamento. Uma cópia congelada (`snapshot`) é
    gravada na venda no momento da confirmação; cálculos posteriores da
    venda usam a cópia, nunca a oferta viva.
    """
    id: uuid.UUID
    price_per_m2_installment: Decimal
    advance_mode: AdvanceMode = "percent"
    advance_value: Decimal = Decimal("0")
    calc_mode: CalcMode = "months"
    monthly_amount: Decimal | None = None
    months: int | None = None
    name: str | None = None
    batch_id: uuid.UUID | None = None
    land_piece_id: uuid.UUID | None = None
    company_fee_percentage: Decimal | None = None
    is_default: bool = False

    # serialização ----------------------------------------------------------
    def snapshot(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": str(self.id),
            "name": self.name,
            "advance_mode": self.advance_mode,
            "calc_mode": self.calc_mode,
            "months": self.months,
            "batch_id": str(self.batch_id) if self.batch_id else None,
            "land_piece_id": str(self.land_piece_id) if self.land_piece_id else None,
            "is_default": self.is_default,
        }
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            data[name] = str(value) if value is not None else None
        return data

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> PaymentOfferEntity:
        values = dict(data)
        values["id"] = uuid.UUID(str(values["id"]))
        for key in ("batch_id", "land_piece_id"):
            if values.get(key):
                values[key] = uuid.UUID(str(values[key]))
        for name in _DECIMAL_FIELDS:
            if values.get(name) is not None:
                values[name] = Decimal(str(values[name]))
        if values.get("advance_value") is None:
            values["advance_value"] = Decimal("0")
        return cls.from_dict(values)
