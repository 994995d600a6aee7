import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from land_sales.core.domain.entities._base import EntityMixin

ParcelStatus = Literal["Available", "Reserved", "Sold"]

AVAILABLE = "Available"
RESERVED = "Reserved"
SOLD = "Sold"


@dataclass(slots=True)
class ParcelEntity(EntityMixin):
    id: uuid.UUID
    batch_id: uuid.UUID
    piece_number: str
    surface_m2: Decimal
    status: ParcelStatus = AVAILABLE


@dataclass(slots=True)
class BatchEntity(EntityMixin):
    id: uuid.UUID
    name: str
    price_per_m2_cash: Decimal = Decimal("0")
