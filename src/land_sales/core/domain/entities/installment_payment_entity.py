import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from land_sales.core.domain.entities._base import EntityMixin

InstallmentStatus = Literal["pending", "paid"]


@dataclass(slots=True)
class InstallmentPaymentEntity(EntityMixin):
    id: uuid.UUID
    sale_id: uuid.UUID
    installment_number: int
    amount_due: Decimal
    due_date: date
    amount_paid: Decimal = Decimal("0")
    paid_date: date | None = None
    status: InstallmentStatus = "pending"

    @property
    def outstanding(self) -> Decimal:
        return max(Decimal("0"), self.amount_due - self.amount_paid)

    def display_status(self, today: date) -> str:
        """`overdue` é derivado: parcela pendente com vencimento já passado."""
        if self.status == "pending" and self.due_date < today:
            return "overdue"
        return self.status
