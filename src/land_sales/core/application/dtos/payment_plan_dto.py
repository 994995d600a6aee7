from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from land_sales.core.application.services.payment_plan_calculator import InstallmentPlan


@dataclass(frozen=True)
class SalePaymentPlanDTO:
    """Plano recalculado de uma venda e o valor devido no ato da confirmação."""
    sale_id: str
    payment_method: str | None
    amount_due_at_confirmation: Decimal
    plan: InstallmentPlan | None = None
