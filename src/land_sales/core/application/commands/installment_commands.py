from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from land_sales.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class RecordInstallmentPaymentCommand(CommandDTO):
    """
    Aplica `amount` a partir da parcela `installment_number`; o excedente
    transborda para as parcelas seguintes.
    """
    sale_id: str
    installment_number: int
    amount: Decimal
    paid_date: date | None = None
    actor_id: str | None = None
