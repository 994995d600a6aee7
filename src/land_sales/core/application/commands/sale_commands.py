from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from land_sales.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class ReserveParcelCommand(CommandDTO):
    """Cria a venda pendente e reserva o lote (Available → Reserved)."""
    client_id: str
    land_piece_id: str
    payment_method: str | None = None
    payment_offer_id: str | None = None
    sale_price: Decimal | None = None  # None → preço calculado pela área
    deposit_amount: Decimal | None = None
    sale_date: date | None = None
    deadline_date: date | None = None
    notes: str | None = None
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class UpdatePendingSaleCommand(CommandDTO):
    """Edita uma venda ainda pendente. Somente campos presentes em `changes` são alterados."""
    sale_id: str
    changes: dict = field(default_factory=dict)
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class ConfirmSaleCommand(CommandDTO):
    sale_id: str
    actor_id: str | None = None
    company_fee_amount: Decimal | None = None
    contract_writer: str | None = None
    notes: str | None = None
    installment_start_date: date | None = None  # obrigatório para parcelamento
    payment_amount: Decimal | None = None       # promessa: None → quita o saldo


@dataclass(frozen=True, slots=True)
class RecordPromisePaymentCommand(CommandDTO):
    """Pagamento parcial de promessa; a venda continua pendente."""
    sale_id: str
    amount: Decimal
    company_fee_amount: Decimal | None = None
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class RevertSaleCommand(CommandDTO):
    sale_id: str
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class CancelSaleCommand(CommandDTO):
    sale_id: str
    actor_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class BulkCancelSalesCommand(CommandDTO):
    """Cancela várias vendas (pendentes ou concluídas) em uma única transação."""
    sale_ids: tuple[str, ...]
    actor_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RemoveSaleCommand(CommandDTO):
    """Exclusão definitiva. Restrita a proprietários."""
    sale_id: str
    actor_id: str | None = None
