"""
Aritmética de pagamentos por forma de pagamento (à vista, parcelado,
promessa) e razão de parcelas.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from land_sales.core.application.services.payment_plan_calculator import ZERO, InstallmentPlan, money
from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity
from land_sales.core.domain.entities.parcel_entity import BatchEntity, ParcelEntity
from land_sales.core.domain.entities.payment_offer_entity import PaymentOfferEntity
from land_sales.core.domain.entities.sale_entity import INSTALLMENT, PROMISE, SaleEntity

# diferença abaixo de um centavo conta como quitado
SETTLEMENT_TOLERANCE = Decimal("0.01")


def promise_outstanding(sale: SaleEntity) -> Decimal:
    """Saldo da promessa: remaining_payment_amount, senão preço − sinal − parciais."""
    if sale.remaining_payment_amount is not None:
        return money(sale.remaining_payment_amount)
    return money(
        Decimal(sale.sale_price)
        - Decimal(sale.deposit_amount or 0)
        - Decimal(sale.partial_payment_amount or 0)
    )


def confirmation_amount(sale: SaleEntity, plan: InstallmentPlan | None = None) -> Decimal:
    """Valor a receber no ato da confirmação."""
    method = sale.effective_payment_method
    if method == INSTALLMENT and plan is not None:
        return plan.advance_after_deposit
    if method == PROMISE:
        return promise_outstanding(sale)
    return max(ZERO, money(Decimal(sale.sale_price) - Decimal(sale.deposit_amount or 0)))


def default_sale_price(
    method: str | None,
    parcel: ParcelEntity,
    batch: BatchEntity | None,
    offer: PaymentOfferEntity | None,
) -> Decimal:
    surface = Decimal(parcel.surface_m2)
    if method == INSTALLMENT and offer is not None:
        return money(surface * Decimal(offer.price_per_m2_installment))
    if batch is not None:
        return money(surface * Decimal(batch.price_per_m2_cash))
    return ZERO


# ───────────────────────────────────────────────
# Razão de parcelas
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class InstallmentApplication:
    updated: tuple[InstallmentPaymentEntity, ...]
    applied: Decimal
    unapplied: Decimal


def apply_installment_payment(
    installments: list[InstallmentPaymentEntity],
    start_number: int,
    amount: Decimal,
    paid_date: date,
) -> InstallmentApplication:
    """
    Distribui `amount` a partir da parcela `start_number`, em ordem, quitando
    cada saldo antes de passar à próxima. O que sobrar após a última parcela
    volta como `unapplied`.
    """
    left = money(amount)
    updated: list[InstallmentPaymentEntity] = []
    for row in sorted(installments, key=lambda r: r.installment_number):
        if row.installment_number < start_number or left <= 0:
            continue
        outstanding = row.outstanding
        if outstanding <= 0:
            continue
        paid_now = min(left, outstanding)
        left -= paid_now
        new_paid = money(row.amount_paid + paid_now)
        fully_paid = new_paid >= row.amount_due
        updated.append(
            replace(
                row,
                amount_paid=new_paid,
                status="paid" if fully_paid else row.status,
                paid_date=paid_date if fully_paid else row.paid_date,
            )
        )
    return InstallmentApplication(tuple(updated), money(amount) - left, left)


@dataclass(frozen=True)
class InstallmentStats:
    total_count: int
    paid_count: int
    overdue_count: int
    overdue_amount: Decimal
    next_due_date: date | None
    next_due_amount: Decimal | None
    total_paid: Decimal
    remaining: Decimal


def installment_stats(
    sale: SaleEntity,
    installments: list[InstallmentPaymentEntity],
    advance_after_deposit: Decimal,
    today: date,
) -> InstallmentStats:
    paid_installments = sum((row.amount_paid for row in installments), ZERO)
    total_paid = money(Decimal(sale.deposit_amount or 0) + advance_after_deposit + paid_installments)
    overdue = [row for row in installments if row.display_status(today) == "overdue"]
    upcoming = sorted(
        (row for row in installments if row.status == "pending"),
        key=lambda r: r.due_date,
    )
    nxt = upcoming[0] if upcoming else None
    return InstallmentStats(
        total_count=len(installments),
        paid_count=sum(1 for row in installments if row.status == "paid"),
        overdue_count=len(overdue),
        overdue_amount=money(sum((row.outstanding for row in overdue), ZERO)),
        next_due_date=nxt.due_date if nxt else None,
        next_due_amount=nxt.outstanding if nxt else None,
        total_paid=total_paid,
        remaining=max(ZERO, money(Decimal(sale.sale_price) - total_paid)),
    )
