"""
Cálculo do plano de parcelamento de um lote.

Função pura e determinística: o mesmo (área, oferta, sinal, início)
sempre gera o mesmo plano. Toda a aritmética é feita em Decimal e os
valores monetários são arredondados para centavos (ROUND_HALF_UP).
"""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from land_sales.core.domain.entities.payment_offer_entity import PaymentOfferEntity
from land_sales.core.domain.events.exceptions import InvalidPaymentPlanError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """Soma meses preservando o dia, limitado ao último dia do mês de destino."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_number: int
    amount_due: Decimal
    due_date: date


@dataclass(frozen=True)
class InstallmentPlan:
    base_price: Decimal
    advance_total: Decimal
    advance_after_deposit: Decimal
    remaining_for_installments: Decimal
    monthly_amount: Decimal
    months: int
    schedule: tuple[ScheduledInstallment, ...] = field(default_factory=tuple)
    invalid_field: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.invalid_field is None

    def ensure_valid(self) -> InstallmentPlan:
        if self.invalid_field is not None:
            raise InvalidPaymentPlanError(
                self.invalid_field,
                "configuração de oferta gera meses ou mensalidade menor ou igual a zero",
            )
        return self

    @property
    def scheduled_total(self) -> Decimal:
        return sum((row.amount_due for row in self.schedule), ZERO)


def compute_advance(base_price: Decimal, offer: PaymentOfferEntity) -> Decimal:
    if offer.advance_mode == "fixed":
        return money(offer.advance_value)
    return money(base_price * Decimal(offer.advance_value or 0) / Decimal(100))


def build_schedule(
    remaining: Decimal, monthly_amount: Decimal, months: int, start_date: date
) -> tuple[ScheduledInstallment, ...]:
    """
    Uma linha por mês a partir de `start_date`. A última parcela absorve a
    diferença de arredondamento, de modo que a soma é exatamente `remaining`.
    """
    if months <= 0 or monthly_amount <= 0:
        return ()
    rows: list[ScheduledInstallment] = []
    for i in range(months):
        if i == months - 1:
            amount = money(remaining - monthly_amount * (months - 1))
        else:
            amount = monthly_amount
        rows.append(ScheduledInstallment(i + 1, amount, add_months(start_date, i)))
    return tuple(rows)


def compute_installment_plan(
    surface_m2: Decimal | int | float | str,
    offer: PaymentOfferEntity,
    deposit_already_paid: Decimal | None = None,
    start_date: date | None = None,
) -> InstallmentPlan:
    surface = Decimal(str(surface_m2))
    base_price = money(surface * Decimal(offer.price_per_m2_installment))
    advance_total = compute_advance(base_price, offer)
    deposit = money(deposit_already_paid)

    advance_after_deposit = max(ZERO, advance_total - deposit)
    # sinal maior que a entrada também abate o saldo parcelado
    remaining = max(ZERO, base_price - max(advance_total, deposit))

    invalid_field: str | None = None
    if offer.calc_mode == "monthly_amount":
        monthly_amount = money(offer.monthly_amount)
        if monthly_amount <= 0:
            months = 0
            invalid_field = "monthly_amount"
        elif offer.months and offer.months > 0:
            # prazo fixado na oferta: a mensalidade encolhe se estourar o saldo
            months = int(offer.months)
            if monthly_amount * months > remaining + CENT:
                monthly_amount = money(remaining / months)
                if monthly_amount <= 0:
                    invalid_field = "monthly_amount"
        else:
            months = math.ceil(remaining / monthly_amount)
            if months <= 0:
                invalid_field = "months"
    else:
        months = int(offer.months or 0)
        if months <= 0:
            monthly_amount = ZERO
            invalid_field = "months"
        else:
            monthly_amount = money(remaining / months)
            if monthly_amount <= 0:
                invalid_field = "monthly_amount"

    schedule: tuple[ScheduledInstallment, ...] = ()
    if start_date is not None and invalid_field is None:
        schedule = build_schedule(remaining, monthly_amount, months, start_date)

    return InstallmentPlan(
        base_price=base_price,
        advance_total=advance_total,
        advance_after_deposit=advance_after_deposit,
        remaining_for_installments=remaining,
        monthly_amount=monthly_amount,
        months=months,
        schedule=schedule,
        invalid_field=invalid_field,
    )
