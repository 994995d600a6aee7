"""
Projeção das vendas em cliente → plano de pagamento → lotes.

Tudo aqui é puro: recebe linhas já normalizadas (`SaleRowDTO`) e um
instante de referência explícito, e devolve estruturas imutáveis. Rodar
duas vezes sobre as mesmas linhas produz o mesmo agrupamento e os mesmos
totais.
"""
from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.application.services.payment_plan_calculator import ZERO, money

PROMISE = "promise"
INSTALLMENT = "installment"


# ───────────────────────────────────────────────
# Campos derivados por linha
# ───────────────────────────────────────────────
def compute_received(row: SaleRowDTO) -> Decimal:
    if row.effective_payment_method == PROMISE:
        value = row.partial_payment_amount
        if value is None:
            value = row.deposit_amount
        return money(value or 0)
    return money(row.deposit_amount or 0)


def compute_remaining(row: SaleRowDTO) -> Decimal:
    if row.effective_payment_method == PROMISE:
        if row.remaining_payment_amount is not None:
            return money(row.remaining_payment_amount)
        return money(row.sale_price - compute_received(row))
    return money(row.sale_price - (row.deposit_amount or 0))


def _as_datetime(moment: datetime | date) -> datetime:
    if isinstance(moment, datetime):
        return moment
    return datetime.combine(moment, time.min)


def overdue_info(row: SaleRowDTO, now: datetime | date) -> tuple[bool, int]:
    """(atrasada?, dias completos desde o prazo). Prazo vale a partir de 00:00 do dia."""
    if row.deadline_date is None:
        return False, 0
    current = _as_datetime(now)
    deadline = datetime.combine(row.deadline_date, time.min, tzinfo=current.tzinfo)
    if current <= deadline:
        return False, 0
    return True, (current - deadline) // timedelta(days=1)


def collation_key(name: str | None) -> str:
    """Ordenação alfabética insensível a acentos e caixa."""
    norm = unicodedata.normalize("NFKD", name or "")
    return "".join(ch for ch in norm if not unicodedata.combining(ch)).casefold().strip()


def group_key(row: SaleRowDTO) -> str:
    method = row.effective_payment_method or "none"
    if method == INSTALLMENT and row.payment_offer_id:
        return f"{row.client_id}-{method}-{row.payment_offer_id}"
    return f"{row.client_id}-{method}"


# ───────────────────────────────────────────────
# Estruturas
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class SaleLine:
    row: SaleRowDTO
    received: Decimal
    remaining: Decimal
    overdue: bool
    overdue_days: int


@dataclass(frozen=True)
class PlanGroup:
    key: str
    payment_method: str | None
    payment_offer_id: str | None
    lines: tuple[SaleLine, ...]
    total_price: Decimal
    total_received: Decimal
    total_remaining: Decimal

    @property
    def piece_count(self) -> int:
        return len(self.lines)

    @property
    def has_overdue(self) -> bool:
        return any(line.overdue for line in self.lines)


@dataclass(frozen=True)
class ClientGroup:
    client_id: str
    client_name: str
    plans: tuple[PlanGroup, ...]
    total_price: Decimal
    total_received: Decimal
    total_remaining: Decimal

    @property
    def sale_count(self) -> int:
        return sum(plan.piece_count for plan in self.plans)


def build_line(row: SaleRowDTO, now: datetime | date) -> SaleLine:
    overdue, days = overdue_info(row, now)
    return SaleLine(
        row=row,
        received=compute_received(row),
        remaining=compute_remaining(row),
        overdue=overdue,
        overdue_days=days,
    )


def _sum(values: Iterable[Decimal]) -> Decimal:
    return money(sum(values, ZERO))


def _line_order(line: SaleLine) -> tuple:
    # sale_date desc; id como desempate estável
    return (-line.row.sale_date.toordinal(), str(line.row.id))


def _build_plan(key: str, lines: list[SaleLine]) -> PlanGroup:
    ordered = tuple(sorted(lines, key=_line_order))
    head = ordered[0].row
    method = head.effective_payment_method
    return PlanGroup(
        key=key,
        payment_method=method,
        payment_offer_id=str(head.payment_offer_id) if method == INSTALLMENT and head.payment_offer_id else None,
        lines=ordered,
        total_price=_sum(line.row.sale_price for line in ordered),
        total_received=_sum(line.received for line in ordered),
        total_remaining=_sum(line.remaining for line in ordered),
    )


def group_sales(rows: Sequence[SaleRowDTO], now: datetime | date) -> tuple[ClientGroup, ...]:
    """
    1. particiona por cliente;
    2. subparticiona por (forma de pagamento, oferta) quando parcelado, senão só pela forma;
    3. ordena cada subpartição por sale_date desc;
    4. ordena clientes pelo nome (colação sem acento / caixa).
    """
    by_client: dict[str, dict[str, list[SaleLine]]] = {}
    names: dict[str, str] = {}
    for row in rows:
        client_id = str(row.client_id)
        names.setdefault(client_id, row.client_name)
        by_client.setdefault(client_id, {}).setdefault(group_key(row), []).append(build_line(row, now))

    clients: list[ClientGroup] = []
    for client_id, plans_by_key in by_client.items():
        plans = [_build_plan(key, lines) for key, lines in plans_by_key.items()]
        plans.sort(key=lambda p: (_line_order(p.lines[0]), p.key))
        clients.append(
            ClientGroup(
                client_id=client_id,
                client_name=names[client_id],
                plans=tuple(plans),
                total_price=_sum(p.total_price for p in plans),
                total_received=_sum(p.total_received for p in plans),
                total_remaining=_sum(p.total_remaining for p in plans),
            )
        )
    clients.sort(key=lambda c: (collation_key(c.client_name), c.client_name, c.client_id))
    return tuple(clients)


# ───────────────────────────────────────────────
# Busca
# ───────────────────────────────────────────────
def matches_search(row: SaleRowDTO, term: str | None) -> bool:
    """Nome, documento ou telefone do cliente, número do lote ou nome do loteamento."""
    needle = collation_key(term)
    if not needle:
        return True
    haystack = []
    if row.client:
        haystack += [row.client.name, row.client.id_number, row.client.phone]
    if row.piece:
        haystack.append(row.piece.piece_number)
    if row.batch:
        haystack.append(row.batch.name)
    return any(needle in collation_key(value) for value in haystack if value)


def search_rows(rows: Sequence[SaleRowDTO], term: str | None) -> list[SaleRowDTO]:
    return [row for row in rows if matches_search(row, term)]
