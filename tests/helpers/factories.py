"""Construtores mínimos de registros para os testes de integração."""
from __future__ import annotations

import itertools
from datetime import date
from decimal import Decimal

from plugins.django_interface.models import (
    Client,
    LandBatch,
    LandPiece,
    PaymentOffer,
    Sale,
    User,
)

_seq = itertools.count(1)


def make_user(role: str = User.Role.WORKER, **kw) -> User:
    n = next(_seq)
    return User.objects.create(
        email=kw.pop("email", f"user{n}@example.com"),
        name=kw.pop("name", f"Usuário {n}"),
        role=role,
        **kw,
    )


def make_owner(**kw) -> User:
    return make_user(role=User.Role.OWNER, **kw)


def make_client(name: str | None = None, **kw) -> Client:
    n = next(_seq)
    return Client.objects.create(name=name or f"Cliente {n}", id_number=kw.pop("id_number", f"ID{n:05d}"), **kw)


def make_batch(name: str | None = None, cash_price: str = "150") -> LandBatch:
    n = next(_seq)
    return LandBatch.objects.create(name=name or f"Loteamento {n}", price_per_m2_cash=Decimal(cash_price))


def make_piece(batch: LandBatch | None = None, surface: str = "500", status: str = LandPiece.Status.AVAILABLE) -> LandPiece:
    batch = batch or make_batch()
    return LandPiece.objects.create(
        batch=batch,
        piece_number=str(next(_seq)),
        surface_m2=Decimal(surface),
        status=status,
    )


def make_offer(batch: LandBatch, **kw) -> PaymentOffer:
    values = {
        "name": "24x",
        "price_per_m2_installment": Decimal("200"),
        "advance_mode": PaymentOffer.AdvanceMode.PERCENT,
        "advance_value": Decimal("10"),
        "calc_mode": PaymentOffer.CalcMode.MONTHS,
        "months": 24,
        "is_default": True,
    }
    values.update(kw)
    return PaymentOffer.objects.create(batch=batch, **values)


def make_sale(
    client: Client | None = None,
    piece: LandPiece | None = None,
    *,
    sale_price: str = "100000",
    status: str = Sale.Status.PENDING,
    sale_date: date | None = None,
    **kw,
) -> Sale:
    """Venda gravada direto no ORM; sem `piece`, cria um lote já reservado."""
    piece = piece or make_piece(status=LandPiece.Status.RESERVED)
    client = client or make_client()
    return Sale.objects.create(
        client=client,
        land_piece=piece,
        batch=piece.batch,
        sale_price=Decimal(sale_price),
        status=status,
        sale_date=sale_date or date(2025, 1, 1),
        **kw,
    )
