from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.core.management.base import BaseCommand
from django.db import transaction

from plugins.django_interface.models import LandBatch, LandPiece, PaymentOffer, User


class Command(BaseCommand):
    """
    Popula um loteamento de demonstração com lotes e uma oferta padrão.
    Idempotente: reexecutar não duplica registros.
    """
    help = "Cria proprietário, loteamento, lotes e oferta padrão para desenvolvimento."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--owner-email", type=str, default="owner@example.com")
        parser.add_argument("--batch", type=str, default="Loteamento Demo")
        parser.add_argument("--pieces", type=int, default=10)
        parser.add_argument("--surface", type=Decimal, default=Decimal("500"))
        parser.add_argument("--cash-price", type=Decimal, default=Decimal("150"))
        parser.add_argument("--installment-price", type=Decimal, default=Decimal("200"))

    @transaction.atomic
    def handle(self, *args: Any, **opt: Any) -> None:
        self.stdout.write(self.style.NOTICE("--- Iniciando seed de vendas de lotes ---"))

        owner, _ = User.objects.get_or_create(
            email=opt["owner_email"],
            defaults={"name": "Proprietário", "role": User.Role.OWNER},
        )
        batch, _ = LandBatch.objects.get_or_create(
            name=opt["batch"],
            defaults={"price_per_m2_cash": opt["cash_price"]},
        )

        created = 0
        for number in range(1, opt["pieces"] + 1):
            _, was_created = LandPiece.objects.get_or_create(
                batch=batch,
                piece_number=str(number),
                defaults={"surface_m2": opt["surface"]},
            )
            created += was_created

        PaymentOffer.objects.get_or_create(
            batch=batch,
            is_default=True,
            defaults={
                "name": "24x com 10% de entrada",
                "price_per_m2_installment": opt["installment_price"],
                "advance_mode": PaymentOffer.AdvanceMode.PERCENT,
                "advance_value": Decimal("10"),
                "calc_mode": PaymentOffer.CalcMode.MONTHS,
                "months": 24,
            },
        )
        self.stdout.write(self.style.SUCCESS(
            f"✅ Loteamento '{batch.name}': {created} lote(s) novo(s); proprietário {owner.email}"
        ))
