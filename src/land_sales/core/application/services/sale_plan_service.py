from __future__ import annotations

from datetime import date

from land_sales.core.application.services.payment_plan_calculator import (
    InstallmentPlan,
    compute_installment_plan,
)
from land_sales.core.domain.entities.payment_offer_entity import PaymentOfferEntity
from land_sales.core.domain.entities.sale_entity import SaleEntity
from land_sales.core.domain.events.exceptions import ParcelNotFoundError
from land_sales.core.domain.repositories.parcel_repository import ParcelRepository
from land_sales.core.domain.repositories.payment_offer_repository import PaymentOfferRepository


class SalePlanService:
    """
    Resolve a oferta efetiva de uma venda e recalcula seu plano.
    Venda confirmada usa a cópia congelada da oferta; a oferta viva só é
    lida enquanto a venda não tem snapshot.
    """

    def __init__(self, parcel_repo: ParcelRepository, offer_repo: PaymentOfferRepository) -> None:
        self.parcels = parcel_repo
        self.offers = offer_repo

    def offer_for(self, sale: SaleEntity) -> PaymentOfferEntity | None:
        if sale.offer_snapshot:
            return PaymentOfferEntity.from_snapshot(sale.offer_snapshot)
        if sale.payment_offer_id:
            return self.offers.find_by_id(str(sale.payment_offer_id))
        return None

    def plan_for(
        self,
        sale: SaleEntity,
        start_date: date | None = None,
        offer: PaymentOfferEntity | None = None,
    ) -> InstallmentPlan | None:
        offer = offer or self.offer_for(sale)
        if offer is None:
            return None
        parcel = self.parcels.find_by_id(str(sale.land_piece_id))
        if parcel is None:
            raise ParcelNotFoundError(f"lote {sale.land_piece_id} não encontrado")
        return compute_installment_plan(
            parcel.surface_m2,
            offer,
            sale.deposit_amount,
            start_date if start_date is not None else sale.installment_start_date,
        )
