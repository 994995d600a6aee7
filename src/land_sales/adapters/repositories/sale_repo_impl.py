from __future__ import annotations

from datetime import date
from typing import Any

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from land_sales.core.application.cqrs import PagedResult
from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.domain.entities.sale_entity import SaleEntity
from land_sales.core.domain.repositories.sale_repository import SaleRepository
from plugins.django_interface.models import Sale as SaleModel

_ROW_FIELDS = (
    "id", "client_id", "land_piece_id", "batch_id", "payment_offer_id",
    "sale_price", "deposit_amount", "partial_payment_amount", "remaining_payment_amount",
    "company_fee_amount", "payment_method", "status", "sale_date", "deadline_date",
    "installment_start_date", "notes", "contract_writer", "confirmed_at", "updated_at",
    "offer_snapshot",
)

# colunas do snapshot conferidas na escrita condicional
_GUARDED_FIELDS = (
    "status", "payment_method", "payment_offer_id", "sale_price", "deposit_amount",
    "partial_payment_amount", "remaining_payment_amount", "updated_at",
)


def _row_payload(obj: SaleModel) -> dict[str, Any]:
    payload = {name: getattr(obj, name) for name in _ROW_FIELDS}
    payload["client"] = {
        "id": obj.client.id,
        "name": obj.client.name,
        "id_number": obj.client.id_number,
        "phone": obj.client.phone,
    }
    payload["piece"] = {
        "id": obj.land_piece.id,
        "piece_number": obj.land_piece.piece_number,
        "surface_m2": obj.land_piece.surface_m2,
        "status": obj.land_piece.status,
    }
    payload["batch"] = {"id": obj.batch.id, "name": obj.batch.name}
    offer = obj.payment_offer
    payload["payment_offer"] = None if offer is None else {
        "id": offer.id,
        "name": offer.name,
        "price_per_m2_installment": offer.price_per_m2_installment,
        "advance_mode": offer.advance_mode,
        "advance_value": offer.advance_value,
        "calc_mode": offer.calc_mode,
        "monthly_amount": offer.monthly_amount,
        "months": offer.months,
        "company_fee_percentage": offer.company_fee_percentage,
    }
    return payload


class SaleRepoImpl(SaleRepository):
    """Implementação Django do SaleRepository."""

    # ────────────────────────────────── #
    # Entidade
    # ────────────────────────────────── #
    def find_by_id(self, sale_id: str) -> SaleEntity | None:
        try:
            return SaleEntity.from_model(SaleModel.objects.get(id=sale_id))
        except SaleModel.DoesNotExist:
            return None

    def has_active_sale(self, parcel_id: str) -> bool:
        return (
            SaleModel.objects.filter(land_piece_id=parcel_id)
            .exclude(status=SaleModel.Status.CANCELLED)
            .exists()
        )

    # ────────────────────────────────── #
    # Escrita
    # ────────────────────────────────── #
    @transaction.atomic
    def create(self, **fields: Any) -> SaleEntity:
        obj = SaleModel.objects.create(**fields)
        return SaleEntity.from_model(obj)

    def compare_and_set(self, sale_id: str, *, expected: SaleEntity, changes: dict[str, Any]) -> int:
        qs = SaleModel.objects.filter(id=sale_id)
        for name in _GUARDED_FIELDS:
            value = getattr(expected, name)
            qs = qs.filter(**{f"{name}__isnull": True}) if value is None else qs.filter(**{name: value})
        return qs.update(**changes, updated_at=timezone.now())

    def delete(self, sale_id: str, *, expected_status: str) -> int:
        deleted, per_model = SaleModel.objects.filter(id=sale_id, status=expected_status).delete()
        return per_model.get(SaleModel._meta.label, 0)

    # ────────────────────────────────── #
    # Consultas
    # ────────────────────────────────── #
    def _base_queryset(self) -> QuerySet[SaleModel]:
        return SaleModel.objects.select_related("client", "land_piece", "batch", "payment_offer")

    def _apply_filters(self, qs: QuerySet[SaleModel], filtros: dict[str, Any] | None) -> QuerySet[SaleModel]:
        filtros = dict(filtros or {})
        if status := filtros.get("status"):
            qs = qs.filter(status=status)
        if batch_id := filtros.get("batch_id"):
            qs = qs.filter(batch_id=batch_id)
        if client_id := filtros.get("client_id"):
            qs = qs.filter(client_id=client_id)
        if "payment_method" in filtros:
            method = filtros["payment_method"]
            if method == "installment":
                # registros antigos sem forma de pagamento mas com oferta contam como parcelamento
                qs = qs.filter(
                    Q(payment_method="installment")
                    | Q(payment_method__isnull=True, payment_offer__isnull=False)
                )
            elif method:
                qs = qs.filter(payment_method=method)
            else:
                qs = qs.filter(payment_method__isnull=True, payment_offer__isnull=True)
        return qs.order_by("-sale_date", "-updated_at")

    def find_row(self, sale_id: str) -> SaleRowDTO | None:
        obj = self._base_queryset().filter(id=sale_id).first()
        return SaleRowDTO.model_validate(_row_payload(obj)) if obj else None

    def list_rows(self, filtros: dict[str, Any] | None, page: int, page_size: int) -> PagedResult[SaleRowDTO]:
        qs = self._apply_filters(self._base_queryset(), filtros)
        total = qs.count()
        offset = (page - 1) * page_size
        items = [SaleRowDTO.model_validate(_row_payload(obj)) for obj in qs[offset : offset + page_size]]
        return PagedResult(items=items, total=total, page=page, page_size=page_size)

    def load_rows(self, filtros: dict[str, Any] | None, limit: int) -> list[SaleRowDTO]:
        qs = self._apply_filters(self._base_queryset(), filtros)
        return [SaleRowDTO.model_validate(_row_payload(obj)) for obj in qs[:limit]]

    def list_past_deadline(self, today: date) -> list[SaleRowDTO]:
        qs = self._base_queryset().filter(
            status=SaleModel.Status.PENDING,
            deadline_date__isnull=False,
            deadline_date__lt=today,
        ).order_by("deadline_date")
        return [SaleRowDTO.model_validate(_row_payload(obj)) for obj in qs]
