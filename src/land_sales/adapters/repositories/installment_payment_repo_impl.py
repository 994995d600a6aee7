from collections.abc import Sequence

from django.db import transaction
from django.utils import timezone

from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity
from land_sales.core.domain.repositories.installment_payment_repository import (
    InstallmentPaymentRepository,
)
from plugins.django_interface.models import InstallmentPayment as InstallmentPaymentModel


class InstallmentPaymentRepoImpl(InstallmentPaymentRepository):
    def list_by_sale(self, sale_id: str) -> list[InstallmentPaymentEntity]:
        qs = InstallmentPaymentModel.objects.filter(sale_id=sale_id).order_by("installment_number")
        return [InstallmentPaymentEntity.from_model(obj) for obj in qs]

    def bulk_create(self, rows: Sequence[InstallmentPaymentEntity]) -> int:
        objs = [
            InstallmentPaymentModel(
                id=row.id,
                sale_id=row.sale_id,
                installment_number=row.installment_number,
                amount_due=row.amount_due,
                amount_paid=row.amount_paid,
                due_date=row.due_date,
                paid_date=row.paid_date,
                status=row.status,
            )
            for row in rows
        ]
        return len(InstallmentPaymentModel.objects.bulk_create(objs))

    def delete_by_sale(self, sale_id: str) -> int:
        deleted, _ = InstallmentPaymentModel.objects.filter(sale_id=sale_id).delete()
        return deleted

    @transaction.atomic
    def save_payments(
        self, pairs: Sequence[tuple[InstallmentPaymentEntity, InstallmentPaymentEntity]]
    ) -> int:
        now = timezone.now()
        saved = 0
        for before, after in pairs:
            saved += InstallmentPaymentModel.objects.filter(
                id=before.id, amount_paid=before.amount_paid, status=before.status
            ).update(
                amount_paid=after.amount_paid,
                paid_date=after.paid_date,
                status=after.status,
                updated_at=now,
            )
        return saved
