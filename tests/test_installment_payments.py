import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.test import SimpleTestCase, TestCase

from land_sales.adapters.config import composition_root
from land_sales.adapters.repositories.installment_payment_repo_impl import InstallmentPaymentRepoImpl
from land_sales.core.application.services.sale_payments import apply_installment_payment
from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity
from land_sales.core.domain.events.exceptions import (
    InvalidTransitionError,
    SaleConflictError,
    SaleValidationError,
)
from plugins.django_interface.models import AuditLog, InstallmentPayment, LandPiece, Sale
from tests.helpers.factories import make_batch, make_client, make_offer, make_piece, make_sale, make_user


def ledger(*amounts: str) -> list[InstallmentPaymentEntity]:
    sale_id = uuid.uuid4()
    return [
        InstallmentPaymentEntity(
            id=uuid.uuid4(),
            sale_id=sale_id,
            installment_number=i,
            amount_due=Decimal(amount),
            due_date=date(2025, i, 1),
        )
        for i, amount in enumerate(amounts, start=1)
    ]


class ApplyInstallmentPaymentTests(SimpleTestCase):
    def test_excess_spills_into_next_installments(self):
        rows = ledger("100", "100", "100")

        result = apply_installment_payment(rows, 1, Decimal("250"), date(2025, 1, 5))

        self.assertEqual(
            [r.amount_paid for r in result.updated],
            [Decimal("100.00"), Decimal("100.00"), Decimal("50.00")],
        )
        self.assertEqual([r.status for r in result.updated], ["paid", "paid", "pending"])
        self.assertEqual(result.updated[0].paid_date, date(2025, 1, 5))
        self.assertIsNone(result.updated[2].paid_date)
        self.assertEqual(result.applied, Decimal("250.00"))
        self.assertEqual(result.unapplied, Decimal("0.00"))

    def test_starts_at_given_installment_and_skips_paid(self):
        rows = ledger("100", "100", "100")
        rows[1].amount_paid = Decimal("100")
        rows[1].status = "paid"

        result = apply_installment_payment(rows, 2, Decimal("60"), date(2025, 3, 2))

        self.assertEqual([r.installment_number for r in result.updated], [3])
        self.assertEqual(rows[0].amount_paid, Decimal("0"))

    def test_overpayment_is_returned_as_unapplied(self):
        result = apply_installment_payment(ledger("100"), 1, Decimal("130"), date(2025, 1, 1))
        self.assertEqual(result.applied, Decimal("100.00"))
        self.assertEqual(result.unapplied, Decimal("30.00"))


class InstallmentLedgerTests(TestCase):
    def setUp(self):
        self.service = composition_root.container.land_sales_service()
        self.worker = make_user()
        batch = make_batch()
        self.offer = make_offer(batch)
        self.sale = make_sale(
            make_client(), make_piece(batch, status=LandPiece.Status.RESERVED),
            payment_method="installment", payment_offer=self.offer,
        )
        self.service.confirm(self.sale.id, installment_start_date=date(2025, 2, 1))

    def test_payment_spills_over_and_is_audited(self):
        result = self.service.record_installment_payment(
            self.sale.id, 1, Decimal("5000"), paid_date=date(2025, 2, 3), actor_id=self.worker.id
        )

        self.assertEqual(result.applied, Decimal("5000.00"))
        first, second = InstallmentPayment.objects.filter(sale=self.sale, installment_number__in=[1, 2]).order_by(
            "installment_number"
        )
        self.assertEqual((first.status, first.amount_paid), ("paid", Decimal("3750.00")))
        self.assertEqual((second.status, second.amount_paid), ("pending", Decimal("1250.00")))

        entry = AuditLog.objects.get(entity_type="installment", entity_id=str(self.sale.id))
        self.assertEqual(entry.changes["amount_paid"]["new"], {"1": "3750.00", "2": "1250.00"})
        self.assertEqual(entry.user_id, self.worker.id)

    def test_stats_after_partial_payment(self):
        self.service.record_installment_payment(self.sale.id, 1, Decimal("5000"), paid_date=date(2025, 2, 3))

        stats = self.service.installment_stats(self.sale.id, today=date(2025, 4, 15))

        self.assertEqual(stats.total_count, 24)
        self.assertEqual(stats.paid_count, 1)
        self.assertEqual(stats.overdue_count, 2)
        self.assertEqual(stats.overdue_amount, Decimal("6250.00"))
        self.assertEqual(stats.next_due_date, date(2025, 3, 1))
        self.assertEqual(stats.next_due_amount, Decimal("2500.00"))
        self.assertEqual(stats.total_paid, Decimal("15000.00"))
        self.assertEqual(stats.remaining, Decimal("85000.00"))

    def test_last_installment_overpayment_is_unapplied(self):
        result = self.service.record_installment_payment(self.sale.id, 24, Decimal("5000"))
        self.assertEqual(result.applied, Decimal("3750.00"))
        self.assertEqual(result.unapplied, Decimal("1250.00"))

    def test_rejects_unknown_installment_and_non_positive_amount(self):
        with self.assertRaises(SaleValidationError) as ctx:
            self.service.record_installment_payment(self.sale.id, 25, Decimal("10"))
        self.assertEqual(ctx.exception.field, "installment_number")

        with self.assertRaises(SaleValidationError) as ctx:
            self.service.record_installment_payment(self.sale.id, 1, Decimal("0"))
        self.assertEqual(ctx.exception.field, "amount")

    def test_pending_sale_has_no_ledger(self):
        self.service.revert(self.sale.id)
        with self.assertRaises(InvalidTransitionError):
            self.service.record_installment_payment(self.sale.id, 1, Decimal("100"))

    def test_installments_listed_in_order(self):
        rows = self.service.installments(self.sale.id)
        self.assertEqual([r.installment_number for r in rows], list(range(1, 25)))


def ledger_changed_after_read(change):
    """A leitura do razão é seguida por `change(sale_id)`, executado por outra sessão."""
    original = InstallmentPaymentRepoImpl.list_by_sale

    def read_then_concurrent_change(repo, sale_id):
        rows = original(repo, sale_id)
        change(sale_id)
        return rows

    return patch.object(
        InstallmentPaymentRepoImpl, "list_by_sale", autospec=True, side_effect=read_then_concurrent_change
    )


class ConcurrentLedgerTests(TestCase):
    def setUp(self):
        self.service = composition_root.container.land_sales_service()
        batch = make_batch()
        self.sale = make_sale(
            make_client(), make_piece(batch, status=LandPiece.Status.RESERVED),
            payment_method="installment", payment_offer=make_offer(batch),
        )
        self.service.confirm(self.sale.id, installment_start_date=date(2025, 2, 1))

    def assertNothingAudited(self):  # noqa: N802
        self.assertFalse(AuditLog.objects.filter(entity_type="installment").exists())

    def test_deleted_ledger_is_a_conflict(self):
        def delete_ledger(sale_id):
            InstallmentPayment.objects.filter(sale_id=sale_id).delete()

        with ledger_changed_after_read(delete_ledger):
            with self.assertRaises(SaleConflictError):
                self.service.record_installment_payment(self.sale.id, 1, Decimal("3750"))

        self.assertFalse(InstallmentPayment.objects.filter(sale=self.sale).exists())
        self.assertNothingAudited()

    def test_concurrent_payment_on_same_installment_is_kept(self):
        def pay_first(sale_id):
            InstallmentPayment.objects.filter(sale_id=sale_id, installment_number=1).update(
                amount_paid=Decimal("1000")
            )

        with ledger_changed_after_read(pay_first):
            with self.assertRaises(SaleConflictError):
                self.service.record_installment_payment(self.sale.id, 1, Decimal("5000"))

        paid = dict(
            InstallmentPayment.objects.filter(sale=self.sale, installment_number__in=[1, 2]).values_list(
                "installment_number", "amount_paid"
            )
        )
        self.assertEqual(paid, {1: Decimal("1000.00"), 2: Decimal("0.00")})
        self.assertNothingAudited()

    def test_sale_reverted_meanwhile_is_a_conflict(self):
        def revert(sale_id):
            Sale.objects.filter(id=sale_id).update(status="pending")

        with ledger_changed_after_read(revert):
            with self.assertRaises(SaleConflictError):
                self.service.record_installment_payment(self.sale.id, 1, Decimal("3750"))

        self.assertFalse(InstallmentPayment.objects.filter(sale=self.sale).exclude(amount_paid=0).exists())
