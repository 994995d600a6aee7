"""
Transições de venda de ponta a ponta: serviço → handlers → ORM → eventos.

Cada teste roda com o container real (SQLite de teste, change feed em
memória, notificações de proprietários gravadas em `notifications`).
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from land_sales.adapters.config import composition_root
from land_sales.adapters.repositories.installment_payment_repo_impl import InstallmentPaymentRepoImpl
from land_sales.adapters.repositories.sale_repo_impl import SaleRepoImpl
from land_sales.core.domain.events.exceptions import (
    InvalidPaymentPlanError,
    InvalidTransitionError,
    ParcelConflictError,
    PermissionDeniedError,
    SaleConflictError,
    SaleValidationError,
    TransitionStepError,
)
from plugins.django_interface.models import (
    AuditLog,
    InstallmentPayment,
    LandPiece,
    OwnerNotification,
    PaymentOffer,
    Sale,
)
from tests.helpers.factories import (
    make_batch,
    make_client,
    make_offer,
    make_owner,
    make_piece,
    make_sale,
    make_user,
)


def edited_after_snapshot(**fields):
    """
    Faz a primeira leitura da venda ser seguida pela escrita de outra sessão,
    antes que a transição grave.
    """
    original = SaleRepoImpl.find_by_id
    seen = []

    def read_then_concurrent_edit(repo, sale_id):
        entity = original(repo, sale_id)
        if not seen:
            seen.append(sale_id)
            Sale.objects.filter(id=sale_id).update(**fields)
        return entity

    return patch.object(SaleRepoImpl, "find_by_id", autospec=True, side_effect=read_then_concurrent_edit)


class SaleLifecycleTestCase(TestCase):
    def setUp(self):
        self.service = composition_root.container.land_sales_service()
        self.owner = make_owner(name="Dona Fatima")
        self.worker = make_user(name="Yacine")
        self.batch = make_batch("Les Oliviers")
        self.offer = make_offer(self.batch)
        self.client_obj = make_client("Amine Benali")

    def piece(self, status=LandPiece.Status.AVAILABLE) -> LandPiece:
        return make_piece(self.batch, status=status)

    def assertPieceStatus(self, piece: LandPiece, status: str) -> None:  # noqa: N802
        piece.refresh_from_db()
        self.assertEqual(piece.status, status)

    def audit_actions(self, sale_id) -> list[str]:
        qs = AuditLog.objects.filter(entity_type="sale", entity_id=str(sale_id)).order_by("id")
        return list(qs.values_list("action", flat=True))


class ReserveTests(SaleLifecycleTestCase):
    def test_reserve_full_sale_uses_cash_price(self):
        piece = self.piece()

        sale = self.service.reserve(
            self.client_obj.id, piece.id, payment_method="full",
            deposit_amount=Decimal("20000"), actor_id=self.worker.id,
        )

        self.assertEqual(sale.status, "pending")
        self.assertEqual(sale.sale_price, Decimal("75000.00"))
        self.assertEqual(sale.sold_by_id, self.worker.id)
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)
        self.assertEqual(self.audit_actions(sale.id), ["created"])
        note = OwnerNotification.objects.get(user=self.owner, type="sale_created")
        self.assertEqual(note.entity_id, str(sale.id))
        self.assertEqual(note.metadata["client_name"], "Amine Benali")
        self.assertEqual(note.metadata["batch_name"], "Les Oliviers")

    def test_reserve_installment_picks_default_offer(self):
        piece = self.piece()

        sale = self.service.reserve(self.client_obj.id, piece.id, payment_method="installment")

        self.assertEqual(sale.payment_offer_id, self.offer.id)
        self.assertEqual(sale.sale_price, Decimal("100000.00"))

    def test_reserve_with_offer_only_stores_installment_method(self):
        piece = self.piece()

        sale = self.service.reserve(self.client_obj.id, piece.id, payment_offer_id=self.offer.id)

        self.assertEqual(sale.payment_method, "installment")
        self.assertEqual(Sale.objects.get(id=sale.id).payment_method, "installment")

    def test_reserve_rejects_piece_already_reserved(self):
        piece = self.piece(LandPiece.Status.RESERVED)

        with self.assertRaises(ParcelConflictError):
            self.service.reserve(self.client_obj.id, piece.id, payment_method="full")
        self.assertFalse(Sale.objects.filter(land_piece=piece).exists())

    def test_reserve_rejects_invalid_offer_before_touching_piece(self):
        batch = make_batch()
        make_offer(batch, months=0)
        piece = make_piece(batch)

        with self.assertRaises(InvalidPaymentPlanError) as ctx:
            self.service.reserve(self.client_obj.id, piece.id, payment_method="installment")

        self.assertEqual(ctx.exception.field, "months")
        self.assertPieceStatus(piece, LandPiece.Status.AVAILABLE)

    def test_deposit_above_price_is_rejected(self):
        piece = self.piece()
        with self.assertRaises(SaleValidationError) as ctx:
            self.service.reserve(
                self.client_obj.id, piece.id, payment_method="full",
                sale_price=Decimal("1000"), deposit_amount=Decimal("1500"),
            )
        self.assertEqual(ctx.exception.field, "deposit_amount")


class ConfirmTests(SaleLifecycleTestCase):
    def test_confirm_full_marks_piece_sold(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="full", deposit_amount=Decimal("20000"))

        result = self.service.confirm(sale.id, actor_id=self.worker.id, contract_writer="Maître Haddad")

        self.assertEqual(result.status, "completed")
        self.assertEqual(result.confirmed_by_id, self.worker.id)
        self.assertIsNotNone(result.confirmed_at)
        self.assertEqual(result.contract_writer, "Maître Haddad")
        self.assertPieceStatus(piece, LandPiece.Status.SOLD)

        entry = AuditLog.objects.get(entity_type="sale", entity_id=str(sale.id), action="updated")
        self.assertEqual(entry.changes["status"], {"old": "pending", "new": "completed"})
        self.assertEqual(entry.user_email, self.worker.email)
        self.assertTrue(OwnerNotification.objects.filter(user=self.owner, type="sale_confirmed").exists())

    def test_confirm_installment_creates_schedule_and_freezes_offer(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="installment", payment_offer=self.offer)

        self.service.confirm(sale.id, installment_start_date=date(2025, 2, 1))

        sale.refresh_from_db()
        rows = list(InstallmentPayment.objects.filter(sale=sale).order_by("installment_number"))
        self.assertEqual(len(rows), 24)
        self.assertEqual(sum(r.amount_due for r in rows), Decimal("90000.00"))
        self.assertEqual(rows[0].due_date, date(2025, 2, 1))
        self.assertEqual(rows[-1].due_date, date(2027, 1, 1))
        self.assertEqual(sale.offer_snapshot["months"], 24)

        # oferta viva alterada depois da confirmação não muda o plano da venda
        PaymentOffer.objects.filter(id=self.offer.id).update(months=12)
        plan = self.service.payment_plan(sale.id).plan
        self.assertEqual(plan.months, 24)
        self.assertEqual(plan.monthly_amount, Decimal("3750.00"))

    def test_installment_requires_start_date(self):
        sale = make_sale(self.client_obj, payment_method="installment", payment_offer=self.offer)

        with self.assertRaises(SaleValidationError) as ctx:
            self.service.confirm(sale.id)

        self.assertEqual(ctx.exception.field, "installment_start_date")
        sale.refresh_from_db()
        self.assertEqual(sale.status, "pending")

    def test_legacy_sale_without_method_is_confirmed_as_installment(self):
        sale = make_sale(self.client_obj, payment_method=None, payment_offer=self.offer)

        result = self.service.confirm(sale.id, installment_start_date=date(2025, 3, 15))

        self.assertEqual(result.payment_method, "installment")
        self.assertEqual(InstallmentPayment.objects.filter(sale=sale).count(), 24)

    def test_double_confirm_is_a_conflict(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="full")
        self.service.confirm(sale.id)

        with self.assertRaises(SaleConflictError) as ctx:
            self.service.confirm(sale.id)

        self.assertIn("já confirmada", str(ctx.exception))
        self.assertPieceStatus(piece, LandPiece.Status.SOLD)

    def test_stale_snapshot_does_not_write(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="full")

        with edited_after_snapshot(payment_method="promise"):
            with self.assertRaises(SaleConflictError):
                self.service.confirm(sale.id)

        sale.refresh_from_db()
        self.assertEqual(sale.status, "pending")
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)

    def test_deposit_changed_after_snapshot_is_a_conflict(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(
            self.client_obj, piece, payment_method="installment", payment_offer=self.offer,
            deposit_amount=Decimal("5000"),
        )

        with edited_after_snapshot(deposit_amount=Decimal("20000")):
            with self.assertRaises(SaleConflictError):
                self.service.confirm(sale.id, installment_start_date=date(2025, 2, 1))

        sale.refresh_from_db()
        self.assertEqual(sale.status, "pending")
        self.assertEqual(sale.deposit_amount, Decimal("20000.00"))
        self.assertFalse(InstallmentPayment.objects.filter(sale=sale).exists())
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)

    def test_failed_step_rolls_back_whole_transition(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="installment", payment_offer=self.offer)

        with patch.object(InstallmentPaymentRepoImpl, "bulk_create", side_effect=DatabaseError("disco cheio")):
            with self.assertRaises(TransitionStepError) as ctx:
                self.service.confirm(sale.id, installment_start_date=date(2025, 2, 1))

        self.assertEqual(ctx.exception.step, "installment_rows")
        self.assertEqual(ctx.exception.transition, "confirm")
        sale.refresh_from_db()
        self.assertEqual(sale.status, "pending")
        self.assertIsNone(sale.offer_snapshot)
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)
        self.assertEqual(self.audit_actions(sale.id), [])


class PromiseTests(SaleLifecycleTestCase):
    def promise_sale(self, piece=None) -> Sale:
        return make_sale(
            self.client_obj,
            piece,
            sale_price="15000",
            payment_method="promise",
            partial_payment_amount=Decimal("5000"),
            remaining_payment_amount=Decimal("10000"),
        )

    def test_partial_payment_keeps_sale_pending(self):
        sale = self.promise_sale()

        result = self.service.settle_promise(sale.id, Decimal("4000"), company_fee_amount=Decimal("300"))

        self.assertEqual(result.status, "pending")
        self.assertEqual(result.partial_payment_amount, Decimal("9000.00"))
        self.assertEqual(result.remaining_payment_amount, Decimal("6000.00"))
        self.assertEqual(result.company_fee_amount, Decimal("300.00"))

    def test_concurrent_partial_payment_is_not_overwritten(self):
        sale = self.promise_sale()

        with edited_after_snapshot(
            partial_payment_amount=Decimal("7000"), remaining_payment_amount=Decimal("8000")
        ):
            with self.assertRaises(SaleConflictError):
                self.service.record_promise_payment(sale.id, Decimal("3000"))

        sale.refresh_from_db()
        self.assertEqual(sale.partial_payment_amount, Decimal("7000.00"))
        self.assertEqual(sale.remaining_payment_amount, Decimal("8000.00"))
        self.assertEqual(self.audit_actions(sale.id), [])

    def test_payment_above_balance_is_rejected(self):
        sale = self.promise_sale()
        with self.assertRaises(SaleValidationError):
            self.service.record_promise_payment(sale.id, Decimal("12000"))

    def test_settle_then_revert_clears_promise_amounts(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = self.promise_sale(piece)

        confirmed = self.service.settle_promise(sale.id, Decimal("10000"), actor_id=self.worker.id)
        self.assertEqual(confirmed.status, "completed")
        self.assertEqual(confirmed.partial_payment_amount, Decimal("15000.00"))
        self.assertEqual(confirmed.remaining_payment_amount, Decimal("0.00"))
        self.assertPieceStatus(piece, LandPiece.Status.SOLD)

        reverted = self.service.revert(sale.id, actor_id=self.worker.id)

        self.assertEqual(reverted.status, "pending")
        self.assertIsNone(reverted.partial_payment_amount)
        self.assertIsNone(reverted.remaining_payment_amount)
        self.assertIsNone(reverted.confirmed_by_id)
        self.assertIsNone(reverted.confirmed_at)
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)


class RevertTests(SaleLifecycleTestCase):
    def test_revert_installment_deletes_schedule(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="installment", payment_offer=self.offer)
        self.service.confirm(sale.id, installment_start_date=date(2025, 2, 1))

        result = self.service.revert(sale.id)

        self.assertEqual(result.status, "pending")
        self.assertIsNone(result.offer_snapshot)
        self.assertFalse(InstallmentPayment.objects.filter(sale=sale).exists())
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)

    def test_revert_pending_is_a_conflict(self):
        sale = make_sale(self.client_obj, payment_method="full")
        with self.assertRaises(SaleConflictError):
            self.service.revert(sale.id)


class CancelTests(SaleLifecycleTestCase):
    def test_cancel_frees_piece_and_appends_reason(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="full", notes="cliente indeciso")

        result = self.service.cancel(sale.id, actor_id=self.worker.id, reason="desistência")

        self.assertEqual(result.status, "cancelled")
        self.assertEqual(result.notes, "cliente indeciso\ndesistência")
        self.assertPieceStatus(piece, LandPiece.Status.AVAILABLE)
        note = OwnerNotification.objects.get(user=self.owner, type="sale_cancelled")
        self.assertEqual(note.metadata["previous_status"], "pending")

    def test_cancelled_is_terminal(self):
        sale = make_sale(self.client_obj, payment_method="full")
        self.service.cancel(sale.id)

        with self.assertRaises(InvalidTransitionError):
            self.service.confirm(sale.id)
        with self.assertRaises(InvalidTransitionError):
            self.service.revert(sale.id)
        with self.assertRaises(SaleConflictError):
            self.service.cancel(sale.id)

    def test_cancel_completed_requires_bulk(self):
        sale = make_sale(self.client_obj, payment_method="full", status=Sale.Status.COMPLETED)
        with self.assertRaises(InvalidTransitionError):
            self.service.cancel(sale.id)

    def test_piece_can_be_sold_again_after_cancel(self):
        piece = self.piece()
        first = self.service.reserve(self.client_obj.id, piece.id, payment_method="full")
        self.service.cancel(first.id)

        second = self.service.reserve(make_client().id, piece.id, payment_method="full")

        self.assertNotEqual(first.id, second.id)
        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)


class BulkCancelTests(SaleLifecycleTestCase):
    def test_bulk_cancel_pending_and_completed(self):
        pending_piece = self.piece(LandPiece.Status.RESERVED)
        sold_piece = self.piece(LandPiece.Status.SOLD)
        pending = make_sale(self.client_obj, pending_piece, payment_method="full")
        completed = make_sale(self.client_obj, sold_piece, payment_method="full", status=Sale.Status.COMPLETED)

        result = self.service.bulk_cancel([pending.id, completed.id, pending.id], reason="distrato")

        self.assertEqual([s.status for s in result], ["cancelled", "cancelled"])
        self.assertPieceStatus(pending_piece, LandPiece.Status.AVAILABLE)
        self.assertPieceStatus(sold_piece, LandPiece.Status.AVAILABLE)

    def test_one_invalid_sale_rejects_the_whole_batch(self):
        pending = make_sale(self.client_obj, payment_method="full")
        cancelled = make_sale(self.client_obj, payment_method="full", status=Sale.Status.CANCELLED)

        with self.assertRaises(SaleConflictError):
            self.service.bulk_cancel([pending.id, cancelled.id])

        pending.refresh_from_db()
        self.assertEqual(pending.status, "pending")

    def test_conflict_mid_batch_rolls_back_earlier_sales(self):
        first_piece = self.piece(LandPiece.Status.RESERVED)
        pending = make_sale(self.client_obj, first_piece, payment_method="full")
        # venda concluída cujo lote não está vendido: CAS do lote falha
        broken = make_sale(
            self.client_obj, self.piece(LandPiece.Status.RESERVED),
            payment_method="full", status=Sale.Status.COMPLETED,
        )

        with self.assertRaises(ParcelConflictError):
            self.service.bulk_cancel([pending.id, broken.id])

        pending.refresh_from_db()
        self.assertEqual(pending.status, "pending")
        self.assertPieceStatus(first_piece, LandPiece.Status.RESERVED)
        self.assertEqual(self.audit_actions(pending.id), [])


class RemoveTests(SaleLifecycleTestCase):
    def test_only_owner_can_remove(self):
        sale = make_sale(self.client_obj, payment_method="full")
        with self.assertRaises(PermissionDeniedError):
            self.service.remove(sale.id, actor_id=self.worker.id)
        with self.assertRaises(PermissionDeniedError):
            self.service.remove(sale.id)
        self.assertTrue(Sale.objects.filter(id=sale.id).exists())

    def test_remove_completed_installment_sale(self):
        piece = self.piece(LandPiece.Status.RESERVED)
        sale = make_sale(self.client_obj, piece, payment_method="installment", payment_offer=self.offer)
        self.service.confirm(sale.id, installment_start_date=date(2025, 2, 1))

        self.service.remove(sale.id, actor_id=self.owner.id)

        self.assertFalse(Sale.objects.filter(id=sale.id).exists())
        self.assertFalse(InstallmentPayment.objects.filter(sale_id=sale.id).exists())
        self.assertPieceStatus(piece, LandPiece.Status.AVAILABLE)
        entry = AuditLog.objects.get(entity_type="sale", entity_id=str(sale.id), action="deleted")
        self.assertEqual(entry.old_values["status"], "completed")
        self.assertIsNone(entry.new_values)

    def test_remove_cancelled_sale_leaves_piece_alone(self):
        piece = self.piece()
        cancelled = make_sale(self.client_obj, piece, payment_method="full", status=Sale.Status.CANCELLED)
        self.service.reserve(make_client().id, piece.id, payment_method="full")

        self.service.remove(cancelled.id, actor_id=self.owner.id)

        self.assertPieceStatus(piece, LandPiece.Status.RESERVED)


class UpdatePendingTests(SaleLifecycleTestCase):
    def test_update_records_only_changed_fields(self):
        sale = make_sale(self.client_obj, payment_method="full")

        result = self.service.update_pending(
            sale.id, {"sale_price": "90000", "notes": "desconto negociado"}, actor_id=self.worker.id
        )

        self.assertEqual(result.sale_price, Decimal("90000.00"))
        entry = AuditLog.objects.get(entity_type="sale", entity_id=str(sale.id), action="updated")
        self.assertEqual(set(entry.changes), {"sale_price", "notes"})
        self.assertEqual(entry.changes["sale_price"], {"old": "100000.00", "new": "90000.00"})

    def test_leaving_promise_clears_partial_amounts(self):
        sale = make_sale(
            self.client_obj, payment_method="promise", sale_price="15000",
            partial_payment_amount=Decimal("5000"), remaining_payment_amount=Decimal("10000"),
        )

        result = self.service.update_pending(sale.id, {"payment_method": "full"})

        self.assertEqual(result.payment_method, "full")
        self.assertIsNone(result.partial_payment_amount)
        self.assertIsNone(result.remaining_payment_amount)

    def test_unknown_field_is_rejected(self):
        sale = make_sale(self.client_obj, payment_method="full")
        with self.assertRaises(SaleValidationError) as ctx:
            self.service.update_pending(sale.id, {"status": "completed"})
        self.assertEqual(ctx.exception.field, "status")

    def test_completed_sale_is_not_editable(self):
        sale = make_sale(self.client_obj, payment_method="full", status=Sale.Status.COMPLETED)
        with self.assertRaises(InvalidTransitionError):
            self.service.update_pending(sale.id, {"notes": "x"})


class QueryTests(SaleLifecycleTestCase):
    def test_installment_filter_includes_legacy_rows(self):
        legacy = make_sale(self.client_obj, payment_method=None, payment_offer=self.offer)
        modern = make_sale(self.client_obj, payment_method="installment", payment_offer=self.offer)
        make_sale(self.client_obj, payment_method="full")

        page = self.service.list_sales({"payment_method": "installment"})

        self.assertEqual(page.total, 2)
        self.assertEqual({row.id for row in page.items}, {legacy.id, modern.id})

    def test_confirmation_groups_by_client_with_search(self):
        other = make_client("Zoé Mansouri")
        make_sale(self.client_obj, payment_method="full", deposit_amount=Decimal("20000"))
        make_sale(self.client_obj, payment_method="full", sale_date=date(2025, 2, 1))
        make_sale(other, payment_method="full")
        make_sale(other, payment_method="full", status=Sale.Status.COMPLETED)

        page = self.service.confirmation_groups()
        self.assertEqual(page.total, 2)
        first = page.items[0]
        self.assertEqual(first.client_name, "Amine Benali")
        self.assertEqual(first.sale_count, 2)
        self.assertEqual(first.total_received, Decimal("20000.00"))
        self.assertEqual(first.total_remaining, Decimal("180000.00"))

        found = self.service.confirmation_groups({"search": "zoe"})
        self.assertEqual([g.client_name for g in found.items], ["Zoé Mansouri"])
        self.assertEqual(found.items[0].sale_count, 1)

    def test_payment_plan_amount_due_for_full_sale(self):
        sale = make_sale(self.client_obj, payment_method="full", deposit_amount=Decimal("20000"))

        dto = self.service.payment_plan(sale.id)

        self.assertEqual(dto.payment_method, "full")
        self.assertEqual(dto.amount_due_at_confirmation, Decimal("80000.00"))
        self.assertIsNone(dto.plan)

    def test_overdue_sales_notify_owners(self):
        late = make_sale(self.client_obj, payment_method="full", deadline_date=date(2025, 3, 1))
        make_sale(self.client_obj, payment_method="full", deadline_date=date(2025, 3, 20))

        total = self.service.notify_overdue_sales(date(2025, 3, 11))

        self.assertEqual(total, 1)
        note = OwnerNotification.objects.get(user=self.owner, type="sale_overdue")
        self.assertEqual(note.entity_id, str(late.id))
        self.assertEqual(note.metadata["overdue_days"], 10)
