"""
Handlers das transições de venda.

Cada transição:
  1. lê o snapshot da venda (status + forma de pagamento) no início;
  2. valida tudo antes de tocar no banco;
  3. aplica venda, lote e parcelas em um único `transaction.atomic`,
     com compare-and-set sobre o status esperado de cada linha;
  4. devolve eventos de domínio, despachados pelo CommandBus após o commit
     (auditoria, notificação de proprietários, change feed).
"""
from __future__ import annotations

import uuid
from collections.abc import Callable
from decimal import Decimal
from typing import Any, TypeVar

import structlog
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from land_sales.adapters.observability.metrics import track_transition
from land_sales.core.application.cqrs import CommandHandler, CommandResult
from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.application.services.payment_plan_calculator import ZERO, money
from land_sales.core.application.services.sale_payments import (
    SETTLEMENT_TOLERANCE,
    default_sale_price,
    promise_outstanding,
)
from land_sales.core.application.services.sale_plan_service import SalePlanService
from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity
from land_sales.core.domain.entities.parcel_entity import AVAILABLE
from land_sales.core.domain.entities.sale_entity import (
    COMPLETED,
    INSTALLMENT,
    PAYMENT_METHODS,
    PENDING,
    PROMISE,
    SaleEntity,
)
from land_sales.core.domain.entities.user_entity import UserEntity
from land_sales.core.domain.events.events import (
    PromisePaymentRecordedEvent,
    SaleCancelledEvent,
    SaleConfirmedEvent,
    SaleRemovedEvent,
    SaleReservedEvent,
    SaleRevertedEvent,
    SaleUpdatedEvent,
)
from land_sales.core.domain.events.exceptions import (
    ClientNotFoundError,
    InvalidTransitionError,
    LandSalesError,
    ParcelConflictError,
    ParcelNotFoundError,
    PaymentOfferNotFoundError,
    PermissionDeniedError,
    SaleConflictError,
    SaleNotFoundError,
    SaleValidationError,
    TransitionStepError,
    UserNotFoundError,
)
from land_sales.core.domain.repositories.client_repository import ClientRepository
from land_sales.core.domain.repositories.installment_payment_repository import (
    InstallmentPaymentRepository,
)
from land_sales.core.domain.repositories.parcel_repository import ParcelRepository
from land_sales.core.domain.repositories.payment_offer_repository import PaymentOfferRepository
from land_sales.core.domain.repositories.sale_repository import SaleRepository
from land_sales.core.domain.repositories.user_repository import UserRepository
from land_sales.core.domain.services.sale_state_machine import (
    BULK_CANCEL,
    CANCEL,
    CONFIRM,
    REMOVE,
    RESERVE,
    REVERT,
    TRANSITIONS,
    ensure_allowed,
    parcel_effect,
)

from ..commands.sale_commands import (
    BulkCancelSalesCommand,
    CancelSaleCommand,
    ConfirmSaleCommand,
    RecordPromisePaymentCommand,
    RemoveSaleCommand,
    ReserveParcelCommand,
    RevertSaleCommand,
    UpdatePendingSaleCommand,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_ALREADY = {COMPLETED: "venda já confirmada", PENDING: "venda já pendente", "cancelled": "venda já cancelada"}


def run_step(transition: str, step: str, fn: Callable[[], T]) -> T:
    """Executa um passo da transição; erro de banco vira TransitionStepError nomeando o passo."""
    try:
        return fn()
    except LandSalesError:
        raise
    except DatabaseError as exc:
        logger.error("sale.transition_step_failed", transition=transition, step=step, error=str(exc))
        raise TransitionStepError(transition, step, exc) from exc


class SaleTransitionHandler:
    """Base com o que toda transição de venda compartilha."""

    def __init__(  # noqa: PLR0913
        self,
        sale_repo: SaleRepository,
        parcel_repo: ParcelRepository,
        installment_repo: InstallmentPaymentRepository,
        user_repo: UserRepository,
        plan_service: SalePlanService,
    ) -> None:
        self.sales = sale_repo
        self.parcels = parcel_repo
        self.installments = installment_repo
        self.users = user_repo
        self.plans = plan_service

    # ───────────── leitura / validação ─────────────
    def _actor(self, actor_id: str | None) -> UserEntity | None:
        if actor_id is None:
            return None
        user = self.users.find_by_id(str(actor_id))
        if user is None:
            raise UserNotFoundError(f"usuário {actor_id} não encontrado")
        return user

    def _load(self, sale_id: str) -> SaleEntity:
        sale = self.sales.find_by_id(str(sale_id))
        if sale is None:
            raise SaleNotFoundError(f"venda {sale_id} não encontrada")
        return sale

    def _row(self, sale_id: uuid.UUID | str) -> SaleRowDTO | None:
        return self.sales.find_row(str(sale_id))

    @staticmethod
    def _check(transition: str, sale: SaleEntity) -> None:
        if TRANSITIONS[transition].target == sale.status:
            # outra sessão aplicou a mesma transição primeiro
            raise SaleConflictError(_ALREADY.get(sale.status, "venda alterada por outro usuário"))
        ensure_allowed(transition, sale.status)

    @staticmethod
    def _actor_fields(actor: UserEntity | None) -> dict[str, Any]:
        if actor is None:
            return {"actor_id": None, "actor_name": None, "actor_email": None}
        return {"actor_id": actor.id, "actor_name": actor.name, "actor_email": actor.email}

    @staticmethod
    def _summary_fields(row: SaleRowDTO | None, sale: SaleEntity) -> dict[str, Any]:
        return {
            "client_name": row.client_name if row else None,
            "piece_number": row.piece.piece_number if row and row.piece else None,
            "batch_name": row.batch.name if row and row.batch else None,
            "sale_price": sale.sale_price,
        }

    # ───────────── passos de escrita ─────────────
    def _cas_sale(self, transition: str, snapshot: SaleEntity, changes: dict[str, Any]) -> None:
        updated = run_step(
            transition,
            "sale_status",
            lambda: self.sales.compare_and_set(
                str(snapshot.id),
                expected=snapshot,
                changes=changes,
            ),
        )
        if not updated:
            raise SaleConflictError(_ALREADY.get(changes.get("status", ""), "venda alterada por outro usuário"))

    def _cas_parcel(self, transition: str, sale_status: str | None, parcel_id: uuid.UUID | str) -> None:
        effect = parcel_effect(transition, sale_status)
        if effect is None:
            return
        updated = run_step(
            transition,
            "parcel_status",
            lambda: self.parcels.compare_and_set_status(str(parcel_id), effect.expected, effect.target),
        )
        if not updated:
            raise ParcelConflictError(
                f"lote {parcel_id} não está em {sorted(effect.expected)}; transição {transition} abortada"
            )

    def _delete_installments(self, transition: str, sale_id: uuid.UUID | str) -> int:
        return run_step(transition, "installment_rows", lambda: self.installments.delete_by_sale(str(sale_id)))


# ╭──────────────────────────────────────────────╮
# │ 1. Reserva (criação da venda)               │
# ╰──────────────────────────────────────────────╯
class ReserveParcelHandler(SaleTransitionHandler, CommandHandler[ReserveParcelCommand]):
    def __init__(self, client_repo: ClientRepository, offer_repo: PaymentOfferRepository, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.clients = client_repo
        self.offers = offer_repo

    def _resolve_offer(self, cmd: ReserveParcelCommand, parcel) -> Any:
        if cmd.payment_offer_id:
            offer = self.offers.find_by_id(str(cmd.payment_offer_id))
            if offer is None:
                raise PaymentOfferNotFoundError(f"oferta {cmd.payment_offer_id} não encontrada")
            return offer
        if cmd.payment_method == INSTALLMENT:
            offer = self.offers.find_default_for(str(parcel.id), str(parcel.batch_id))
            if offer is None:
                raise SaleValidationError("payment_offer_id", "parcelamento exige uma oferta de pagamento")
            return offer
        return None

    def handle(self, cmd: ReserveParcelCommand) -> CommandResult[SaleEntity]:
        with track_transition(RESERVE):
            actor = self._actor(cmd.actor_id)
            client = self.clients.find_by_id(str(cmd.client_id))
            if client is None:
                raise ClientNotFoundError(f"cliente {cmd.client_id} não encontrado")
            parcel = self.parcels.find_by_id(str(cmd.land_piece_id))
            if parcel is None:
                raise ParcelNotFoundError(f"lote {cmd.land_piece_id} não encontrado")
            if parcel.status != AVAILABLE or self.sales.has_active_sale(str(parcel.id)):
                raise ParcelConflictError(f"lote {parcel.piece_number} não está disponível")
            if cmd.payment_method is not None and cmd.payment_method not in PAYMENT_METHODS:
                raise SaleValidationError("payment_method", f"forma de pagamento inválida: {cmd.payment_method}")

            offer = self._resolve_offer(cmd, parcel)
            batch = self.parcels.find_batch(str(parcel.batch_id))
            method = cmd.payment_method or (INSTALLMENT if offer is not None else None)
            price = (
                money(cmd.sale_price)
                if cmd.sale_price is not None
                else default_sale_price(method, parcel, batch, offer)
            )
            if price <= 0:
                raise SaleValidationError("sale_price", "preço da venda deve ser maior que zero")
            deposit = money(cmd.deposit_amount) if cmd.deposit_amount is not None else None
            if deposit is not None and not (ZERO <= deposit <= price):
                raise SaleValidationError("deposit_amount", "sinal deve estar entre zero e o preço da venda")

            fields = {
                "client_id": client.id,
                "land_piece_id": parcel.id,
                "batch_id": parcel.batch_id,
                "payment_offer_id": offer.id if offer is not None else None,
                "payment_method": method,
                "sale_price": price,
                "deposit_amount": deposit,
                "sale_date": cmd.sale_date or timezone.localdate(),
                "deadline_date": cmd.deadline_date,
                "notes": cmd.notes,
                "sold_by_id": actor.id if actor else None,
            }
            if method == INSTALLMENT and offer is not None:
                draft = SaleEntity(id=uuid.uuid4(), sale_price=price, **{
                    k: v for k, v in fields.items() if k != "sale_price"
                })
                self.plans.plan_for(draft, offer=offer).ensure_valid()

            def _insert() -> SaleEntity:
                try:
                    return self.sales.create(**fields)
                except IntegrityError as exc:
                    raise ParcelConflictError(f"lote {parcel.piece_number} já possui venda ativa") from exc

            with transaction.atomic():
                self._cas_parcel(RESERVE, None, parcel.id)
                sale = run_step(RESERVE, "sale_insert", _insert)

        logger.info("sale.reserved", sale_id=str(sale.id), parcel_id=str(parcel.id), method=method)
        event = SaleReservedEvent(
            sale_id=sale.id,
            entity_id=str(sale.id),
            after=sale.audit_payload(),
            payment_method=method,
            client_name=client.name,
            piece_number=parcel.piece_number,
            batch_name=batch.name if batch else None,
            sale_price=sale.sale_price,
            **self._actor_fields(actor),
        )
        return CommandResult(sale, (event,))


# ╭──────────────────────────────────────────────╮
# │ 2. Edição de venda pendente                 │
# ╰──────────────────────────────────────────────╯
EDITABLE_FIELDS = frozenset({
    "payment_method",
    "payment_offer_id",
    "sale_price",
    "deposit_amount",
    "deadline_date",
    "installment_start_date",
    "notes",
    "contract_writer",
})
_MONEY_FIELDS = ("sale_price", "deposit_amount")


class UpdatePendingSaleHandler(SaleTransitionHandler, CommandHandler[UpdatePendingSaleCommand]):
    def __init__(self, offer_repo: PaymentOfferRepository, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.offers = offer_repo

    def _validate(self, snapshot: SaleEntity, changes: dict[str, Any]) -> dict[str, Any]:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise SaleValidationError(sorted(unknown)[0], "campo não editável")
        changes = dict(changes)
        for name in _MONEY_FIELDS:
            if changes.get(name) is not None:
                changes[name] = money(changes[name])

        merged = snapshot.to_dict() | changes
        method = merged.get("payment_method")
        if method is not None and method not in PAYMENT_METHODS:
            raise SaleValidationError("payment_method", f"forma de pagamento inválida: {method}")
        price = merged["sale_price"]
        if price is None or price <= 0:
            raise SaleValidationError("sale_price", "preço da venda deve ser maior que zero")
        deposit = merged.get("deposit_amount")
        if deposit is not None and not (ZERO <= deposit <= price):
            raise SaleValidationError("deposit_amount", "sinal deve estar entre zero e o preço da venda")

        offer = None
        if merged.get("payment_offer_id"):
            offer = self.offers.find_by_id(str(merged["payment_offer_id"]))
            if offer is None:
                raise PaymentOfferNotFoundError(f"oferta {merged['payment_offer_id']} não encontrada")
        effective = method or (INSTALLMENT if offer is not None else None)
        if effective == INSTALLMENT:
            if offer is None:
                raise SaleValidationError("payment_offer_id", "parcelamento exige uma oferta de pagamento")
            draft = SaleEntity.from_dict(merged)
            self.plans.plan_for(draft, offer=offer).ensure_valid()
        if snapshot.effective_payment_method == PROMISE and effective != PROMISE:
            changes["partial_payment_amount"] = None
            changes["remaining_payment_amount"] = None
        return changes

    def handle(self, cmd: UpdatePendingSaleCommand) -> CommandResult[SaleEntity]:
        with track_transition("update"):
            actor = self._actor(cmd.actor_id)
            snapshot = self._load(cmd.sale_id)
            if snapshot.status != PENDING:
                raise InvalidTransitionError("update", snapshot.status)
            changes = self._validate(snapshot, cmd.changes)
            with transaction.atomic():
                updated = run_step(
                    "update",
                    "sale_update",
                    lambda: self.sales.compare_and_set(
                        str(snapshot.id),
                        expected=snapshot,
                        changes=changes,
                    ),
                )
                if not updated:
                    raise SaleConflictError("venda alterada por outro usuário")
            sale = self._load(cmd.sale_id)

        event = SaleUpdatedEvent(
            sale_id=sale.id,
            entity_id=str(sale.id),
            before=snapshot.audit_payload(),
            after=sale.audit_payload(),
            sale_price=sale.sale_price,
            **self._actor_fields(actor),
        )
        return CommandResult(sale, (event,))


# ╭──────────────────────────────────────────────╮
# │ 3. Confirmação  pending → completed         │
# ╰──────────────────────────────────────────────╯
class ConfirmSaleHandler(SaleTransitionHandler, CommandHandler[ConfirmSaleCommand]):
    def _prepare(
        self, cmd: ConfirmSaleCommand, snapshot: SaleEntity, actor: UserEntity | None
    ) -> tuple[dict[str, Any], list[InstallmentPaymentEntity]]:
        method = snapshot.effective_payment_method
        if method is None:
            raise SaleValidationError("payment_method", "forma de pagamento não definida")
        if cmd.company_fee_amount is not None and cmd.company_fee_amount < 0:
            raise SaleValidationError("company_fee_amount", "comissão não pode ser negativa")

        changes: dict[str, Any] = {
            "status": COMPLETED,
            "confirmed_by_id": actor.id if actor else None,
            "confirmed_at": timezone.now(),
        }
        if snapshot.needs_payment_method_backfill:
            changes["payment_method"] = INSTALLMENT
        if cmd.contract_writer is not None:
            changes["contract_writer"] = cmd.contract_writer
        if cmd.notes is not None:
            changes["notes"] = cmd.notes

        rows: list[InstallmentPaymentEntity] = []
        if method == INSTALLMENT:
            offer = self.plans.offer_for(snapshot)
            if offer is None:
                raise SaleValidationError("payment_offer_id", "parcelamento exige uma oferta de pagamento")
            start = cmd.installment_start_date or snapshot.installment_start_date
            if start is None:
                raise SaleValidationError("installment_start_date", "data de início das parcelas obrigatória")
            plan = self.plans.plan_for(snapshot, start_date=start, offer=offer).ensure_valid()
            changes["installment_start_date"] = start
            changes["offer_snapshot"] = offer.snapshot()
            rows = [
                InstallmentPaymentEntity(
                    id=uuid.uuid4(),
                    sale_id=snapshot.id,
                    installment_number=item.installment_number,
                    amount_due=item.amount_due,
                    due_date=item.due_date,
                )
                for item in plan.schedule
            ]
            if cmd.company_fee_amount is not None:
                changes["company_fee_amount"] = money(cmd.company_fee_amount)
        elif method == PROMISE:
            changes.update(self._promise_settlement(cmd, snapshot))
            # comissão da promessa é gravada uma única vez
            if snapshot.company_fee_amount is None and cmd.company_fee_amount is not None:
                changes["company_fee_amount"] = money(cmd.company_fee_amount)
        elif cmd.company_fee_amount is not None:
            changes["company_fee_amount"] = money(cmd.company_fee_amount)
        return changes, rows

    @staticmethod
    def _promise_settlement(cmd: ConfirmSaleCommand, snapshot: SaleEntity) -> dict[str, Any]:
        outstanding = promise_outstanding(snapshot)
        amount = money(cmd.payment_amount) if cmd.payment_amount is not None else outstanding
        if amount < 0 or (amount == 0 and outstanding > 0):
            raise SaleValidationError("payment_amount", "valor do pagamento deve ser maior que zero")
        if amount > outstanding:
            raise SaleValidationError("payment_amount", f"valor excede o saldo de {outstanding}")
        if outstanding - amount > SETTLEMENT_TOLERANCE:
            raise SaleValidationError(
                "payment_amount", "valor não quita o saldo; registre como pagamento parcial"
            )
        new_partial = money(Decimal(snapshot.partial_payment_amount or 0) + amount)
        if new_partial > snapshot.sale_price:
            raise SaleValidationError("partial_payment_amount", "pagamentos excedem o preço da venda")
        return {"partial_payment_amount": new_partial, "remaining_payment_amount": ZERO}

    def handle(self, cmd: ConfirmSaleCommand) -> CommandResult[SaleEntity]:
        with track_transition(CONFIRM):
            actor = self._actor(cmd.actor_id)
            snapshot = self._load(cmd.sale_id)
            self._check(CONFIRM, snapshot)
            changes, rows = self._prepare(cmd, snapshot, actor)

            with transaction.atomic():
                self._cas_sale(CONFIRM, snapshot, changes)
                self._cas_parcel(CONFIRM, snapshot.status, snapshot.land_piece_id)
                if rows:
                    self._delete_installments(CONFIRM, snapshot.id)
                    run_step(CONFIRM, "installment_rows", lambda: self.installments.bulk_create(rows))
            sale = self._load(cmd.sale_id)

        logger.info(
            "sale.confirmed",
            sale_id=str(sale.id),
            method=sale.payment_method,
            installments=len(rows),
            backfilled=snapshot.needs_payment_method_backfill,
        )
        event = SaleConfirmedEvent(
            sale_id=sale.id,
            entity_id=str(sale.id),
            before=snapshot.audit_payload(),
            after=sale.audit_payload(),
            payment_method=sale.payment_method or INSTALLMENT,
            installments_created=len(rows),
            **self._summary_fields(self._row(sale.id), sale),
            **self._actor_fields(actor),
        )
        return CommandResult(sale, (event,))


# ╭──────────────────────────────────────────────╮
# │ 4. Pagamento parcial de promessa            │
# ╰──────────────────────────────────────────────╯
class RecordPromisePaymentHandler(SaleTransitionHandler, CommandHandler[RecordPromisePaymentCommand]):
    def handle(self, cmd: RecordPromisePaymentCommand) -> CommandResult[SaleEntity]:
        with track_transition("promise_payment"):
            actor = self._actor(cmd.actor_id)
            snapshot = self._load(cmd.sale_id)
            if snapshot.status != PENDING:
                raise InvalidTransitionError("promise_payment", snapshot.status)
            if snapshot.effective_payment_method != PROMISE:
                raise SaleValidationError("payment_method", "pagamento parcial só se aplica a promessa")

            amount = money(cmd.amount)
            outstanding = promise_outstanding(snapshot)
            if amount <= 0:
                raise SaleValidationError("amount", "valor do pagamento deve ser maior que zero")
            if amount > outstanding:
                raise SaleValidationError("amount", f"valor excede o saldo de {outstanding}")
            remaining = money(outstanding - amount)
            if remaining <= SETTLEMENT_TOLERANCE:
                raise SaleValidationError("amount", "valor quita o saldo; confirme a venda")

            changes: dict[str, Any] = {
                "partial_payment_amount": money(Decimal(snapshot.partial_payment_amount or 0) + amount),
                "remaining_payment_amount": remaining,
            }
            if snapshot.company_fee_amount is None and cmd.company_fee_amount is not None:
                changes["company_fee_amount"] = money(cmd.company_fee_amount)

            with transaction.atomic():
                updated = run_step(
                    "promise_payment",
                    "sale_update",
                    lambda: self.sales.compare_and_set(
                        str(snapshot.id),
                        expected=snapshot,
                        changes=changes,
                    ),
                )
                if not updated:
                    raise SaleConflictError("venda alterada por outro usuário")
            sale = self._load(cmd.sale_id)

        logger.info("sale.promise_payment", sale_id=str(sale.id), amount=str(amount), remaining=str(remaining))
        event = PromisePaymentRecordedEvent(
            sale_id=sale.id,
            entity_id=str(sale.id),
            before=snapshot.audit_payload(),
            after=sale.audit_payload(),
            amount=amount,
            remaining=remaining,
            sale_price=sale.sale_price,
            **self._actor_fields(actor),
        )
        return CommandResult(sale, (event,))


# ╭──────────────────────────────────────────────╮
# │ 5. Reversão  completed → pending            │
# ╰──────────────────────────────────────────────╯
class RevertSaleHandler(SaleTransitionHandler, CommandHandler[RevertSaleCommand]):
    def handle(self, cmd: RevertSaleCommand) -> CommandResult[SaleEntity]:
        with track_transition(REVERT):
            actor = self._actor(cmd.actor_id)
            snapshot = self._load(cmd.sale_id)
            self._check(REVERT, snapshot)
            changes = {
                "status": PENDING,
                "confirmed_by_id": None,
                "confirmed_at": None,
                "partial_payment_amount": None,
                "remaining_payment_amount": None,
                "offer_snapshot": None,
            }
            with transaction.atomic():
                self._cas_sale(REVERT, snapshot, changes)
                self._cas_parcel(REVERT, snapshot.status, snapshot.land_piece_id)
                deleted = self._delete_installments(REVERT, snapshot.id)
            sale = self._load(cmd.sale_id)

        logger.info("sale.reverted", sale_id=str(sale.id), installments_deleted=deleted)
        event = SaleRevertedEvent(
            sale_id=sale.id,
            entity_id=str(sale.id),
            before=snapshot.audit_payload(),
            after=sale.audit_payload(),
            installments_deleted=deleted,
            sale_price=sale.sale_price,
            **self._actor_fields(actor),
        )
        return CommandResult(sale, (event,))


# ╭──────────────────────────────────────────────╮
# │ 6. Cancelamento (individual e em lote)      │
# ╰──────────────────────────────────────────────╯
class _CancelMixin(SaleTransitionHandler):
    def _cancel(
        self, transition: str, snapshot: SaleEntity, actor: UserEntity | None, reason: str | None
    ) -> SaleCancelledEvent:
        row = self._row(snapshot.id)
        changes: dict[str, Any] = {"status": "cancelled"}
        if reason:
            changes["notes"] = f"{snapshot.notes}\n{reason}" if snapshot.notes else reason
        self._cas_sale(transition, snapshot, changes)
        self._cas_parcel(transition, snapshot.status, snapshot.land_piece_id)
        deleted = self._delete_installments(transition, snapshot.id)
        after = snapshot.audit_payload() | changes
        return SaleCancelledEvent(
            sale_id=snapshot.id,
            entity_id=str(snapshot.id),
            before=snapshot.audit_payload(),
            after=after,
            previous_status=snapshot.status,
            installments_deleted=deleted,
            notes=reason,
            **self._summary_fields(row, snapshot),
            **self._actor_fields(actor),
        )


class CancelSaleHandler(_CancelMixin, CommandHandler[CancelSaleCommand]):
    def handle(self, cmd: CancelSaleCommand) -> CommandResult[SaleEntity]:
        with track_transition(CANCEL):
            actor = self._actor(cmd.actor_id)
            snapshot = self._load(cmd.sale_id)
            self._check(CANCEL, snapshot)
            with transaction.atomic():
                event = self._cancel(CANCEL, snapshot, actor, cmd.reason)
            sale = self._load(cmd.sale_id)

        logger.info("sale.cancelled", sale_id=str(sale.id), previous_status=snapshot.status)
        return CommandResult(sale, (event,))


class BulkCancelSalesHandler(_CancelMixin, CommandHandler[BulkCancelSalesCommand]):
    """Tudo ou nada: um conflito em qualquer venda desfaz o lote inteiro."""

    def handle(self, cmd: BulkCancelSalesCommand) -> CommandResult[list[SaleEntity]]:
        if not cmd.sale_ids:
            raise SaleValidationError("sale_ids", "nenhuma venda informada")
        with track_transition(BULK_CANCEL):
            actor = self._actor(cmd.actor_id)
            snapshots = [self._load(sale_id) for sale_id in dict.fromkeys(cmd.sale_ids)]
            for snapshot in snapshots:
                self._check(BULK_CANCEL, snapshot)
            with transaction.atomic():
                events = [self._cancel(BULK_CANCEL, s, actor, cmd.reason) for s in snapshots]
            sales = [self._load(str(s.id)) for s in snapshots]

        logger.info("sale.bulk_cancelled", count=len(sales))
        return CommandResult(sales, tuple(events))


# ╭──────────────────────────────────────────────╮
# │ 7. Exclusão definitiva                      │
# ╰──────────────────────────────────────────────╯
class RemoveSaleHandler(SaleTransitionHandler, CommandHandler[RemoveSaleCommand]):
    def handle(self, cmd: RemoveSaleCommand) -> CommandResult[None]:
        with track_transition(REMOVE):
            actor = self._actor(cmd.actor_id)
            if actor is None or not actor.is_owner:
                raise PermissionDeniedError("somente proprietários podem excluir vendas")
            snapshot = self._load(cmd.sale_id)
            self._check(REMOVE, snapshot)
            row = self._row(snapshot.id)

            with transaction.atomic():
                deleted_rows = self._delete_installments(REMOVE, snapshot.id)
                removed = run_step(
                    REMOVE,
                    "sale_delete",
                    lambda: self.sales.delete(str(snapshot.id), expected_status=snapshot.status),
                )
                if not removed:
                    raise SaleConflictError("venda alterada por outro usuário")
                self._cas_parcel(REMOVE, snapshot.status, snapshot.land_piece_id)

        logger.info("sale.removed", sale_id=str(snapshot.id), previous_status=snapshot.status)
        event = SaleRemovedEvent(
            sale_id=snapshot.id,
            entity_id=str(snapshot.id),
            before=snapshot.audit_payload(),
            installments_deleted=deleted_rows,
            **self._summary_fields(row, snapshot),
            **self._actor_fields(actor),
        )
        return CommandResult(None, (event,))
