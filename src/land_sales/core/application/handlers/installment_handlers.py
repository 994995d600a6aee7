from __future__ import annotations

import structlog
from django.db import transaction
from django.utils import timezone

from land_sales.adapters.observability.metrics import track_transition
from land_sales.core.application.cqrs import CommandHandler, CommandResult
from land_sales.core.application.handlers.sale_lifecycle_handlers import SaleTransitionHandler, run_step
from land_sales.core.application.services.payment_plan_calculator import money
from land_sales.core.application.services.sale_payments import (
    InstallmentApplication,
    apply_installment_payment,
)
from land_sales.core.domain.entities.sale_entity import COMPLETED, INSTALLMENT
from land_sales.core.domain.events.events import InstallmentPaymentRecordedEvent
from land_sales.core.domain.events.exceptions import (
    InvalidTransitionError,
    SaleConflictError,
    SaleValidationError,
)

from ..commands.installment_commands import RecordInstallmentPaymentCommand

logger = structlog.get_logger(__name__)

PAY = "installment_payment"


class RecordInstallmentPaymentHandler(SaleTransitionHandler, CommandHandler[RecordInstallmentPaymentCommand]):
    """Registra pagamento de parcela; o excedente quita as parcelas seguintes."""

    def handle(self, cmd: RecordInstallmentPaymentCommand) -> CommandResult[InstallmentApplication]:
        with track_transition(PAY):
            actor = self._actor(cmd.actor_id)
            sale = self._load(cmd.sale_id)
            if sale.status != COMPLETED:
                raise InvalidTransitionError(PAY, sale.status)
            if sale.effective_payment_method != INSTALLMENT:
                raise SaleValidationError("payment_method", "venda não é parcelada")
            amount = money(cmd.amount)
            if amount <= 0:
                raise SaleValidationError("amount", "valor do pagamento deve ser maior que zero")

            rows = self.installments.list_by_sale(str(sale.id))
            if not any(row.installment_number == cmd.installment_number for row in rows):
                raise SaleValidationError("installment_number", f"parcela {cmd.installment_number} inexistente")

            paid_date = cmd.paid_date or timezone.localdate()
            result = apply_installment_payment(rows, cmd.installment_number, amount, paid_date)
            if result.applied <= 0:
                raise SaleValidationError("installment_number", "parcelas já quitadas")

            previous = {row.id: row for row in rows}
            pairs = [(previous[new.id], new) for new in result.updated]
            with transaction.atomic():
                # a venda precisa seguir como lida: revert/cancel apagam o razão
                self._cas_sale(PAY, sale, {})
                saved = run_step(PAY, "installment_rows", lambda: self.installments.save_payments(pairs))
                if saved != len(pairs):
                    raise SaleConflictError("parcelas alteradas por outro usuário")

        before = {
            str(row.installment_number): str(row.amount_paid)
            for row in rows
            if row.installment_number in {u.installment_number for u in result.updated}
        }
        after = {str(row.installment_number): str(row.amount_paid) for row in result.updated}
        logger.info(
            "installment.payment_recorded",
            sale_id=str(sale.id),
            start=cmd.installment_number,
            applied=str(result.applied),
            unapplied=str(result.unapplied),
        )
        event = InstallmentPaymentRecordedEvent(
            sale_id=sale.id,
            entity_type="installment",
            entity_id=str(sale.id),
            before={"amount_paid": before},
            after={"amount_paid": after},
            amount=amount,
            applied=result.applied,
            unapplied=result.unapplied,
            paid_date=paid_date,
            **self._actor_fields(actor),
        )
        return CommandResult(result, (event,))
