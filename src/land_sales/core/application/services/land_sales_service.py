from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import structlog

from land_sales.core.application.commands.appointment_commands import (
    ChangeAppointmentStatusCommand,
    DeleteAppointmentCommand,
    RescheduleAppointmentCommand,
    ScheduleAppointmentCommand,
)
from land_sales.core.application.commands.installment_commands import RecordInstallmentPaymentCommand
from land_sales.core.application.commands.sale_commands import (
    BulkCancelSalesCommand,
    CancelSaleCommand,
    ConfirmSaleCommand,
    RecordPromisePaymentCommand,
    RemoveSaleCommand,
    ReserveParcelCommand,
    RevertSaleCommand,
    UpdatePendingSaleCommand,
)
from land_sales.core.application.cqrs import BaseService, CommandBus, PagedResult, QueryBus
from land_sales.core.application.queries.appointment_queries import GetAppointmentQuery, ListAppointmentsQuery
from land_sales.core.application.queries.audit_queries import GetAuditLogsQuery
from land_sales.core.application.queries.sale_queries import (
    GetInstallmentStatsQuery,
    GetPaymentPlanQuery,
    GetSaleQuery,
    ListConfirmationGroupsQuery,
    ListInstallmentsQuery,
    ListOverdueSalesQuery,
    ListSalesQuery,
)
from land_sales.core.application.services.payment_plan_calculator import money
from land_sales.core.application.services.sale_payments import SETTLEMENT_TOLERANCE, promise_outstanding
from land_sales.core.domain.events.events import SaleDeadlinePassedEvent
from land_sales.core.domain.events.exceptions import SaleNotFoundError
from land_sales.core.domain.repositories.sale_repository import SaleRepository
from land_sales.core.domain.services.event_dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)


class LandSalesFacadeService(BaseService):
    """
    Fachada usada pelos comandos de gerenciamento e pela camada de interface.

    - transições de venda (`reserve`, `confirm`, `revert`, `cancel`, ...)
    - `settle_promise()` escolhe entre pagamento parcial e confirmação
    - consultas de listagem, agrupamento e planos
    """

    def __init__(
        self,
        command_bus: CommandBus,
        query_bus: QueryBus,
        sale_repo: SaleRepository,
        dispatcher: EventDispatcher,
        default_page_size: int = 20,
    ) -> None:
        super().__init__(command_bus, query_bus)
        self.sales = sale_repo
        self.dispatcher = dispatcher
        self.default_page_size = default_page_size

    # ------------------------------------------------ vendas
    def reserve(self, client_id: str, land_piece_id: str, **kwargs: Any):
        return self.execute(ReserveParcelCommand(client_id=client_id, land_piece_id=land_piece_id, **kwargs))

    def update_pending(self, sale_id: str, changes: dict[str, Any], actor_id: str | None = None):
        return self.execute(UpdatePendingSaleCommand(sale_id=sale_id, changes=changes, actor_id=actor_id))

    def confirm(self, sale_id: str, actor_id: str | None = None, **kwargs: Any):
        return self.execute(ConfirmSaleCommand(sale_id=sale_id, actor_id=actor_id, **kwargs))

    def record_promise_payment(self, sale_id: str, amount: Decimal, actor_id: str | None = None, **kwargs: Any):
        return self.execute(RecordPromisePaymentCommand(sale_id=sale_id, amount=amount, actor_id=actor_id, **kwargs))

    def settle_promise(
        self,
        sale_id: str,
        amount: Decimal,
        actor_id: str | None = None,
        company_fee_amount: Decimal | None = None,
    ):
        """Pagamento de promessa: confirma se quitar o saldo, senão registra como parcial."""
        sale = self.sales.find_by_id(str(sale_id))
        if sale is None:
            raise SaleNotFoundError(f"venda {sale_id} não encontrada")
        if promise_outstanding(sale) - money(amount) <= SETTLEMENT_TOLERANCE:
            return self.confirm(
                sale_id, actor_id, payment_amount=money(amount), company_fee_amount=company_fee_amount
            )
        return self.record_promise_payment(
            sale_id, amount, actor_id, company_fee_amount=company_fee_amount
        )

    def revert(self, sale_id: str, actor_id: str | None = None):
        return self.execute(RevertSaleCommand(sale_id=sale_id, actor_id=actor_id))

    def cancel(self, sale_id: str, actor_id: str | None = None, reason: str | None = None):
        return self.execute(CancelSaleCommand(sale_id=sale_id, actor_id=actor_id, reason=reason))

    def bulk_cancel(self, sale_ids: list[str], actor_id: str | None = None, reason: str | None = None):
        return self.execute(BulkCancelSalesCommand(sale_ids=tuple(sale_ids), actor_id=actor_id, reason=reason))

    def remove(self, sale_id: str, actor_id: str | None = None) -> None:
        self.execute(RemoveSaleCommand(sale_id=sale_id, actor_id=actor_id))

    def record_installment_payment(
        self,
        sale_id: str,
        installment_number: int,
        amount: Decimal,
        paid_date: date | None = None,
        actor_id: str | None = None,
    ):
        return self.execute(
            RecordInstallmentPaymentCommand(
                sale_id=sale_id,
                installment_number=installment_number,
                amount=amount,
                paid_date=paid_date,
                actor_id=actor_id,
            )
        )

    # ------------------------------------------------ agendamentos
    def schedule(self, sale_id: str, on: date, at: time, notes: str | None = None, actor_id: str | None = None):
        return self.execute(
            ScheduleAppointmentCommand(
                sale_id=sale_id, appointment_date=on, appointment_time=at, notes=notes, actor_id=actor_id
            )
        )

    def reschedule(self, appointment_id: str, actor_id: str | None = None, **changes: Any):
        return self.execute(RescheduleAppointmentCommand(appointment_id=appointment_id, actor_id=actor_id, **changes))

    def set_appointment_status(self, appointment_id: str, status: str, actor_id: str | None = None):
        return self.execute(
            ChangeAppointmentStatusCommand(appointment_id=appointment_id, status=status, actor_id=actor_id)
        )

    def delete_appointment(self, appointment_id: str, actor_id: str | None = None) -> None:
        self.execute(DeleteAppointmentCommand(appointment_id=appointment_id, actor_id=actor_id))

    def get_appointment(self, appointment_id: str):
        return self.query(GetAppointmentQuery(id=appointment_id))

    def list_appointments(self, filtros: dict | None = None, page: int = 1, page_size: int | None = None) -> PagedResult:
        return self.paginate(
            ListAppointmentsQuery(filtros=filtros or {}, page=page, page_size=page_size or self.default_page_size)
        )

    # ------------------------------------------------ consultas
    def list_sales(self, filtros: dict | None = None, page: int = 1, page_size: int | None = None) -> PagedResult:
        return self.paginate(ListSalesQuery(filtros=filtros or {}, page=page, page_size=page_size or self.default_page_size))

    def get_sale(self, sale_id: str):
        return self.query(GetSaleQuery(id=sale_id))

    def confirmation_groups(
        self,
        filtros: dict | None = None,
        page: int = 1,
        page_size: int | None = None,
        now: datetime | None = None,
    ) -> PagedResult:
        return self.paginate(
            ListConfirmationGroupsQuery(
                filtros=filtros or {}, page=page, page_size=page_size or self.default_page_size, now=now
            )
        )

    def payment_plan(self, sale_id: str, start_date: date | None = None):
        return self.query(GetPaymentPlanQuery(sale_id=sale_id, start_date=start_date))

    def installments(self, sale_id: str):
        return self.query(ListInstallmentsQuery(sale_id=sale_id))

    def installment_stats(self, sale_id: str, today: date | None = None):
        return self.query(GetInstallmentStatsQuery(sale_id=sale_id, today=today))

    def overdue_sales(self, today: date | None = None):
        return self.query(ListOverdueSalesQuery(today=today))

    def audit_logs(self, entity_type: str, entity_id: str):
        return self.query(GetAuditLogsQuery(entity_type=entity_type, entity_id=str(entity_id)))

    # ------------------------------------------------ prazos
    def notify_overdue_sales(self, today: date | None = None) -> int:
        """Emite um SaleDeadlinePassedEvent por venda pendente com prazo vencido."""
        lines = self.overdue_sales(today)
        for line in lines:
            row = line.row
            self.dispatcher.dispatch(
                SaleDeadlinePassedEvent(
                    sale_id=row.id,
                    client_name=row.client_name,
                    piece_number=row.piece.piece_number if row.piece else "",
                    batch_name=row.batch.name if row.batch else "",
                    deadline_date=row.deadline_date,
                    overdue_days=line.overdue_days,
                )
            )
        logger.info("sales.overdue_notified", count=len(lines))
        return len(lines)
