from __future__ import annotations

from django.utils import timezone

from land_sales.core.application.cqrs import PagedResult, QueryHandler
from land_sales.core.application.dtos.payment_plan_dto import SalePaymentPlanDTO
from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.application.services.payment_plan_calculator import ZERO
from land_sales.core.application.services.sale_grouping_service import (
    ClientGroup,
    SaleLine,
    build_line,
    group_sales,
    search_rows,
)
from land_sales.core.application.services.sale_payments import (
    InstallmentStats,
    confirmation_amount,
    installment_stats,
)
from land_sales.core.application.services.sale_plan_service import SalePlanService
from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity
from land_sales.core.domain.entities.sale_entity import INSTALLMENT, PENDING, SaleEntity
from land_sales.core.domain.events.exceptions import SaleNotFoundError
from land_sales.core.domain.repositories.installment_payment_repository import (
    InstallmentPaymentRepository,
)
from land_sales.core.domain.repositories.sale_repository import SaleRepository

from ..queries.sale_queries import (
    GetInstallmentStatsQuery,
    GetPaymentPlanQuery,
    GetSaleQuery,
    ListConfirmationGroupsQuery,
    ListInstallmentsQuery,
    ListOverdueSalesQuery,
    ListSalesQuery,
)


def _require_sale(repo: SaleRepository, sale_id: str) -> SaleEntity:
    sale = repo.find_by_id(str(sale_id))
    if sale is None:
        raise SaleNotFoundError(f"venda {sale_id} não encontrada")
    return sale


class ListSalesHandler(QueryHandler[ListSalesQuery, PagedResult[SaleRowDTO]]):
    def __init__(self, repo: SaleRepository):
        self.repo = repo

    def handle(self, q: ListSalesQuery) -> PagedResult[SaleRowDTO]:
        return self.repo.list_rows(q.filtros, q.page, q.page_size)


class GetSaleHandler(QueryHandler[GetSaleQuery, SaleRowDTO | None]):
    def __init__(self, repo: SaleRepository):
        self.repo = repo

    def handle(self, q: GetSaleQuery) -> SaleRowDTO | None:
        return self.repo.find_row(str(q.id))


class ListConfirmationGroupsHandler(QueryHandler[ListConfirmationGroupsQuery, PagedResult[ClientGroup]]):
    """
    Carrega até `load_limit` vendas, filtra pela busca e agrupa por cliente.
    A paginação é sobre os grupos de cliente, não sobre as vendas.
    """

    def __init__(self, repo: SaleRepository, load_limit: int = 1000):
        self.repo = repo
        self.load_limit = load_limit

    def handle(self, q: ListConfirmationGroupsQuery) -> PagedResult[ClientGroup]:
        filtros = dict(q.filtros or {})
        filtros.setdefault("status", PENDING)
        term = filtros.pop("search", None)

        rows = search_rows(self.repo.load_rows(filtros, self.load_limit), term)
        groups = group_sales(rows, q.now or timezone.now())

        start = (q.page - 1) * q.page_size
        return PagedResult(
            items=groups[start:start + q.page_size],
            total=len(groups),
            page=q.page,
            page_size=q.page_size,
        )


class GetPaymentPlanHandler(QueryHandler[GetPaymentPlanQuery, SalePaymentPlanDTO]):
    def __init__(self, repo: SaleRepository, plan_service: SalePlanService):
        self.repo = repo
        self.plans = plan_service

    def handle(self, q: GetPaymentPlanQuery) -> SalePaymentPlanDTO:
        sale = _require_sale(self.repo, q.sale_id)
        method = sale.effective_payment_method
        plan = self.plans.plan_for(sale, start_date=q.start_date) if method == INSTALLMENT else None
        return SalePaymentPlanDTO(
            sale_id=str(sale.id),
            payment_method=method,
            amount_due_at_confirmation=confirmation_amount(sale, plan),
            plan=plan,
        )


class ListInstallmentsHandler(QueryHandler[ListInstallmentsQuery, list[InstallmentPaymentEntity]]):
    def __init__(self, repo: InstallmentPaymentRepository):
        self.repo = repo

    def handle(self, q: ListInstallmentsQuery) -> list[InstallmentPaymentEntity]:
        return self.repo.list_by_sale(str(q.sale_id))


class GetInstallmentStatsHandler(QueryHandler[GetInstallmentStatsQuery, InstallmentStats]):
    def __init__(
        self,
        sale_repo: SaleRepository,
        installment_repo: InstallmentPaymentRepository,
        plan_service: SalePlanService,
    ):
        self.sales = sale_repo
        self.installments = installment_repo
        self.plans = plan_service

    def handle(self, q: GetInstallmentStatsQuery) -> InstallmentStats:
        sale = _require_sale(self.sales, q.sale_id)
        plan = self.plans.plan_for(sale)
        advance = plan.advance_after_deposit if plan is not None else ZERO
        return installment_stats(
            sale,
            self.installments.list_by_sale(str(sale.id)),
            advance,
            q.today or timezone.localdate(),
        )


class ListOverdueSalesHandler(QueryHandler[ListOverdueSalesQuery, list[SaleLine]]):
    def __init__(self, repo: SaleRepository):
        self.repo = repo

    def handle(self, q: ListOverdueSalesQuery) -> list[SaleLine]:
        today = q.today or timezone.localdate()
        lines = [build_line(row, today) for row in self.repo.list_past_deadline(today)]
        return sorted((line for line in lines if line.overdue), key=lambda line: -line.overdue_days)
