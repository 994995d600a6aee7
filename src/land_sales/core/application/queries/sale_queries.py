from dataclasses import dataclass
from datetime import date, datetime

from land_sales.core.application.cqrs import PaginatedQueryDTO


class ListSalesQuery(PaginatedQueryDTO[dict]):
    """Filtros: status, batch_id, payment_method, client_id."""
    pass


@dataclass(frozen=True)
class GetSaleQuery:
    id: str


@dataclass(frozen=True)
class ListConfirmationGroupsQuery(PaginatedQueryDTO[dict]):
    """
    Visão de confirmação agrupada por cliente.
    Filtros: status (padrão pending), batch_id, payment_method, search.
    """
    now: datetime | None = None


@dataclass(frozen=True)
class GetPaymentPlanQuery:
    sale_id: str
    start_date: date | None = None


@dataclass(frozen=True)
class ListInstallmentsQuery:
    sale_id: str


@dataclass(frozen=True)
class GetInstallmentStatsQuery:
    sale_id: str
    today: date | None = None


@dataclass(frozen=True)
class ListOverdueSalesQuery:
    today: date | None = None
