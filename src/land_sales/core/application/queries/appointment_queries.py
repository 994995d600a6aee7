from dataclasses import dataclass

from land_sales.core.application.cqrs import PaginatedQueryDTO


@dataclass(frozen=True)
class GetAppointmentQuery:
    id: str

class ListAppointmentsQuery(PaginatedQueryDTO[dict]):
    pass
