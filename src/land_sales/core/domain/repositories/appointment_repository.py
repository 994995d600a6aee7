from abc import ABC, abstractmethod
from typing import Any

from land_sales.core.application.cqrs import PagedResult
from land_sales.core.domain.entities.appointment_entity import AppointmentEntity


class AppointmentRepository(ABC):
    @abstractmethod
    def create(self, appointment: AppointmentEntity) -> AppointmentEntity:
        ...

    @abstractmethod
    def find_by_id(self, appointment_id: str) -> AppointmentEntity | None:
        ...

    @abstractmethod
    def compare_and_update(self, appointment_id: str, *, expected_status: str, changes: dict[str, Any]) -> int:
        """Atualiza somente se o status ainda for `expected_status`."""
        ...

    @abstractmethod
    def delete(self, appointment_id: str) -> int:
        ...

    @abstractmethod
    def list(self, filtros: dict[str, Any] | None, page: int, page_size: int) -> PagedResult[AppointmentEntity]:
        """
        Filtros aceitos: `sale_id`, `client_id`, `status`,
        `date_from`, `date_to` (intervalo de appointment_date).
        """
        ...
