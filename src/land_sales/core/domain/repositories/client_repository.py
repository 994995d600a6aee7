from abc import ABC, abstractmethod

from land_sales.core.domain.entities.client_entity import ClientEntity


class ClientRepository(ABC):
    @abstractmethod
    def find_by_id(self, client_id: str) -> ClientEntity | None:
        ...
