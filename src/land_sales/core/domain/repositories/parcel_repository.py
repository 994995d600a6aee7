from abc import ABC, abstractmethod
from collections.abc import Iterable

from land_sales.core.domain.entities.parcel_entity import BatchEntity, ParcelEntity


class ParcelRepository(ABC):
    @abstractmethod
    def find_by_id(self, parcel_id: str) -> ParcelEntity | None:
        ...

    @abstractmethod
    def find_batch(self, batch_id: str) -> BatchEntity | None:
        ...

    @abstractmethod
    def compare_and_set_status(self, parcel_id: str, expected: Iterable[str], target: str) -> int:
        """
        Atualiza o status do lote somente se o status atual estiver em `expected`.
        Retorna linhas afetadas (0 = lote já reivindicado por outra operação).
        """
        ...
