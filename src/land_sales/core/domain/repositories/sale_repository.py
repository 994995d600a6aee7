from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from land_sales.core.application.cqrs import PagedResult
from land_sales.core.application.dtos.sale_row_dto import SaleRowDTO
from land_sales.core.domain.entities.sale_entity import SaleEntity


class SaleRepository(ABC):
    # ───────────── leitura de entidade ─────────────
    @abstractmethod
    def find_by_id(self, sale_id: str) -> SaleEntity | None:
        ...

    @abstractmethod
    def has_active_sale(self, parcel_id: str) -> bool:
        """True se o lote já possui venda não cancelada."""
        ...

    # ───────────── escrita ─────────────
    @abstractmethod
    def create(self, **fields: Any) -> SaleEntity:
        ...

    @abstractmethod
    def compare_and_set(self, sale_id: str, *, expected: SaleEntity, changes: dict[str, Any]) -> int:
        """
        Aplica `changes` somente se a linha ainda for a lida no início da
        transição (status, forma de pagamento, oferta, valores e `updated_at`).
        Retorna o número de linhas afetadas (0 = conflito).
        """
        ...

    @abstractmethod
    def delete(self, sale_id: str, *, expected_status: str) -> int:
        ...

    # ───────────── consultas (store adapter) ─────────────
    @abstractmethod
    def find_row(self, sale_id: str) -> SaleRowDTO | None:
        ...

    @abstractmethod
    def list_rows(self, filtros: dict[str, Any] | None, page: int, page_size: int) -> PagedResult[SaleRowDTO]:
        """
        Vendas com cliente/lote/loteamento/oferta já carregados, paginadas por offset.

        Filtros aceitos: `status`, `batch_id`, `payment_method`, `client_id`.
        Ordenação: sale_date desc, updated_at desc.
        """
        ...

    @abstractmethod
    def load_rows(self, filtros: dict[str, Any] | None, limit: int) -> list[SaleRowDTO]:
        """Carrega até `limit` linhas para agrupamento no cliente."""
        ...

    @abstractmethod
    def list_past_deadline(self, today: date) -> list[SaleRowDTO]:
        """Vendas pendentes com prazo vencido."""
        ...
