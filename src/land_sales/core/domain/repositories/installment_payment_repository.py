from abc import ABC, abstractmethod
from collections.abc import Sequence

from land_sales.core.domain.entities.installment_payment_entity import InstallmentPaymentEntity


class InstallmentPaymentRepository(ABC):
    @abstractmethod
    def list_by_sale(self, sale_id: str) -> list[InstallmentPaymentEntity]:
        """Parcelas ordenadas por número."""
        ...

    @abstractmethod
    def bulk_create(self, rows: Sequence[InstallmentPaymentEntity]) -> int:
        ...

    @abstractmethod
    def delete_by_sale(self, sale_id: str) -> int:
        ...

    @abstractmethod
    def save_payments(
        self, pairs: Sequence[tuple[InstallmentPaymentEntity, InstallmentPaymentEntity]]
    ) -> int:
        """
        Persiste amount_paid / paid_date / status de cada par (lida, nova), somente
        se a parcela ainda estiver como lida. Retorna quantas linhas foram gravadas.
        """
        ...
