from abc import ABC, abstractmethod

from land_sales.core.domain.entities.payment_offer_entity import PaymentOfferEntity


class PaymentOfferRepository(ABC):
    @abstractmethod
    def find_by_id(self, offer_id: str) -> PaymentOfferEntity | None:
        ...

    @abstractmethod
    def find_default_for(self, parcel_id: str, batch_id: str) -> PaymentOfferEntity | None:
        """Oferta do lote; senão a oferta padrão do loteamento."""
        ...
