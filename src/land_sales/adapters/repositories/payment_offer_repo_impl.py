from land_sales.core.domain.entities.payment_offer_entity import PaymentOfferEntity
from land_sales.core.domain.repositories.payment_offer_repository import PaymentOfferRepository
from plugins.django_interface.models import PaymentOffer as PaymentOfferModel


class PaymentOfferRepoImpl(PaymentOfferRepository):
    def find_by_id(self, offer_id: str) -> PaymentOfferEntity | None:
        try:
            return PaymentOfferEntity.from_model(PaymentOfferModel.objects.get(id=offer_id))
        except PaymentOfferModel.DoesNotExist:
            return None

    def find_default_for(self, parcel_id: str, batch_id: str) -> PaymentOfferEntity | None:
        obj = (
            PaymentOfferModel.objects.filter(land_piece_id=parcel_id)
            .order_by("-is_default", "created_at")
            .first()
        )
        if obj is None:
            obj = (
                PaymentOfferModel.objects.filter(batch_id=batch_id, land_piece__isnull=True)
                .order_by("-is_default", "created_at")
                .first()
            )
        return PaymentOfferEntity.from_model(obj) if obj else None
