from collections.abc import Iterable

from django.utils import timezone

from land_sales.core.domain.entities.parcel_entity import BatchEntity, ParcelEntity
from land_sales.core.domain.repositories.parcel_repository import ParcelRepository
from plugins.django_interface.models import LandBatch as LandBatchModel
from plugins.django_interface.models import LandPiece as LandPieceModel


class ParcelRepoImpl(ParcelRepository):
    def find_by_id(self, parcel_id: str) -> ParcelEntity | None:
        try:
            return ParcelEntity.from_model(LandPieceModel.objects.get(id=parcel_id))
        except LandPieceModel.DoesNotExist:
            return None

    def find_batch(self, batch_id: str) -> BatchEntity | None:
        try:
            return BatchEntity.from_model(LandBatchModel.objects.get(id=batch_id))
        except LandBatchModel.DoesNotExist:
            return None

    def compare_and_set_status(self, parcel_id: str, expected: Iterable[str], target: str) -> int:
        return LandPieceModel.objects.filter(id=parcel_id, status__in=list(expected)).update(
            status=target, updated_at=timezone.now()
        )
