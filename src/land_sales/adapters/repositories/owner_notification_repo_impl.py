from typing import Any

from django.db import transaction

from land_sales.core.domain.repositories.owner_notification_repository import (
    OwnerNotificationRepository,
)
from plugins.django_interface.models import OwnerNotification as OwnerNotificationModel
from plugins.django_interface.models import User as UserModel


class OwnerNotificationRepoImpl(OwnerNotificationRepository):
    @transaction.atomic
    def create_for_owners(
        self,
        *,
        event_type: str,
        title: str,
        message: str,
        entity_type: str | None,
        entity_id: str | None,
        metadata: dict[str, Any],
    ) -> int:
        owners = UserModel.objects.filter(role=UserModel.Role.OWNER, is_active=True).only("id")
        objs = [
            OwnerNotificationModel(
                user_id=owner.id,
                type=event_type,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=metadata,
            )
            for owner in owners
        ]
        return len(OwnerNotificationModel.objects.bulk_create(objs))
