from abc import ABC, abstractmethod
from typing import Any


class OwnerNotificationRepository(ABC):
    @abstractmethod
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
        """Cria uma notificação por proprietário ativo. Retorna quantas foram criadas."""
        ...
