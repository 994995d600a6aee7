from abc import ABC, abstractmethod

from land_sales.core.domain.entities.user_entity import UserEntity


class UserRepository(ABC):
    @abstractmethod
    def find_by_id(self, user_id: str) -> UserEntity | None:
        ...

    @abstractmethod
    def list_owners(self) -> list[UserEntity]:
        """Usuários ativos com role=owner."""
        ...
