import uuid
from dataclasses import dataclass
from typing import Literal

from land_sales.core.domain.entities._base import EntityMixin

UserRole = Literal["owner", "worker"]


@dataclass(slots=True)
class UserEntity(EntityMixin):
    id: uuid.UUID
    email: str
    name: str
    role: UserRole = "worker"
    is_active: bool = True

    @property
    def is_owner(self) -> bool:
        return self.role == "owner"
