import uuid
from dataclasses import dataclass

from land_sales.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ClientEntity(EntityMixin):
    id: uuid.UUID
    name: str
    id_number: str | None = None
    phone: str | None = None
    email: str | None = None
