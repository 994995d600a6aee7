from land_sales.core.domain.entities.client_entity import ClientEntity
from land_sales.core.domain.repositories.client_repository import ClientRepository
from plugins.django_interface.models import Client as ClientModel


class ClientRepoImpl(ClientRepository):
    def find_by_id(self, client_id: str) -> ClientEntity | None:
        try:
            return ClientEntity.from_model(ClientModel.objects.get(id=client_id))
        except ClientModel.DoesNotExist:
            return None
