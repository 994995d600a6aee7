from land_sales.core.domain.entities.user_entity import UserEntity
from land_sales.core.domain.repositories.user_repository import UserRepository
from plugins.django_interface.models import User as UserModel


class UserRepoImpl(UserRepository):
    def find_by_id(self, user_id: str) -> UserEntity | None:
        try:
            return UserEntity.from_model(UserModel.objects.get(id=user_id))
        except UserModel.DoesNotExist:
            return None

    def list_owners(self) -> list[UserEntity]:
        qs = UserModel.objects.filter(role=UserModel.Role.OWNER, is_active=True).order_by("name")
        return [UserEntity.from_model(u) for u in qs]
