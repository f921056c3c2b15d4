# portal_messaging/repositories/user_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.role_model import RoleModel
from portal_messaging.infrastructure.database.models.user_model import UserModel


class UserRepository(BaseRepository[UserModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_row_with_role(self, user_id: int):
        stmt = (
            select(UserModel, RoleModel.name)
            .join(RoleModel, RoleModel.id == UserModel.role_id)
            .where(UserModel.id == user_id)
        )
        return self._session.execute(stmt).first()  # (user, role_name) | None

    def list_rows_with_role(self, user_ids: list[int]):
        if not user_ids:
            return []
        stmt = (
            select(UserModel, RoleModel.name)
            .join(RoleModel, RoleModel.id == UserModel.role_id)
            .where(UserModel.id.in_(user_ids))
            .order_by(UserModel.id.asc())
        )
        return list(self._session.execute(stmt).all())

    def existing_ids(self, user_ids: list[int]) -> set[int]:
        if not user_ids:
            return set()
        stmt = select(UserModel.id).where(UserModel.id.in_(user_ids))
        return {int(x) for x in self._session.execute(stmt).scalars().all()}
