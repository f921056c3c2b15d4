# portal_messaging/repositories/group_repository.py

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.group_member_model import GroupMemberModel
from portal_messaging.infrastructure.database.models.group_model import GroupModel


class GroupRepository(BaseRepository[GroupModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_by_id(self, group_id: int) -> GroupModel | None:
        stmt = select(GroupModel).where(GroupModel.id == group_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[GroupModel]:
        stmt = select(GroupModel).order_by(GroupModel.created_at.desc(), GroupModel.id.desc())
        return list(self._session.execute(stmt).scalars().all())

    def list_visible_to(self, user_id: int) -> list[GroupModel]:
        # criados pelo usuário ou onde ele é membro
        member_of = select(GroupMemberModel.group_id).where(GroupMemberModel.user_id == user_id)
        stmt = (
            select(GroupModel)
            .where(or_(GroupModel.created_by == user_id, GroupModel.id.in_(member_of)))
            .order_by(GroupModel.created_at.desc(), GroupModel.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def add(self, model: GroupModel) -> GroupModel:
        self._session.add(model)
        self._session.flush()
        return model

    def delete(self, group_id: int) -> bool:
        stmt = delete(GroupModel).where(GroupModel.id == group_id)
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0
