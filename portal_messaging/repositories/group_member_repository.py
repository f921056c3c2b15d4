# portal_messaging/repositories/group_member_repository.py

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.base_model import utcnow
from portal_messaging.infrastructure.database.models.group_member_model import GroupMemberModel


class GroupMemberRepository(BaseRepository[GroupMemberModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def is_member(self, *, group_id: int, user_id: int) -> bool:
        stmt = select(GroupMemberModel.user_id).where(
            GroupMemberModel.group_id == group_id,
            GroupMemberModel.user_id == user_id,
        )
        return self._session.execute(stmt).first() is not None

    def list_user_ids(self, group_id: int) -> list[int]:
        stmt = (
            select(GroupMemberModel.user_id)
            .where(GroupMemberModel.group_id == group_id)
            .order_by(GroupMemberModel.joined_at.asc(), GroupMemberModel.user_id.asc())
        )
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def list_user_ids_by_group_ids(self, group_ids: list[int]) -> dict[int, list[int]]:
        if not group_ids:
            return {}
        stmt = (
            select(GroupMemberModel.group_id, GroupMemberModel.user_id)
            .where(GroupMemberModel.group_id.in_(group_ids))
            .order_by(GroupMemberModel.joined_at.asc(), GroupMemberModel.user_id.asc())
        )
        grouped: dict[int, list[int]] = {}
        for group_id, user_id in self._session.execute(stmt).all():
            grouped.setdefault(int(group_id), []).append(int(user_id))
        return grouped

    def count(self, group_id: int) -> int:
        stmt = select(func.count()).select_from(GroupMemberModel).where(GroupMemberModel.group_id == group_id)
        return int(self._session.execute(stmt).scalar_one())

    def add_many(self, *, group_id: int, user_ids: list[int]) -> int:
        """skipDuplicates: tolera corrida/retentativa."""
        if not user_ids:
            return 0
        now = utcnow()
        values = [
            {"group_id": group_id, "user_id": int(uid), "joined_at": now}
            for uid in dict.fromkeys(int(u) for u in user_ids)
        ]
        stmt = self._insert(GroupMemberModel).values(values).on_conflict_do_nothing(
            index_elements=["group_id", "user_id"]
        )
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)

    def delete_by_group(self, group_id: int) -> int:
        stmt = delete(GroupMemberModel).where(GroupMemberModel.group_id == group_id)
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)
