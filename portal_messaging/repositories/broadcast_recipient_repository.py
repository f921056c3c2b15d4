# portal_messaging/repositories/broadcast_recipient_repository.py

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.base_model import utcnow
from portal_messaging.infrastructure.database.models.broadcast_recipient_model import (
    BroadcastRecipientModel,
)


class BroadcastRecipientRepository(BaseRepository[BroadcastRecipientModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def list_user_ids(self, broadcast_id: int) -> list[int]:
        stmt = (
            select(BroadcastRecipientModel.user_id)
            .where(BroadcastRecipientModel.broadcast_id == broadcast_id)
            .order_by(BroadcastRecipientModel.added_at.asc(), BroadcastRecipientModel.user_id.asc())
        )
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def list_user_ids_by_broadcast_ids(self, broadcast_ids: list[int]) -> dict[int, list[int]]:
        if not broadcast_ids:
            return {}
        stmt = (
            select(BroadcastRecipientModel.broadcast_id, BroadcastRecipientModel.user_id)
            .where(BroadcastRecipientModel.broadcast_id.in_(broadcast_ids))
            .order_by(BroadcastRecipientModel.added_at.asc(), BroadcastRecipientModel.user_id.asc())
        )
        grouped: dict[int, list[int]] = {}
        for broadcast_id, user_id in self._session.execute(stmt).all():
            grouped.setdefault(int(broadcast_id), []).append(int(user_id))
        return grouped

    def add_many(self, *, broadcast_id: int, user_ids: list[int]) -> int:
        if not user_ids:
            return 0
        now = utcnow()
        values = [
            {"broadcast_id": broadcast_id, "user_id": int(uid), "added_at": now}
            for uid in dict.fromkeys(int(u) for u in user_ids)
        ]
        stmt = self._insert(BroadcastRecipientModel).values(values).on_conflict_do_nothing(
            index_elements=["broadcast_id", "user_id"]
        )
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)

    def delete_by_broadcast(self, broadcast_id: int) -> int:
        stmt = delete(BroadcastRecipientModel).where(BroadcastRecipientModel.broadcast_id == broadcast_id)
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)
