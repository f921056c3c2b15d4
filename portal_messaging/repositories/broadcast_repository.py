# portal_messaging/repositories/broadcast_repository.py

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.broadcast_model import BroadcastModel
from portal_messaging.infrastructure.database.models.broadcast_recipient_model import (
    BroadcastRecipientModel,
)


class BroadcastRepository(BaseRepository[BroadcastModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_by_id(self, broadcast_id: int) -> BroadcastModel | None:
        stmt = select(BroadcastModel).where(BroadcastModel.id == broadcast_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[BroadcastModel]:
        stmt = select(BroadcastModel).order_by(BroadcastModel.created_at.desc(), BroadcastModel.id.desc())
        return list(self._session.execute(stmt).scalars().all())

    def list_created_by(self, user_id: int) -> list[BroadcastModel]:
        stmt = (
            select(BroadcastModel)
            .where(BroadcastModel.created_by == user_id)
            .order_by(BroadcastModel.created_at.desc(), BroadcastModel.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_created_or_received_by(self, user_id: int) -> list[BroadcastModel]:
        received = select(BroadcastRecipientModel.broadcast_id).where(BroadcastRecipientModel.user_id == user_id)
        stmt = (
            select(BroadcastModel)
            .where(or_(BroadcastModel.created_by == user_id, BroadcastModel.id.in_(received)))
            .order_by(BroadcastModel.created_at.desc(), BroadcastModel.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def add(self, model: BroadcastModel) -> BroadcastModel:
        self._session.add(model)
        self._session.flush()
        return model

    def delete(self, broadcast_id: int) -> bool:
        stmt = delete(BroadcastModel).where(BroadcastModel.id == broadcast_id)
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0
