# portal_messaging/repositories/message_repository.py
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, aliased

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.entities.thread_ref import ThreadRef
from portal_messaging.infrastructure.database.models.message_model import MessageModel
from portal_messaging.infrastructure.database.models.role_model import RoleModel
from portal_messaging.infrastructure.database.models.user_model import UserModel


class MessageRepository(BaseRepository[MessageModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def _thread_column(self, thread: ThreadRef):
        return getattr(MessageModel, thread.column)

    def add(self, model: MessageModel) -> MessageModel:
        # garante o XOR conversation/group/broadcast antes de gravar
        ThreadRef.of(model)
        self._session.add(model)
        self._session.flush()
        return model

    def get_by_id(self, message_id: int) -> MessageModel | None:
        stmt = select(MessageModel).where(MessageModel.id == message_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_row(self, *, message_id: int):
        sender = aliased(UserModel)
        stmt = (
            select(MessageModel, sender, RoleModel.name)
            .join(sender, sender.id == MessageModel.sender_id)
            .join(RoleModel, RoleModel.id == sender.role_id)
            .where(MessageModel.id == message_id)
        )
        return self._session.execute(stmt).first()  # (msg, sender, role_name) | None

    def list_rows_by_thread(self, thread: ThreadRef, *, limit: int | None = None, offset: int = 0):
        sender = aliased(UserModel)
        stmt = (
            select(MessageModel, sender, RoleModel.name)
            .join(sender, sender.id == MessageModel.sender_id)
            .join(RoleModel, RoleModel.id == sender.role_id)
            .where(self._thread_column(thread) == thread.id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.execute(stmt).all())

    def list_ids_not_sent_by(self, thread: ThreadRef, *, user_id: int) -> list[int]:
        stmt = select(MessageModel.id).where(
            self._thread_column(thread) == thread.id,
            MessageModel.sender_id != user_id,
        )
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def list_ids_by_thread(self, thread: ThreadRef) -> list[int]:
        stmt = select(MessageModel.id).where(self._thread_column(thread) == thread.id)
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def latest_by_conversation_ids(self, conversation_ids: list[int]) -> dict[int, MessageModel]:
        if not conversation_ids:
            return {}
        newest = (
            select(
                MessageModel.conversation_id.label("conversation_id"),
                func.max(MessageModel.created_at).label("created_at"),
            )
            .where(MessageModel.conversation_id.in_(conversation_ids))
            .group_by(MessageModel.conversation_id)
            .subquery()
        )
        stmt = (
            select(MessageModel)
            .join(
                newest,
                (newest.c.conversation_id == MessageModel.conversation_id)
                & (newest.c.created_at == MessageModel.created_at),
            )
            .order_by(MessageModel.id.asc())
        )
        out: dict[int, MessageModel] = {}
        for msg in self._session.execute(stmt).scalars().all():
            # empate no created_at: fica o de maior id
            out[int(msg.conversation_id)] = msg
        return out

    def update_content(self, *, message_id: int, content: str, edited_at: datetime) -> bool:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(content=content, edited_at=edited_at)
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def delete_by_ids(self, message_ids: list[int]) -> int:
        if not message_ids:
            return 0
        stmt = delete(MessageModel).where(MessageModel.id.in_(message_ids))
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)
