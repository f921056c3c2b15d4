# portal_messaging/repositories/conversation_participant_repository.py
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, aliased

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)
from portal_messaging.infrastructure.database.models.message_model import MessageModel
from portal_messaging.infrastructure.database.models.role_model import RoleModel
from portal_messaging.infrastructure.database.models.user_model import UserModel
from portal_messaging.infrastructure.database.base_model import utcnow


class ConversationParticipantRepository(BaseRepository[ConversationParticipantModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, *, conversation_id: int, user_id: int) -> ConversationParticipantModel | None:
        stmt = select(ConversationParticipantModel).where(
            ConversationParticipantModel.conversation_id == conversation_id,
            ConversationParticipantModel.user_id == user_id,
        )
        return self._session.execute(stmt).scalars().first()

    def add_many(self, *, conversation_id: int, user_ids: list[int], last_read: datetime | None = None) -> int:
        """
        Insere participantes ignorando os que já existem. Retorna quantos entraram.
        last_read padrão = agora (nada anterior conta como não lido).
        """
        if not user_ids:
            return 0
        now = utcnow()
        values = [
            {"conversation_id": conversation_id, "user_id": int(uid), "last_read": last_read or now, "joined_at": now}
            for uid in dict.fromkeys(int(u) for u in user_ids)
        ]
        stmt = self._insert(ConversationParticipantModel).values(values).on_conflict_do_nothing(
            index_elements=["conversation_id", "user_id"]
        )
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)

    def list_user_ids(self, conversation_id: int) -> list[int]:
        stmt = (
            select(ConversationParticipantModel.user_id)
            .where(ConversationParticipantModel.conversation_id == conversation_id)
            .order_by(ConversationParticipantModel.joined_at.asc(), ConversationParticipantModel.user_id.asc())
        )
        return [int(x) for x in self._session.execute(stmt).scalars().all()]

    def list_rows_by_conversation_ids(self, conversation_ids: list[int]):
        """{conversation_id: [(participant, user, role_name), ...]}"""
        if not conversation_ids:
            return {}
        user = aliased(UserModel)
        stmt = (
            select(ConversationParticipantModel, user, RoleModel.name)
            .join(user, user.id == ConversationParticipantModel.user_id)
            .join(RoleModel, RoleModel.id == user.role_id)
            .where(ConversationParticipantModel.conversation_id.in_(conversation_ids))
            .order_by(ConversationParticipantModel.joined_at.asc(), ConversationParticipantModel.user_id.asc())
        )
        grouped: dict[int, list] = {}
        for part, u, role_name in self._session.execute(stmt).all():
            grouped.setdefault(int(part.conversation_id), []).append((part, u, role_name))
        return grouped

    def advance_last_read(self, *, conversation_id: int, user_id: int, at: datetime) -> bool:
        # só avança; nunca volta a marca d'água
        stmt = (
            update(ConversationParticipantModel)
            .where(
                ConversationParticipantModel.conversation_id == conversation_id,
                ConversationParticipantModel.user_id == user_id,
                ConversationParticipantModel.last_read < at,
            )
            .values(last_read=at)
            # SQLite devolve datetime sem tz; o avaliador em memória do ORM não compara com `at`
            .execution_options(synchronize_session="fetch")
        )
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0

    def delete_by_conversation(self, conversation_id: int) -> int:
        stmt = delete(ConversationParticipantModel).where(
            ConversationParticipantModel.conversation_id == conversation_id
        )
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)

    def unread_stats(
        self,
        *,
        user_id: int,
        sender_roles_in: list[str] | None = None,
        sender_roles_not_in: list[str] | None = None,
    ) -> tuple[int, datetime | None]:
        """
        (quantidade, data da mais recente) das mensagens não lidas pelo usuário
        em todas as conversas onde ele participa, usando last_read.
        """
        stmt = (
            select(
                func.count(MessageModel.id),
                func.max(MessageModel.created_at),
            )
            .select_from(MessageModel)
            .join(
                ConversationParticipantModel,
                ConversationParticipantModel.conversation_id == MessageModel.conversation_id,
            )
            .where(
                ConversationParticipantModel.user_id == user_id,
                # não contar mensagens do próprio usuário
                MessageModel.sender_id != user_id,
                # mensagens depois da última leitura
                MessageModel.created_at > ConversationParticipantModel.last_read,
            )
        )

        if sender_roles_in is not None or sender_roles_not_in is not None:
            sender = aliased(UserModel)
            stmt = stmt.join(sender, sender.id == MessageModel.sender_id).join(
                RoleModel, RoleModel.id == sender.role_id
            )
            if sender_roles_in is not None:
                stmt = stmt.where(RoleModel.name.in_(sender_roles_in))
            if sender_roles_not_in is not None:
                stmt = stmt.where(RoleModel.name.not_in(sender_roles_not_in))

        count, latest = self._session.execute(stmt).one()
        return int(count or 0), latest
