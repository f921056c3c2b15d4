# portal_messaging/repositories/conversation_repository.py
from datetime import datetime

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.conversation_model import ConversationModel
from portal_messaging.infrastructure.database.models.conversation_participant_model import (
    ConversationParticipantModel,
)


def direct_key_for(user_a: int, user_b: int) -> str:
    # par não ordenado -> chave única "<menor>:<maior>"
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


class ConversationRepository(BaseRepository[ConversationModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def _order_by_last_activity(self):
        # ORDER BY COALESCE(updated_at, created_at) DESC
        return func.coalesce(ConversationModel.updated_at, ConversationModel.created_at).desc()

    def get_by_id(self, conversation_id: int) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.id == conversation_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_application_id(self, application_id: int) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.application_id == application_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_direct_key(self, direct_key: str) -> ConversationModel | None:
        stmt = select(ConversationModel).where(ConversationModel.direct_key == direct_key)
        return self._session.execute(stmt).scalar_one_or_none()

    def find_direct_between(self, user_a: int, user_b: int) -> ConversationModel | None:
        """
        Conversa ad-hoc (sem dossier) cujo conjunto de participantes é
        exatamente {user_a, user_b}: nem subconjunto, nem superconjunto.
        """
        pair = [int(user_a), int(user_b)]
        exact_pair = (
            select(ConversationParticipantModel.conversation_id)
            .group_by(ConversationParticipantModel.conversation_id)
            .having(
                func.count() == 2,
                func.sum(case((ConversationParticipantModel.user_id.in_(pair), 1), else_=0)) == 2,
            )
        )
        stmt = (
            select(ConversationModel)
            .where(
                ConversationModel.application_id.is_(None),
                ConversationModel.id.in_(exact_pair),
            )
            .order_by(ConversationModel.id.asc())
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def list_all(self, limit: int = 50, offset: int = 0) -> list[ConversationModel]:
        stmt = (
            select(ConversationModel)
            .order_by(self._order_by_last_activity(), ConversationModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_for_participant(self, user_id: int, limit: int = 50, offset: int = 0) -> list[ConversationModel]:
        mine = select(ConversationParticipantModel.conversation_id).where(
            ConversationParticipantModel.user_id == user_id
        )
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.id.in_(mine))
            .order_by(self._order_by_last_activity(), ConversationModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self._session.execute(stmt).scalars().all())

    def add(self, model: ConversationModel) -> ConversationModel:
        self._session.add(model)
        self._session.flush()
        return model

    def touch(self, conversation_id: int, at: datetime) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=at)
        )
        self._session.execute(stmt)

    def clear_direct_key(self, conversation_id: int) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(direct_key=None)
        )
        self._session.execute(stmt)

    def delete(self, conversation_id: int) -> bool:
        stmt = delete(ConversationModel).where(ConversationModel.id == conversation_id)
        res = self._session.execute(stmt)
        return (res.rowcount or 0) > 0
