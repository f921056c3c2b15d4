# portal_messaging/infrastructure/database/models/conversation_participant_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class ConversationParticipantModel(BaseModel):
    __tablename__ = "tbConversationParticipants"

    conversation_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbConversations.id"), primary_key=True
    )

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), primary_key=True
    )

    # marca d'água de leitura (contagem de não lidas)
    last_read: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
