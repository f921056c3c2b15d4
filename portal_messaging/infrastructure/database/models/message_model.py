# portal_messaging/infrastructure/database/models/message_model.py

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class MessageModel(BaseModel):
    __tablename__ = "tbMessages"
    __table_args__ = (
        Index("ix_tbMessages_conversation_created", "conversation_id", "created_at"),
        Index("ix_tbMessages_group_created", "group_id", "created_at"),
        Index("ix_tbMessages_broadcast_created", "broadcast_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    # exatamente um dos três (ThreadRef); o banco não garante o XOR
    conversation_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbConversations.id"), nullable=True
    )
    group_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbGroups.id"), nullable=True
    )
    broadcast_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbBroadcasts.id"), nullable=True
    )

    sender_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), nullable=False
    )

    # pode ser "" desde que tenha anexos
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # lista ordenada de referências opacas (URL / chave de storage)
    attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    edited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
