# portal_messaging/infrastructure/database/models/broadcast_recipient_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class BroadcastRecipientModel(BaseModel):
    __tablename__ = "tbBroadcastRecipients"

    broadcast_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbBroadcasts.id"), primary_key=True
    )

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), primary_key=True
    )

    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
