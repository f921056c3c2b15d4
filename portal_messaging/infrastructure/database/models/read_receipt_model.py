# portal_messaging/infrastructure/database/models/read_receipt_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class ReadReceiptModel(BaseModel):
    __tablename__ = "tbReadReceipts"

    message_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbMessages.id"), primary_key=True
    )

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), primary_key=True
    )

    read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
