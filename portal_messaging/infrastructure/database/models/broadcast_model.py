# portal_messaging/infrastructure/database/models/broadcast_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class BroadcastModel(BaseModel):
    __tablename__ = "tbBroadcasts"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    created_by: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
