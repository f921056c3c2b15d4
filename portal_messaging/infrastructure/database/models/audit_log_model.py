# portal_messaging/infrastructure/database/models/audit_log_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class AuditLogModel(BaseModel):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    entity_name: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(BigIntId, nullable=True)

    action_name: Mapped[str] = mapped_column(String(30), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("tbUsers.id"), nullable=True)
