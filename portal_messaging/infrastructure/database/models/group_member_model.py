# portal_messaging/infrastructure/database/models/group_member_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class GroupMemberModel(BaseModel):
    __tablename__ = "tbGroupMembers"

    group_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbGroups.id"), primary_key=True
    )

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), primary_key=True
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
