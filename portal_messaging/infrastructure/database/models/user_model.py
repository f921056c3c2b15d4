# portal_messaging/infrastructure/database/models/user_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class UserModel(BaseModel):
    """Tabela do portal (somente leitura para a mensageria)."""

    __tablename__ = "tbUsers"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    full_name: Mapped[str] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)

    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tbRoles.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
