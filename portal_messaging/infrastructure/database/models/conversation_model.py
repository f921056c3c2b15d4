# portal_messaging/infrastructure/database/models/conversation_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class ConversationModel(BaseModel):
    __tablename__ = "tbConversations"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    # no máximo uma conversa por dossier
    application_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbApplications.id"), nullable=True, unique=True
    )

    # "<menor_id>:<maior_id>" só para conversa direta ad-hoc com exatamente 2 participantes
    direct_key: Mapped[str] = mapped_column(String(64), nullable=True, unique=True)

    subject: Mapped[str] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
