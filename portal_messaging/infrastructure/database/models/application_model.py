# portal_messaging/infrastructure/database/models/application_model.py

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from portal_messaging.infrastructure.database.base_model import BaseModel, BigIntId, utcnow


class ApplicationModel(BaseModel):
    """Dossier de candidature (tabela do portal, somente leitura aqui)."""

    __tablename__ = "tbApplications"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    # estudante dono do dossier
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tbUsers.id"), nullable=False
    )

    status: Mapped[str] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
