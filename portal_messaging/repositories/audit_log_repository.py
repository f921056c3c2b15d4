# portal_messaging/repositories/audit_log_repository.py

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.audit_log_model import AuditLogModel


class AuditLogRepository(BaseRepository[AuditLogModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def add(self, model: AuditLogModel) -> AuditLogModel:
        self._session.add(model)
        self._session.flush()
        return model

    def list_for_entity(self, *, entity_name: str, entity_id: int) -> list[AuditLogModel]:
        stmt = (
            select(AuditLogModel)
            .where(AuditLogModel.entity_name == entity_name, AuditLogModel.entity_id == entity_id)
            .order_by(AuditLogModel.occurred_at.asc(), AuditLogModel.id.asc())
        )
        return list(self._session.execute(stmt).scalars().all())
