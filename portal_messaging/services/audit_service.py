# portal_messaging/services/audit_service.py

import logging

from portal_messaging.infrastructure.database.models.audit_log_model import AuditLogModel
from portal_messaging.repositories.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, repo: AuditLogRepository) -> None:
        self._repo = repo

    def log(
        self,
        *,
        entity_name: str,
        action_name: str,
        user_id: int | None,
        entity_id: int | None = None,
        details: str | None = None,
    ) -> None:
        model = AuditLogModel(
            entity_name=str(entity_name),
            entity_id=entity_id,
            action_name=str(action_name),
            details=details,
            user_id=user_id,
        )
        self._repo.add(model)
        logger.debug("audit %s.%s id=%s user_id=%s", entity_name, action_name, entity_id, user_id)
