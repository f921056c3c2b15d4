# portal_messaging/repositories/application_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.application_model import ApplicationModel


class ApplicationRepository(BaseRepository[ApplicationModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_owner_id(self, application_id: int) -> int | None:
        stmt = select(ApplicationModel.user_id).where(ApplicationModel.id == application_id)
        owner = self._session.execute(stmt).scalar_one_or_none()
        return int(owner) if owner is not None else None
