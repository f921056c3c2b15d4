# portal_messaging/repositories/read_receipt_repository.py
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, aliased

from portal_messaging.core.base_repository import BaseRepository
from portal_messaging.infrastructure.database.models.read_receipt_model import ReadReceiptModel
from portal_messaging.infrastructure.database.models.user_model import UserModel


class ReadReceiptRepository(BaseRepository[ReadReceiptModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def upsert_many(self, *, message_ids: list[int], user_id: int, read_at: datetime) -> int:
        """Cria ou atualiza (message_id, user_id) -> read_at. Idempotente."""
        if not message_ids:
            return 0
        values = [
            {"message_id": int(mid), "user_id": int(user_id), "read_at": read_at}
            for mid in dict.fromkeys(message_ids)
        ]
        stmt = self._insert(ReadReceiptModel).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["message_id", "user_id"],
            set_={"read_at": stmt.excluded.read_at},
        )
        self._session.execute(stmt)
        return len(values)

    def list_rows_by_message_ids(self, message_ids: list[int]) -> dict[int, list]:
        """{message_id: [(receipt, user), ...]} para o "vu par"."""
        if not message_ids:
            return {}
        reader = aliased(UserModel)
        stmt = (
            select(ReadReceiptModel, reader)
            .join(reader, reader.id == ReadReceiptModel.user_id)
            .where(ReadReceiptModel.message_id.in_(message_ids))
            .order_by(ReadReceiptModel.read_at.asc(), ReadReceiptModel.user_id.asc())
        )
        grouped: dict[int, list] = {}
        for receipt, user in self._session.execute(stmt).all():
            grouped.setdefault(int(receipt.message_id), []).append((receipt, user))
        return grouped

    def delete_by_message_ids(self, message_ids: list[int]) -> int:
        if not message_ids:
            return 0
        stmt = delete(ReadReceiptModel).where(ReadReceiptModel.message_id.in_(message_ids))
        res = self._session.execute(stmt)
        return int(res.rowcount or 0)
