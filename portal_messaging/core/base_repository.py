from typing import Generic, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, SessionTransaction

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):
    def __init__(self, session: Session) -> None:
        self._session = session

    def savepoint(self) -> SessionTransaction:
        # SAVEPOINT dentro da transação da request (db_session)
        return self._session.begin_nested()

    def _insert(self, table):
        # INSERT com suporte a ON CONFLICT (postgres em produção, sqlite local/testes)
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Dialeto sem suporte a ON CONFLICT: {dialect}")
