# portal_messaging/infrastructure/database/base_model.py
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

# BIGINT no postgres; no sqlite precisa ser INTEGER para autoincrementar
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class BaseModel(DeclarativeBase):
    pass
