# portal_messaging/api/schemas/notification_schema.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_serializer

from portal_messaging.api.schemas._datetime_serializer import serialize_dt


class UnreadSummaryResponse(BaseModel):
    role: str
    bucket: str
    count: int
    latest_at: Optional[datetime] = None

    @field_serializer("latest_at")
    def serialize_latest_at(self, value: datetime | None):
        return serialize_dt(value)
