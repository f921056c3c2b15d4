# portal_messaging/api/schemas/message_schema.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from portal_messaging.api.schemas._datetime_serializer import serialize_dt
from portal_messaging.api.schemas.user_schema import UserMiniResponse, user_mini
from portal_messaging.entities.thread_ref import ThreadRef


class SeenByResponse(BaseModel):
    user: UserMiniResponse
    read_at: datetime

    @field_serializer("read_at")
    def serialize_read_at(self, value: datetime):
        return serialize_dt(value)


class MessageResponse(BaseModel):
    id: int
    thread_kind: str
    thread_id: int

    content: str
    attachments: List[str] = []

    created_at: datetime
    edited_at: Optional[datetime] = None

    sender: UserMiniResponse
    seen_by: List[SeenByResponse] = []

    @field_serializer("created_at", "edited_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class CreateMessageRequest(BaseModel):
    content: Optional[str] = Field(default="", max_length=10000)
    attachments: List[str] = Field(default_factory=list, max_length=20)


class EditMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=10000)


def build_message_response(view: dict) -> MessageResponse:
    msg = view["msg"]
    thread = ThreadRef.of(msg)
    return MessageResponse(
        id=msg.id,
        thread_kind=thread.kind.value,
        thread_id=thread.id,
        content=msg.content or "",
        attachments=list(msg.attachments or []),
        created_at=msg.created_at,
        edited_at=msg.edited_at,
        sender=user_mini(view["sender"], view.get("sender_role")),
        seen_by=[
            SeenByResponse(user=user_mini(user), read_at=receipt.read_at)
            for receipt, user in view.get("seen_by", [])
        ],
    )


def message_to_response(view: dict) -> dict:
    return build_message_response(view).model_dump()
