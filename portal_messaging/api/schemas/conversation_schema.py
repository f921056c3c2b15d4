# portal_messaging/api/schemas/conversation_schema.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from portal_messaging.api.schemas._datetime_serializer import serialize_dt
from portal_messaging.api.schemas.message_schema import MessageResponse, build_message_response
from portal_messaging.api.schemas.user_schema import UserMiniResponse, user_mini


class ParticipantResponse(BaseModel):
    user: UserMiniResponse
    joined_at: datetime
    last_read: datetime

    @field_serializer("joined_at", "last_read")
    def serialize_dates(self, value: datetime):
        return serialize_dt(value)


class ConversationResponse(BaseModel):
    id: int
    application_id: Optional[int] = None
    subject: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    participants: List[ParticipantResponse] = []
    last_message_preview: Optional[str] = None
    last_message_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at", "last_message_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class ConversationDetailResponse(ConversationResponse):
    messages: List[MessageResponse] = []


class StartConversationRequest(BaseModel):
    participant_id: int
    subject: Optional[str] = Field(default=None, max_length=200)


class AdvanceLastReadRequest(BaseModel):
    at: Optional[datetime] = None


def build_conversation_response(view: dict) -> ConversationResponse:
    conv = view["conversation"]
    return ConversationResponse(
        id=conv.id,
        application_id=conv.application_id,
        subject=conv.subject,
        created_at=conv.created_at,
        updated_at=conv.updated_at,
        participants=[
            ParticipantResponse(user=user_mini(u, role_name), joined_at=part.joined_at, last_read=part.last_read)
            for part, u, role_name in view["participants"]
        ],
        last_message_preview=view.get("preview"),
        last_message_at=view.get("last_message_at"),
    )


def conversation_to_response(view: dict) -> dict:
    return build_conversation_response(view).model_dump()


def conversation_detail_to_response(view: dict) -> dict:
    summary = build_conversation_response(view)
    return ConversationDetailResponse(
        **dict(summary),
        messages=[build_message_response(m) for m in view.get("messages", [])],
    ).model_dump()
