# portal_messaging/api/schemas/broadcast_schema.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from portal_messaging.api.schemas._datetime_serializer import serialize_dt
from portal_messaging.api.schemas.user_schema import UserMiniResponse, user_mini


class CreateBroadcastRequest(BaseModel):
    name: str = Field(max_length=150)
    recipient_ids: List[int] = []


class AddRecipientsRequest(BaseModel):
    recipient_ids: List[int] = []


class BroadcastResponse(BaseModel):
    id: int
    name: str
    created_by: int
    created_at: datetime

    # vazio / None para quem não gerencia a diffusion
    recipients: List[UserMiniResponse] = []
    recipient_count: Optional[int] = None
    is_recipient: bool
    can_manage: bool

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime):
        return serialize_dt(value)


def broadcast_to_response(view: dict) -> dict:
    bc = view["broadcast"]
    return BroadcastResponse(
        id=bc.id,
        name=bc.name,
        created_by=bc.created_by,
        created_at=bc.created_at,
        recipients=[user_mini(u, role_name) for u, role_name in view["recipients"]],
        recipient_count=view["recipient_count"],
        is_recipient=view["is_recipient"],
        can_manage=view["can_manage"],
    ).model_dump()
