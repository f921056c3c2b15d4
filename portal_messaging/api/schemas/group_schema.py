# portal_messaging/api/schemas/group_schema.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_serializer

from portal_messaging.api.schemas._datetime_serializer import serialize_dt
from portal_messaging.api.schemas.user_schema import UserMiniResponse, user_mini


class CreateGroupRequest(BaseModel):
    name: str = Field(max_length=150)
    member_ids: List[int] = []


class AddMembersRequest(BaseModel):
    member_ids: List[int] = []


class GroupResponse(BaseModel):
    id: int
    name: str
    created_by: int
    created_at: datetime

    members: List[UserMiniResponse] = []
    member_count: int
    is_member: bool
    can_manage: bool

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime):
        return serialize_dt(value)


def group_to_response(view: dict) -> dict:
    group = view["group"]
    return GroupResponse(
        id=group.id,
        name=group.name,
        created_by=group.created_by,
        created_at=group.created_at,
        members=[user_mini(u, role_name) for u, role_name in view["members"]],
        member_count=view["member_count"],
        is_member=view["is_member"],
        can_manage=view["can_manage"],
    ).model_dump()
