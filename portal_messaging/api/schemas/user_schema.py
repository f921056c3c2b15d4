# portal_messaging/api/schemas/user_schema.py
from pydantic import BaseModel


class UserMiniResponse(BaseModel):
    id: int
    full_name: str | None = None
    email: str
    role: str | None = None


def user_mini(user, role_name: str | None = None) -> UserMiniResponse:
    return UserMiniResponse(
        id=int(user.id),
        full_name=user.full_name,
        email=user.email,
        role=role_name,
    )
