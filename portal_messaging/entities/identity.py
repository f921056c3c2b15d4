# portal_messaging/entities/identity.py
from dataclasses import dataclass

from portal_messaging.core.permissions import RoleName, normalize_role


@dataclass(frozen=True)
class Identity:
    """Quem está chamando, já resolvido pelo gateway de identidade (token)."""

    user_id: int
    role: RoleName

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity":
        return cls(user_id=int(claims["sub"]), role=normalize_role(claims.get("role")))
