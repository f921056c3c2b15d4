# portal_messaging/api/middlewares/auth_middleware.py
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import g, request

from portal_messaging.core.exceptions import NotAuthenticatedError
from portal_messaging.entities.identity import Identity
from portal_messaging.infrastructure.security.jwt_provider import JwtProvider

F = TypeVar("F", bound=Callable[..., Any])


def _get_bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    raise NotAuthenticatedError("Jeton absent.")


def require_auth(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        claims = JwtProvider().decode(_get_bearer_token())

        if claims.get("typ", "access") != "access":
            raise NotAuthenticatedError("Jeton invalide.")

        try:
            g.identity = Identity.from_claims(claims)
        except (KeyError, TypeError, ValueError) as e:
            raise NotAuthenticatedError("Jeton invalide.") from e

        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_identity() -> Identity:
    identity = getattr(g, "identity", None)
    if identity is None:
        raise NotAuthenticatedError()
    return identity
