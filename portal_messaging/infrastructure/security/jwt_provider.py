# portal_messaging/infrastructure/security/jwt_provider.py

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt

from portal_messaging.config.settings import settings
from portal_messaging.core.exceptions import NotAuthenticatedError


class JwtProvider:
    """
    Tokens de acesso do portal (HS256). Quem emite em produção é o serviço
    de autenticação; aqui só validamos. issue_access_token existe para
    ferramentas internas e testes.
    """

    def __init__(self) -> None:
        self._secret = settings.jwt_secret
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._algorithm = "HS256"

    def issue_access_token(self, *, subject: int | str, role: str, minutes: int = 0) -> str:
        ttl = minutes if minutes and minutes > 0 else settings.jwt_access_minutes
        now = datetime.now(tz=timezone.utc)
        claims = {
            "iss": self._issuer,
            "aud": self._audience,
            "sub": str(subject),
            "role": str(role),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=ttl)).timestamp()),
            "jti": uuid4().hex,
            "typ": "access",
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise NotAuthenticatedError("Session expirée, veuillez vous reconnecter.") from e
        except jwt.InvalidTokenError as e:
            raise NotAuthenticatedError("Jeton invalide.") from e
