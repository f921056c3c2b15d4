# portal_messaging/config/settings.py
import os
from urllib.parse import quote_plus
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # 🔵 Banco principal (PostgreSQL)
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "portal"
    db_user: str = "portal"
    db_password: str = ""
    db_ssl: bool = False

    # URL completa (ex.: sqlite para rodar local/testes). Tem prioridade sobre db_*.
    db_url: str | None = None

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    app_prefix: str = os.getenv("APP_PREFIX", "/portal")

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_access_minutes: int = int(os.getenv("JWT_ACCESS_MINUTES", "60"))
    jwt_issuer: str = os.getenv("JWT_ISSUER", "portal-auth")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "portal-front")

    # Ex: "http://localhost:3000,http://127.0.0.1:3000"
    cors_origins_raw: str = os.getenv(
        "CORS_ORIGINS",
        ",".join(
            [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ]
        ),
    )

    # tamanho do preview da última mensagem na listagem de conversas
    message_preview_length: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("db_host", "db_name", "db_user", "db_password", mode="before")
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip().strip('"').strip("'")
        return v

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url

        user = quote_plus(self.db_user)
        password = quote_plus(self.db_password)
        host = self.db_host
        port = self.db_port
        db = self.db_name

        url = f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"
        if self.db_ssl:
            url += "?sslmode=require"
        return url

    @property
    def cors_origins(self) -> list[str]:
        parts = [p.strip() for p in (self.cors_origins_raw or "").split(",")]
        return [p for p in parts if p]


settings = Settings()
