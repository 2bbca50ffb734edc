from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_CHECK_ON_STARTUP: bool = True

    AUTH_VERIFY_MODE: Literal["firebase", "hs256"] = "firebase"
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_JWKS_URL: str = (
        "https://www.googleapis.com/service_accounts/v1/jwk/"
        "securetoken@system.gserviceaccount.com"
    )
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    AUTH_TIMEOUT_SECONDS: float = 10.0
    AUTH_VERIFY_TIMEOUT_SECONDS: float = 5.0
    USERNAME_MAX_LENGTH: int = 50
    WS_HEARTBEAT_SECONDS: int = 30

    REDIS_URL: str | None = None
    REDIS_PUBSUB_CHANNEL: str = "relay.rooms"

    CORS_ORIGINS: list[str] = ["*"]

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "info"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
