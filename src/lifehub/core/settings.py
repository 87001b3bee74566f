"""Application settings and configuration.

This module defines all configuration options for the LifeHub messaging service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="LifeHub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Process-wide secret for conversation key derivation. Rotating it makes
    # every previously stored message undecryptable.
    encryption_secret: str = Field(alias="ENCRYPTION_SECRET")

    # Database configuration
    database_url: str = Field(default="sqlite:///./lifehub.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Chat media storage
    media_root: str = Field(default="./uploads/chat-media", alias="MEDIA_ROOT")
    media_url_prefix: str = Field(default="/uploads/chat-media", alias="MEDIA_URL_PREFIX")
    chat_max_attachment_bytes: int = Field(
        default=100 * 1024 * 1024,
        alias="CHAT_MAX_ATTACHMENT_BYTES",
    )

    # Message pagination
    chat_message_page_default: int = Field(default=50, alias="CHAT_MESSAGE_PAGE_DEFAULT")
    chat_message_page_max: int = Field(default=200, alias="CHAT_MESSAGE_PAGE_MAX")

    # Push channel liveness
    chat_heartbeat_timeout_seconds: float = Field(
        default=60.0,
        alias="CHAT_HEARTBEAT_TIMEOUT_SECONDS",
    )
    chat_sweep_interval_seconds: float = Field(
        default=30.0,
        alias="CHAT_SWEEP_INTERVAL_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "PATCH"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def encryption_secret_bytes(self) -> bytes:
        """Return the conversation encryption secret as raw bytes."""
        return self.encryption_secret.encode("utf-8")


settings = Settings()  # type: ignore[call-arg]
