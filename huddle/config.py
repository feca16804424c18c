from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Huddle API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1",
        ],
        description="List of allowed CORS origins",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None,
        description="Optional regular expression that matches allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the composed MySQL URL",
    )
    database_user: str = Field(default="huddle")
    database_password: str = Field(default="huddle")
    database_host: str = Field(default="db")
    database_port: int = Field(default=3306)
    database_name: str = Field(default="huddle")

    jwt_secret_key: str = Field(default="changeme")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7)

    page_default_limit: int = Field(default=50, description="Page size used when no limit is given")
    page_max_limit: int = Field(default=100, description="Upper bound for any page size")
    search_min_query_length: int = Field(default=2)
    search_max_limit: int = Field(default=50)

    message_max_length: int = Field(default=4000)
    channel_name_max_length: int = Field(default=80)
    emoji_max_length: int = Field(default=32)

    media_root: Path = Field(default=Path("uploads"))
    media_base_url: str = Field(default="/api/files")
    max_upload_size: int = Field(
        default=10 * 1024 * 1024, description="Maximum upload size in bytes"
    )
    allowed_upload_types: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "application/pdf",
            "text/plain",
            "application/json",
            "application/zip",
            "application/x-zip-compressed",
        ],
        description="MIME types accepted by the upload endpoint",
    )

    realtime_typing_ttl_seconds: float = Field(default=8.0)
    websocket_receive_timeout_seconds: int = Field(default=30)
    websocket_ping_interval_seconds: int = Field(default=25)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", "allowed_upload_types", mode="before")
    @classmethod
    def split_comma_separated(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("media_root", mode="before")
    @classmethod
    def resolve_media_root(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.resolve()
        return Path(value).resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
