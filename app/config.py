"""Application configuration models."""

from __future__ import annotations

import platform
from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


EPISODE_DETAIL_FLAGS: tuple[str, ...] = ("Overview", "Size", "Runtime")


def _default_device_name() -> str:
    return platform.node() or "Bijoyfin"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Bijoyfin", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    media_server_url: str = Field(
        default="http://10.20.30.50", alias="MEDIA_SERVER_URL"
    )
    media_server_username: str = Field(
        default="bijoy", alias="MEDIA_SERVER_USERNAME"
    )
    media_server_password: str = Field(default="", alias="MEDIA_SERVER_PASSWORD")

    client_name: str = Field(default="Aniyomi", alias="CLIENT_NAME")
    client_version: str = Field(default="1.0.0", alias="CLIENT_VERSION")
    device_name: str = Field(
        default_factory=_default_device_name, alias="DEVICE_NAME"
    )

    require_session: bool = Field(default=True, alias="REQUIRE_SESSION")

    episode_template: str = Field(
        default="{number} - {title}", alias="EPISODE_TEMPLATE"
    )
    episode_prefix: str = Field(default="", alias="EPISODE_PREFIX")
    episode_details: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(), alias="EPISODE_DETAILS"
    )

    request_timeout: float = Field(default=20.0, alias="REQUEST_TIMEOUT", gt=0)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./bijoyfin.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("media_server_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError("MEDIA_SERVER_URL must be an http(s) URL")
        return normalized

    @field_validator("episode_details", mode="before")
    @classmethod
    def _parse_episode_details(cls, value: object) -> tuple[str, ...]:
        """Normalise the detail flags shown in an episode's extra info line."""

        if value is None:
            return ()
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("EPISODE_DETAILS must be a string or iterable of strings")

        lookup = {flag.lower(): flag for flag in EPISODE_DETAIL_FLAGS}
        cleaned: list[str] = []
        for entry in raw_values:
            if not entry:
                continue
            flag = lookup.get(entry.lower())
            if flag is None:
                raise ValueError("Unknown episode detail flags configured")
            if flag not in cleaned:
                cleaned.append(flag)
        return tuple(cleaned)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
