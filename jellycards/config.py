"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .utils import split_csv


class ConfigurationError(ValueError):
    """Raised when the Jellyfin connection parameters are missing."""


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="jellycards", alias="APP_NAME")

    jellyfin_url: HttpUrl | None = Field(
        default=None,
        alias="JELLYFIN_URL",
        validation_alias=AliasChoices("JELLYFIN_URL", "JELLYFIN_BASE_URL"),
    )
    jellyfin_api_key: str | None = Field(default=None, alias="JELLYFIN_API_KEY")
    jellyfin_user_id: str | None = Field(default=None, alias="JELLYFIN_USER_ID")
    jellyfin_libraries: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(), alias="JELLYFIN_LIBRARIES"
    )
    jellyfin_timeout: float = Field(
        default=8.0, alias="JELLYFIN_TIMEOUT", gt=0, le=10
    )

    image_provider: str = Field(default="jellyfin", alias="IMAGE_PROVIDER")
    poster_max_width: int | None = Field(
        default=None, alias="POSTER_MAX_WIDTH", ge=1, le=4_000
    )
    backdrop_max_width: int | None = Field(
        default=None, alias="BACKDROP_MAX_WIDTH", ge=1, le=4_000
    )

    on_demand_count: int = Field(default=30, alias="ON_DEMAND_COUNT", ge=0, le=200)
    hide_user: bool = Field(default=False, alias="HIDE_USER")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("jellyfin_libraries", mode="before")
    @classmethod
    def _parse_libraries(cls, value: object) -> tuple[str, ...]:
        """Normalise library selections from environment values."""

        if value is not None and not isinstance(value, (str, Iterable)):
            raise TypeError("JELLYFIN_LIBRARIES must be a string or iterable of strings")
        return split_csv(value)

    @field_validator("jellyfin_api_key", "jellyfin_user_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def jellyfin_base_url(self) -> str | None:
        """Return the server URL without a trailing slash."""

        if self.jellyfin_url is None:
            return None
        return str(self.jellyfin_url).rstrip("/")

    def require_connection(self) -> tuple[str, str]:
        """Return ``(base_url, api_key)`` or raise when either is missing."""

        base_url = self.jellyfin_base_url
        if not base_url or not self.jellyfin_api_key:
            raise ConfigurationError(
                "Jellyfin requires JELLYFIN_URL and JELLYFIN_API_KEY"
            )
        return base_url, self.jellyfin_api_key

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]

