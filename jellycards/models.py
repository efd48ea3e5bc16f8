"""Pydantic models describing display cards and pipeline filters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import is_enabled, split_csv

Theme = Literal["movie", "episode", ""]


class Card(BaseModel):
    """Normalized, display-ready view of a session or library item.

    Only the fields that apply to a card's kind are set; unset fields are
    left out of :meth:`to_payload` so item cards carry no player context and
    session cards carry no resume position.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    item_id: str | None = Field(default=None, alias="itemId")
    session_id: str | None = Field(default=None, alias="sessionId")
    user_id: str | None = Field(default=None, alias="userId")
    user_name: str | None = Field(default=None, alias="userName")

    title: str = ""
    media_type: str = Field(default="", alias="mediaType")
    series_title: str | None = Field(default=None, alias="seriesTitle")
    episode_name: str | None = Field(default=None, alias="episodeName")
    season: int | None = None
    episode: int | None = None

    runtime_ms: int | None = Field(default=None, alias="runtimeMs")
    progress_ms: int | None = Field(default=None, alias="progressMs")
    progress_percent: int | None = Field(default=None, alias="progressPercent")
    progress: int | None = None
    resume_position_ms: int | None = Field(default=None, alias="resumePositionMs")
    resume_percent: int | None = Field(default=None, alias="resumePercent")

    poster_url: str | None = Field(default=None, alias="posterUrl")
    backdrop_url: str | None = Field(default=None, alias="backdropUrl")
    theme: Theme = ""

    player_name: str | None = Field(default=None, alias="playerName")
    player_ip: str | None = Field(default=None, alias="playerIP")
    player_device: str | None = Field(default=None, alias="playerDevice")

    raw: Any = Field(default=None, alias="__raw", repr=False)

    @property
    def has_user(self) -> bool:
        """Return ``True`` when the card still carries a user identity."""

        return "user_id" in self.model_fields_set

    def without_user(self) -> "Card":
        """Return a copy with the user identity removed, not just nulled."""

        data = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "user_id"
        }
        return type(self).model_validate(data)

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase mapping consumed by the display layer."""

        return self.model_dump(by_alias=True, exclude_unset=True)


class ScreeningFilters(BaseModel):
    """Options accepted by the live-session pipeline.

    ``users`` and ``devices`` keep only matching sessions when the session
    exposes a user or device identifier. ``exclude_libraries``,
    ``filter_remote`` and ``filter_local`` are accepted for call
    compatibility; sessions carry no library or locality marker, so they do
    not change the result.
    """

    model_config = ConfigDict(frozen=True)

    hide_user: bool = Field(
        default=False, validation_alias=AliasChoices("hide_user", "hideUser")
    )
    users: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("users", "filterUsers")
    )
    devices: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("devices", "filterDevices")
    )
    exclude_libraries: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("exclude_libraries", "excludeLibraries"),
    )
    filter_remote: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("filter_remote", "filterRemote"),
    )
    filter_local: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("filter_local", "filterLocal"),
    )

    @field_validator("hide_user", mode="before")
    @classmethod
    def _parse_flag(cls, value: object) -> bool:
        return is_enabled(value)

    @field_validator("filter_remote", "filter_local", mode="before")
    @classmethod
    def _parse_optional_flag(cls, value: object) -> bool | None:
        if value is None or value == "":
            return None
        return is_enabled(value)

    @field_validator("users", "devices", "exclude_libraries", mode="before")
    @classmethod
    def _parse_list(cls, value: object) -> tuple[str, ...]:
        return split_csv(value)


class OnDemandFilters(BaseModel):
    """Advisory options for the on-demand pipeline.

    These are forwarded to Jellyfin as query hints on the recently added
    request. The server applies what it supports; results are never
    filtered again locally.
    """

    model_config = ConfigDict(frozen=True)

    libraries: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("libraries", "libraryIds")
    )
    genres: tuple[str, ...] = Field(default=(), validation_alias=AliasChoices("genres"))
    content_ratings: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("content_ratings", "contentRatings"),
    )
    recently_added_days: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("recently_added_days", "recentlyAddedDays"),
    )

    @field_validator("libraries", "genres", "content_ratings", mode="before")
    @classmethod
    def _parse_list(cls, value: object) -> tuple[str, ...]:
        return split_csv(value)

    @field_validator("recently_added_days", mode="before")
    @classmethod
    def _parse_days(cls, value: object) -> object:
        if value is None or value == "" or value == 0 or value == "0":
            return None
        return value

    def query_hints(self, *, now: datetime | None = None) -> dict[str, str]:
        """Return Jellyfin query parameters expressing these filters."""

        hints: dict[str, str] = {}
        if len(self.libraries) == 1:
            hints["ParentId"] = self.libraries[0]
        if self.genres:
            hints["Genres"] = "|".join(self.genres)
        if self.content_ratings:
            hints["OfficialRatings"] = "|".join(self.content_ratings)
        if self.recently_added_days:
            reference = now or datetime.now(timezone.utc)
            since = reference - timedelta(days=self.recently_added_days)
            hints["MinDateCreated"] = since.strftime("%Y-%m-%dT%H:%M:%SZ")
        return hints
