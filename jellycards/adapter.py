"""Posterr-style media server adapter backed by Jellyfin."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx
from pydantic import ValidationError

from .config import ConfigurationError, Settings, get_settings
from .models import OnDemandFilters, ScreeningFilters
from .services.jellyfin import create_http_client
from .services.screening import ScreeningService
from .utils import is_enabled

logger = logging.getLogger(__name__)


class JellyfinMediaServer:
    """Exposes ``get_now_screening``/``get_on_demand`` with Posterr's arguments.

    Theme and artwork flags are accepted so callers can pass their usual
    argument lists, but they do not change the cards. Results are plain
    camelCase dictionaries ready for the display layer.
    """

    def __init__(
        self,
        jellyfin_url: str | None = None,
        jellyfin_api_key: str | None = None,
        *,
        user_id: str | None = None,
        libraries: Iterable[str] | str | None = None,
        has_art: bool = False,
        image_provider: str = "jellyfin",
        timeout: float = 8.0,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        if settings is None:
            try:
                settings = Settings(  # type: ignore[call-arg]
                    _env_file=None,
                    JELLYFIN_URL=jellyfin_url,
                    JELLYFIN_API_KEY=jellyfin_api_key,
                    JELLYFIN_USER_ID=user_id,
                    JELLYFIN_LIBRARIES=libraries,
                    JELLYFIN_TIMEOUT=timeout,
                    IMAGE_PROVIDER=image_provider,
                )
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid Jellyfin settings: {exc}") from exc
        settings.require_connection()

        self._settings = settings
        self.has_art = is_enabled(has_art)
        self._owns_client = http_client is None
        self._http_client = http_client or create_http_client(settings)
        self._service = ScreeningService.from_settings(settings, self._http_client)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "JellyfinMediaServer":
        """Build an adapter from explicit or environment-provided settings."""

        return cls(settings=settings or get_settings(), http_client=http_client)

    @property
    def service(self) -> ScreeningService:
        return self._service

    async def get_now_screening(
        self,
        play_themes: Any = None,
        generic_themes: Any = None,
        has_art: Any = None,
        filter_remote: Any = None,
        filter_local: Any = None,
        filter_devices: Any = None,
        filter_users: Any = None,
        hide_user: Any = None,
        exclude_libraries: Any = None,
    ) -> list[dict[str, Any]]:
        """Return now-playing card payloads."""

        filters = ScreeningFilters.model_validate(
            {
                "hideUser": self._settings.hide_user if hide_user is None else hide_user,
                "filterUsers": filter_users,
                "filterDevices": filter_devices,
                "excludeLibraries": exclude_libraries,
                "filterRemote": filter_remote,
                "filterLocal": filter_local,
            }
        )
        cards = await self._service.list_now_screening(filters)
        return [card.to_payload() for card in cards]

    async def get_on_demand(
        self,
        libraries: Any = None,
        number_on_demand: Any = None,
        play_themes: Any = None,
        generic_themes: Any = None,
        has_art: Any = None,
        genres: Any = None,
        recently_added_days: Any = None,
        content_ratings: Any = None,
    ) -> list[dict[str, Any]]:
        """Return resume or recently added card payloads."""

        selected_libraries = (
            self._settings.jellyfin_libraries if libraries is None else libraries
        )
        try:
            filters = OnDemandFilters.model_validate(
                {
                    "libraries": selected_libraries,
                    "genres": genres,
                    "contentRatings": content_ratings,
                    "recentlyAddedDays": recently_added_days,
                }
            )
        except ValidationError as exc:
            logger.warning("Ignoring invalid on-demand filters: %s", exc)
            filters = OnDemandFilters()
        cards = await self._service.list_on_demand(number_on_demand, filters)
        return [card.to_payload() for card in cards]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "JellyfinMediaServer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
