"""Utilities for communicating with the Jellyfin API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchResult:
    """Parsed response body plus whether the request actually succeeded."""

    payload: Any = None
    fetched: bool = True
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "FetchResult":
        return cls(payload=None, fetched=False, error=error)


class Fetcher(Protocol):
    """Anything able to GET a Jellyfin endpoint without raising."""

    async def fetch(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> FetchResult:
        ...


def extract_items(payload: Any) -> list[Any]:
    """Return the item list from ``{"Items": [...]}`` or a bare list."""

    if isinstance(payload, Mapping):
        items = payload.get("Items")
        return list(items) if isinstance(items, list) else []
    if isinstance(payload, list):
        return list(payload)
    return []


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Return an HTTP client bounded by the configured Jellyfin timeout."""

    base_url, _ = settings.require_connection()
    timeout = settings.jellyfin_timeout
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
    )


class JellyfinClient:
    """Thin wrapper around the Jellyfin HTTP API.

    Owns the access token: every request carries it as a header and no
    caller ever sees it. Transport errors, non-success statuses and bodies
    that are not JSON come back as failed :class:`FetchResult` objects.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        base_url, api_key = settings.require_connection()
        self._settings = settings
        self._client = http_client
        self._base_url = base_url
        self._api_key = api_key
        self._failures = 0

    @property
    def failure_count(self) -> int:
        """Number of requests that failed since the client was created."""

        return self._failures

    def _headers(self) -> dict[str, str]:
        return {
            "X-Emby-Token": self._api_key,
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (jellycards)",
        }

    def _failed(self, error: str) -> FetchResult:
        self._failures += 1
        return FetchResult.failure(error)

    async def fetch(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> FetchResult:
        """GET ``path`` relative to the server and return the parsed body."""

        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.get(
                url,
                params=dict(params) if params else None,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Jellyfin request to %s failed (%s): %s",
                path,
                exc.__class__.__name__,
                exc,
            )
            return self._failed(f"{exc.__class__.__name__}: {exc}")

        if not response.is_success:
            logger.warning(
                "Jellyfin request to %s returned HTTP %s", path, response.status_code
            )
            return self._failed(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON Jellyfin response for %s", path)
            return self._failed("invalid JSON body")
        return FetchResult(payload=payload)
