"""Live-session and on-demand card pipelines."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence
from urllib.parse import quote

import httpx

from ..config import Settings
from ..models import Card, OnDemandFilters, ScreeningFilters
from ..utils import DEFAULT_ON_DEMAND_COUNT, parse_count
from .jellyfin import Fetcher, FetchResult, JellyfinClient, extract_items
from .mapper import CardMapper, collect_cards

logger = logging.getLogger(__name__)

SESSIONS_PATH = "/Sessions"
RESUME_PATH = "/Users/{user_id}/Items/Resume"
LATEST_PATH = "/Items/Latest"


@dataclass(slots=True)
class SourceBatch:
    """Raw items returned by one data source."""

    source: str
    items: list[Any] = field(default_factory=list)
    fetched: bool = True
    error: str | None = None

    @classmethod
    def from_fetch(cls, source: str, result: FetchResult) -> "SourceBatch":
        if not result.fetched:
            return cls(source=source, fetched=False, error=result.error)
        return cls(source=source, items=extract_items(result.payload))


@dataclass(slots=True)
class ScreeningResult:
    """Cards produced by a pipeline run and how they were obtained."""

    cards: list[Card] = field(default_factory=list)
    source: str | None = None
    fetched: bool = True
    dropped: int = 0
    error: str | None = None


class CardSource(Protocol):
    """One step of the on-demand fallback chain."""

    name: str

    async def load(self, fetcher: Fetcher, limit: int) -> SourceBatch:
        ...


@dataclass(slots=True, frozen=True)
class ResumeSource:
    """The configured user's continue-watching list."""

    user_id: str | None
    name: str = "resume"

    async def load(self, fetcher: Fetcher, limit: int) -> SourceBatch:
        if not self.user_id:
            return SourceBatch(
                source=self.name, fetched=False, error="no user configured"
            )
        path = RESUME_PATH.format(user_id=quote(self.user_id, safe=""))
        result = await fetcher.fetch(path, {"Limit": limit})
        return SourceBatch.from_fetch(self.name, result)


@dataclass(slots=True, frozen=True)
class RecentlyAddedSource:
    """Recently added library items, with optional server-side hints."""

    hints: Mapping[str, str] = field(default_factory=dict)
    name: str = "recently_added"

    async def load(self, fetcher: Fetcher, limit: int) -> SourceBatch:
        params: dict[str, Any] = {"Limit": limit, **self.hints}
        result = await fetcher.fetch(LATEST_PATH, params)
        return SourceBatch.from_fetch(self.name, result)


def _matches(wanted: Sequence[str], *identifiers: str | None) -> bool:
    known = [identifier.casefold() for identifier in identifiers if identifier]
    if not known:
        # Nothing to compare against, so the filter cannot apply.
        return True
    targets = {entry.casefold() for entry in wanted}
    return any(identifier in targets for identifier in known)


class ScreeningService:
    """Builds now-screening and on-demand card lists from Jellyfin.

    The ``list_*`` methods are the public surface and never raise: failed
    fetches and malformed records simply yield fewer cards. The
    ``now_screening``/``on_demand`` methods return a :class:`ScreeningResult`
    that also says whether the data was fetched and which source it came
    from.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        user_id: str | None = None,
        mapper: CardMapper | None = None,
        default_count: int = DEFAULT_ON_DEMAND_COUNT,
    ) -> None:
        self._fetcher = fetcher
        self._user_id = user_id
        self._mapper = mapper or CardMapper()
        self._default_count = default_count

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient
    ) -> "ScreeningService":
        mapper = CardMapper(
            settings.image_provider,
            poster_max_width=settings.poster_max_width,
            backdrop_max_width=settings.backdrop_max_width,
        )
        return cls(
            JellyfinClient(settings, http_client),
            user_id=settings.jellyfin_user_id,
            mapper=mapper,
            default_count=settings.on_demand_count,
        )

    async def now_screening(
        self, filters: ScreeningFilters | None = None
    ) -> ScreeningResult:
        """Fetch active sessions and map them to cards."""

        filters = filters or ScreeningFilters()
        result = await self._fetcher.fetch(SESSIONS_PATH)
        if not result.fetched:
            return ScreeningResult(source="sessions", fetched=False, error=result.error)

        sessions = extract_items(result.payload)
        cards, dropped = collect_cards(
            self._mapper.try_map_session(session) for session in sessions
        )
        return ScreeningResult(
            cards=self._apply_filters(cards, filters),
            source="sessions",
            dropped=dropped,
        )

    async def list_now_screening(
        self, filters: ScreeningFilters | None = None
    ) -> list[Card]:
        """Return cards for everything currently playing."""

        try:
            result = await self.now_screening(filters)
        except Exception:  # pragma: no cover - defensive logging branch
            logger.exception("Building now-screening cards failed")
            return []
        return result.cards

    def _apply_filters(
        self, cards: list[Card], filters: ScreeningFilters
    ) -> list[Card]:
        if filters.exclude_libraries:
            logger.debug(
                "Sessions carry no library id; ignoring excluded libraries %s",
                ", ".join(filters.exclude_libraries),
            )
        if filters.users:
            cards = [
                card
                for card in cards
                if _matches(filters.users, card.user_name, card.user_id)
            ]
        if filters.devices:
            cards = [
                card
                for card in cards
                if _matches(filters.devices, card.player_name, card.player_device)
            ]
        if filters.hide_user:
            cards = [card.without_user() for card in cards]
        return cards

    def fallback_chain(self, filters: OnDemandFilters) -> tuple[CardSource, ...]:
        """Return the on-demand sources in the order they are tried."""

        return (
            ResumeSource(self._user_id),
            RecentlyAddedSource(filters.query_hints()),
        )

    async def on_demand(
        self,
        count: Any = None,
        filters: OnDemandFilters | None = None,
    ) -> ScreeningResult:
        """Walk the fallback chain and map the first non-empty source."""

        limit = parse_count(count, default=self._default_count)
        if limit == 0:
            return ScreeningResult()

        filters = filters or OnDemandFilters()
        last: SourceBatch | None = None
        for source in self.fallback_chain(filters):
            batch = await source.load(self._fetcher, limit)
            if batch.items:
                cards, dropped = collect_cards(
                    self._mapper.try_map_item(item) for item in batch.items
                )
                return ScreeningResult(
                    cards=cards[:limit], source=batch.source, dropped=dropped
                )
            if batch.fetched:
                logger.info("Jellyfin %s source is empty, falling back", batch.source)
            else:
                logger.info(
                    "Jellyfin %s source unavailable (%s), falling back",
                    batch.source,
                    batch.error,
                )
            last = batch

        if last is None:
            return ScreeningResult()
        return ScreeningResult(source=last.source, fetched=last.fetched, error=last.error)

    async def list_on_demand(
        self,
        count: Any = None,
        filters: OnDemandFilters | None = None,
    ) -> list[Card]:
        """Return up to ``count`` resume or recently added cards."""

        try:
            result = await self.on_demand(count, filters)
        except Exception:  # pragma: no cover - defensive logging branch
            logger.exception("Building on-demand cards failed")
            return []
        return result.cards
