"""Mapping of Jellyfin sessions and items onto display cards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from ..models import Card, Theme
from ..utils import coerce_ms, image_reference, progress_percent, ticks_to_ms

logger = logging.getLogger(__name__)

POSTER_IMAGE = "Primary"
BACKDROP_IMAGE = "Backdrop"


class MalformedRecordError(ValueError):
    """Raised when an upstream record cannot be turned into a card."""


_RECORD_ERRORS = (MalformedRecordError, ValueError, TypeError, ArithmeticError)


@dataclass(slots=True, frozen=True)
class MappedRecord:
    """Outcome of mapping a single upstream record."""

    card: Card | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.card is not None


def collect_cards(outcomes: Iterable[MappedRecord]) -> tuple[list[Card], int]:
    """Keep successfully mapped cards and count the dropped records."""

    cards: list[Card] = []
    dropped = 0
    for outcome in outcomes:
        if outcome.card is not None:
            cards.append(outcome.card)
            continue
        dropped += 1
        logger.debug("Dropping malformed Jellyfin record: %s", outcome.error)
    return cards, dropped


def _block(value: Any, name: str) -> Mapping[str, Any]:
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedRecordError(f"{name} is not an object")
    return value


def _text(value: Any, name: str) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedRecordError(f"{name} is not a scalar value")
    return str(value)


def _index(value: Any) -> int | None:
    return coerce_ms(value) or None


def _runtime_ms(item: Mapping[str, Any]) -> int | None:
    runtime = ticks_to_ms(item.get("RunTimeTicks"))
    if runtime is None:
        runtime = coerce_ms(item.get("RunTime"))
    return runtime


def _theme(item_type: Any) -> Theme:
    if item_type == "Movie":
        return "movie"
    if item_type == "Episode":
        return "episode"
    return ""


def _client_name(session: Mapping[str, Any]) -> str | None:
    client = session.get("Client")
    if isinstance(client, Mapping):
        return _text(client.get("Name"), "Client.Name")
    return _text(client, "Client")


def _device_name(session: Mapping[str, Any]) -> str | None:
    device = session.get("Device")
    if isinstance(device, Mapping):
        return _text(device.get("Name"), "Device.Name")
    return _text(device, "Device")


def _guarded(build: Callable[[Any], Card], record: Any) -> Card:
    """Run ``build`` and report any extraction failure as a malformed record."""

    try:
        return build(record)
    except MalformedRecordError:
        raise
    except _RECORD_ERRORS as exc:
        raise MalformedRecordError(f"{exc.__class__.__name__}: {exc}") from exc


class CardMapper:
    """Turns Jellyfin session and item records into :class:`Card` objects."""

    def __init__(
        self,
        image_provider: str = "jellyfin",
        *,
        poster_max_width: int | None = None,
        backdrop_max_width: int | None = None,
    ) -> None:
        self._image_provider = image_provider
        self._poster_max_width = poster_max_width
        self._backdrop_max_width = backdrop_max_width

    def _images(self, item_id: str | None) -> dict[str, str | None]:
        if not item_id:
            return {"poster_url": None, "backdrop_url": None}
        return {
            "poster_url": image_reference(
                self._image_provider, item_id, POSTER_IMAGE, self._poster_max_width
            ),
            "backdrop_url": image_reference(
                self._image_provider, item_id, BACKDROP_IMAGE, self._backdrop_max_width
            ),
        }

    def _descriptive(self, item: Mapping[str, Any]) -> dict[str, Any]:
        name = _text(item.get("Name"), "Name")
        item_type = item.get("Type")
        item_id = _text(item.get("Id"), "Id")
        return {
            "item_id": item_id,
            "title": name or "",
            "media_type": (_text(item_type, "Type") or "").lower(),
            "series_title": _text(item.get("SeriesName"), "SeriesName"),
            "episode_name": name,
            "season": _index(item.get("ParentIndexNumber")),
            "episode": _index(item.get("IndexNumber")),
            "theme": _theme(item_type),
            **self._images(item_id),
        }

    def map_session(self, session: Any) -> Card:
        """Map an active playback session.

        A session without a now-playing item still maps to a card with an
        empty title and no item id. Any failure while deriving fields is
        reported as :class:`MalformedRecordError`.
        """

        return _guarded(self._session_card, session)

    def _session_card(self, session: Any) -> Card:
        if not isinstance(session, Mapping):
            raise MalformedRecordError("session is not an object")
        item = _block(session.get("NowPlayingItem"), "NowPlayingItem")
        play_state = _block(session.get("PlayState"), "PlayState")
        user = _block(session.get("User"), "User")

        position = ticks_to_ms(play_state.get("PositionTicks"))
        if position is None:
            position = coerce_ms(play_state.get("Position"))
        runtime = _runtime_ms(item)
        percent = progress_percent(runtime, position)
        client_name = _client_name(session)

        return Card(
            **self._descriptive(item),
            runtime_ms=runtime,
            progress_ms=position,
            progress_percent=percent,
            progress=percent,
            player_name=_text(session.get("DeviceName"), "DeviceName")
            or client_name,
            player_ip=_text(session.get("RemoteEndPoint"), "RemoteEndPoint"),
            player_device=_device_name(session) or client_name,
            session_id=_text(session.get("Id"), "Id"),
            user_id=_text(session.get("UserId"), "UserId")
            or _text(user.get("Id"), "User.Id"),
            user_name=_text(session.get("UserName"), "UserName")
            or _text(user.get("Name"), "User.Name"),
            raw=session,
        )

    def map_item(self, item: Any) -> Card:
        """Map a library or resume item."""

        return _guarded(self._item_card, item)

    def _item_card(self, item: Any) -> Card:
        if not isinstance(item, Mapping):
            raise MalformedRecordError("item is not an object")
        user_data = _block(item.get("UserData"), "UserData")
        play_state = _block(user_data.get("PlayState"), "UserData.PlayState")

        resume = ticks_to_ms(user_data.get("PlaybackPositionTicks"))
        if resume is None:
            resume = coerce_ms(play_state.get("Position"))
        runtime = _runtime_ms(item)

        return Card(
            **self._descriptive(item),
            runtime_ms=runtime,
            resume_position_ms=resume,
            resume_percent=progress_percent(runtime, resume),
            user_id=_text(user_data.get("LastPlayedUserId"), "LastPlayedUserId"),
            raw=item,
        )

    def try_map_session(self, session: Any) -> MappedRecord:
        try:
            return MappedRecord(card=self.map_session(session))
        except _RECORD_ERRORS as exc:
            return MappedRecord(error=f"session: {exc}")

    def try_map_item(self, item: Any) -> MappedRecord:
        try:
            return MappedRecord(card=self.map_item(item))
        except _RECORD_ERRORS as exc:
            return MappedRecord(error=f"item: {exc}")


_default_mapper = CardMapper()


def map_session_to_card(session: Any) -> Card | None:
    """Return the card for ``session`` or ``None`` when it is malformed."""

    return _default_mapper.try_map_session(session).card


def map_item_to_card(item: Any) -> Card:
    """Return the card for ``item``; raises :class:`MalformedRecordError`."""

    return _default_mapper.map_item(item)
