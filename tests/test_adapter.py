"""Tests for the Posterr-style media server adapter."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from jellycards.adapter import JellyfinMediaServer
from jellycards.config import ConfigurationError, Settings, get_settings

SESSIONS = [
    {
        "Id": "s-1",
        "UserId": "u-1",
        "UserName": "alice",
        "DeviceName": "Bedroom",
        "RemoteEndPoint": "10.0.0.4",
        "NowPlayingItem": {
            "Id": "42",
            "Name": "X",
            "Type": "Movie",
            "RunTimeTicks": 600_000_000,
        },
        "PlayState": {"PositionTicks": 300_000_000},
    },
    {
        "Id": "s-2",
        "UserId": "u-2",
        "UserName": "bob",
        "DeviceName": "Lounge",
        "NowPlayingItem": {"Id": "43", "Name": "Y", "Type": "Episode"},
        "PlayState": {},
    },
]


def _transport(requests: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/Sessions":
            return httpx.Response(200, json=SESSIONS)
        if request.url.path == "/Items/Latest":
            limit = int(request.url.params.get("Limit", "0"))
            items = [
                {"Id": f"new-{index}", "Name": f"New {index}", "Type": "Movie"}
                for index in range(limit + 5)
            ]
            return httpx.Response(200, json={"Items": items})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.mark.parametrize(
    ("url", "api_key"),
    [(None, "token"), ("http://jellyfin.local", None), ("", "token")],
)
def test_adapter_requires_url_and_key(url: str | None, api_key: str | None) -> None:
    with pytest.raises(ConfigurationError):
        JellyfinMediaServer(url, api_key)


def test_adapter_rejects_invalid_url() -> None:
    with pytest.raises(ConfigurationError):
        JellyfinMediaServer("not a url", "token")


@pytest.mark.anyio("asyncio")
async def test_get_now_screening_returns_payloads() -> None:
    requests: list[httpx.Request] = []
    async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
        server = JellyfinMediaServer(
            "http://jellyfin.local", "token", http_client=http_client
        )
        cards = await server.get_now_screening(
            None, None, False, True, True, "", "", "false", []
        )

    assert [card["sessionId"] for card in cards] == ["s-1", "s-2"]
    first = cards[0]
    assert first["userId"] == "u-1"
    assert first["progressPercent"] == 50
    assert first["progress"] == 50
    assert first["playerName"] == "Bedroom"
    assert first["playerIP"] == "10.0.0.4"
    assert first["posterUrl"] == "/jellyfin/image/42?type=Primary"
    assert first["__raw"]["Id"] == "s-1"
    assert requests[0].headers["X-Emby-Token"] == "token"


@pytest.mark.anyio("asyncio")
async def test_get_now_screening_hides_users_and_filters() -> None:
    requests: list[httpx.Request] = []
    async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
        server = JellyfinMediaServer(
            "http://jellyfin.local", "token", http_client=http_client
        )
        cards = await server.get_now_screening(
            filter_users="bob", hide_user="true"
        )

    assert len(cards) == 1
    assert cards[0]["sessionId"] == "s-2"
    assert "userId" not in cards[0]


@pytest.mark.anyio("asyncio")
async def test_get_on_demand_without_user_uses_recently_added() -> None:
    requests: list[httpx.Request] = []
    async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
        server = JellyfinMediaServer(
            "http://jellyfin.local",
            "token",
            libraries="lib-9",
            http_client=http_client,
        )
        cards = await server.get_on_demand(None, "4")

    assert [card["itemId"] for card in cards] == ["new-0", "new-1", "new-2", "new-3"]
    assert "playerName" not in cards[0]
    assert cards[0]["resumePercent"] == 0
    assert [request.url.path for request in requests] == ["/Items/Latest"]
    assert requests[0].url.params["Limit"] == "4"
    assert requests[0].url.params["ParentId"] == "lib-9"


@pytest.mark.anyio("asyncio")
async def test_get_on_demand_ignores_invalid_filters() -> None:
    requests: list[httpx.Request] = []
    async with httpx.AsyncClient(transport=_transport(requests)) as http_client:
        server = JellyfinMediaServer(
            "http://jellyfin.local", "token", http_client=http_client
        )
        cards = await server.get_on_demand(
            None, 2, recently_added_days="a fortnight"
        )

    assert len(cards) == 2
    assert "MinDateCreated" not in requests[0].url.params


@pytest.mark.anyio("asyncio")
async def test_adapter_swallows_server_outages() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        server = JellyfinMediaServer(
            "http://jellyfin.local",
            "token",
            user_id="u-1",
            http_client=http_client,
        )
        now_playing = await server.get_now_screening()
        on_demand = await server.get_on_demand()

    assert now_playing == []
    assert on_demand == []


@pytest.mark.anyio("asyncio")
async def test_adapter_from_settings_owns_its_client() -> None:
    settings = Settings(  # type: ignore[call-arg]
        _env_file=None,
        JELLYFIN_URL="http://jellyfin.local",
        JELLYFIN_API_KEY="token",
        HIDE_USER=True,
    )
    captured: dict[str, Any] = {}

    async with JellyfinMediaServer.from_settings(settings) as server:
        captured["client"] = server._http_client
        assert server.service is not None

    assert captured["client"].is_closed is True


@pytest.mark.anyio("asyncio")
async def test_adapter_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without explicit settings the adapter reads the environment."""

    monkeypatch.setenv("JELLYFIN_URL", "http://env-jellyfin.local")
    monkeypatch.setenv("JELLYFIN_API_KEY", "env-token")
    get_settings.cache_clear()
    try:
        async with JellyfinMediaServer.from_settings() as server:
            assert server.service is not None
    finally:
        get_settings.cache_clear()
