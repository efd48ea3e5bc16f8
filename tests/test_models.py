from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from jellycards.models import Card, OnDemandFilters, ScreeningFilters


def test_card_payload_uses_display_keys_and_skips_unset_fields():
    card = Card(
        item_id="42",
        title="Arrival",
        media_type="movie",
        runtime_ms=60_000,
        resume_position_ms=None,
        theme="movie",
        raw={"Id": "42"},
    )

    payload = card.to_payload()

    assert payload == {
        "itemId": "42",
        "title": "Arrival",
        "mediaType": "movie",
        "runtimeMs": 60_000,
        "resumePositionMs": None,
        "theme": "movie",
        "__raw": {"Id": "42"},
    }


def test_card_without_user_drops_the_field_entirely():
    card = Card(item_id="1", user_id="user-1", session_id="s-1")

    hidden = card.without_user()

    assert card.has_user is True
    assert hidden.has_user is False
    assert "userId" not in hidden.to_payload()
    assert hidden.to_payload() == {"itemId": "1", "sessionId": "s-1"}


def test_card_is_frozen():
    card = Card(title="Arrival")

    with pytest.raises(ValidationError):
        card.title = "Other"  # type: ignore[misc]


def test_screening_filters_accept_posterr_style_values():
    filters = ScreeningFilters.model_validate(
        {
            "hideUser": "true",
            "filterUsers": "alice, bob",
            "filterDevices": ["Living Room"],
            "excludeLibraries": "",
            "filterRemote": "false",
        }
    )

    assert filters.hide_user is True
    assert filters.users == ("alice", "bob")
    assert filters.devices == ("Living Room",)
    assert filters.exclude_libraries == ()
    assert filters.filter_remote is False
    assert filters.filter_local is None


def test_screening_filters_defaults_are_inactive():
    filters = ScreeningFilters()

    assert filters.hide_user is False
    assert filters.users == ()
    assert filters.devices == ()


def test_on_demand_filters_build_query_hints():
    filters = OnDemandFilters.model_validate(
        {
            "libraries": "movies-lib",
            "genres": "Drama,Comedy",
            "contentRatings": ["PG", "PG-13"],
            "recentlyAddedDays": "7",
        }
    )
    now = datetime(2024, 5, 8, 12, 0, tzinfo=timezone.utc)

    assert filters.query_hints(now=now) == {
        "ParentId": "movies-lib",
        "Genres": "Drama|Comedy",
        "OfficialRatings": "PG|PG-13",
        "MinDateCreated": "2024-05-01T12:00:00Z",
    }


def test_on_demand_filters_skip_parent_for_multiple_libraries():
    filters = OnDemandFilters(libraries=("a", "b"), recently_added_days=0)

    assert filters.query_hints() == {}
