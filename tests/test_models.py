from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from linkshort.models import Click, ClickEvent, Link


def _event():
    return ClickEvent(
        link_id=7,
        timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        user_agent="agent/1.0",
        ip_address="127.0.0.1",
    )


def test_to_click_copies_every_field():
    event = _event()
    click = event.to_click()
    assert click.link_id == event.link_id
    assert click.timestamp == event.timestamp
    assert click.user_agent == event.user_agent
    assert click.ip_address == event.ip_address


def test_to_click_is_not_yet_persisted():
    assert _event().to_click().id is None


def test_click_event_is_immutable():
    event = _event()
    with pytest.raises(FrozenInstanceError):
        event.link_id = 8
    assert event.link_id == 7
    assert event.to_click().link_id == 7


def test_link_timestamps_default_to_current_time():
    before = datetime.now(timezone.utc)
    link = Link(short_code="abc123", long_url="https://example.com")
    after = datetime.now(timezone.utc)
    assert before <= link.created_at <= after
    assert before <= link.updated_at <= after
    assert link.id is None


def test_click_defaults():
    click = Click(link_id=3)
    assert click.user_agent == ""
    assert click.ip_address == ""
    assert click.timestamp.tzinfo is timezone.utc