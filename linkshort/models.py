"""Data records for shortened links and the clicks made on them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

SHORT_CODE_MAX_LENGTH = 10
USER_AGENT_MAX_LENGTH = 255
IP_ADDRESS_MAX_LENGTH = 50


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Link:
    """A shortened link stored in the database."""

    short_code: str
    long_url: str
    id: int | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class Click:
    """A persisted click on a shortened link."""

    link_id: int
    timestamp: datetime = field(default_factory=_now)
    user_agent: str = ""
    ip_address: str = ""
    id: int | None = None


@dataclass(frozen=True)
class ClickEvent:
    """A raw click, handed from the request path to the background workers."""

    link_id: int
    timestamp: datetime
    user_agent: str
    ip_address: str

    def to_click(self) -> Click:
        """Build the storable click record for this event."""
        return Click(
            link_id=self.link_id,
            timestamp=self.timestamp,
            user_agent=self.user_agent,
            ip_address=self.ip_address,
        )