"""Business logic for creating links and reading their statistics."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from .models import Click, Link
from .repository import ClickRepository, LinkRepository, RecordNotFoundError

logger = logging.getLogger(__name__)

CHARSET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SHORT_CODE_LENGTH = 6
MAX_RETRIES = 5


class ServiceError(Exception):
    """Raised when a storage operation behind a service fails."""


class ShortCodeExhaustedError(ServiceError):
    """Raised when no unused short code was found within the retry limit."""


class LinkService:
    """Creates short links and reports on them."""

    def __init__(self, link_repo: LinkRepository, click_repo: ClickRepository) -> None:
        self._link_repo = link_repo
        self._click_repo = click_repo

    def generate_short_code(self, length: int) -> str:
        """Return a random code of *length* characters drawn from CHARSET."""
        if length < 0:
            raise ValueError(f"length must not be negative: {length}")
        return "".join(secrets.choice(CHARSET) for _ in range(length))

    def create_link(self, long_url: str) -> Link:
        """Store a new link for *long_url* under a fresh, unused short code."""
        for attempt in range(1, MAX_RETRIES + 1):
            code = self.generate_short_code(SHORT_CODE_LENGTH)
            try:
                self._link_repo.get_link_by_short_code(code)
            except RecordNotFoundError:
                short_code = code
                break
            except Exception as exc:
                raise ServiceError(
                    f"database error checking short code uniqueness: {exc}"
                ) from exc
            logger.warning(
                "Short code '%s' already exists, retrying generation (%d/%d)...",
                code,
                attempt,
                MAX_RETRIES,
            )
        else:
            raise ShortCodeExhaustedError(
                "failed to generate unique short code after maximum retries"
            )

        now = datetime.now(timezone.utc)
        link = Link(short_code=short_code, long_url=long_url, created_at=now, updated_at=now)
        try:
            self._link_repo.create_link(link)
        except Exception as exc:
            raise ServiceError(f"failed to create link in database: {exc}") from exc
        return link

    def _find(self, short_code: str) -> Link:
        try:
            return self._link_repo.get_link_by_short_code(short_code)
        except RecordNotFoundError:
            raise
        except Exception as exc:
            raise ServiceError(f"failed to get link by short code: {exc}") from exc

    def get_link_by_short_code(self, short_code: str) -> Link:
        """Return the link for *short_code*; RecordNotFoundError if there is none."""
        return self._find(short_code)

    def get_link_stats(self, short_code: str) -> tuple[Link, int]:
        """Return the link for *short_code* with its total number of clicks."""
        link = self._find(short_code)
        try:
            count = self._click_repo.count_clicks_by_link_id(link.id)
        except Exception as exc:
            raise ServiceError(f"failed to count clicks for link: {exc}") from exc
        return link, count


class ClickService:
    """Records clicks and counts them."""

    def __init__(self, click_repo: ClickRepository) -> None:
        self._click_repo = click_repo

    def record_click(self, click: Click) -> None:
        try:
            self._click_repo.create_click(click)
        except Exception as exc:
            raise ServiceError(f"failed to record click: {exc}") from exc

    def get_clicks_count_by_link_id(self, link_id: int) -> int:
        try:
            return self._click_repo.count_clicks_by_link_id(link_id)
        except Exception as exc:
            raise ServiceError(
                f"failed to get clicks count for link ID {link_id}: {exc}"
            ) from exc