"""Periodic reachability checks of the long URLs behind short links."""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from collections.abc import Callable
from datetime import timedelta
from urllib.parse import urlsplit

from .models import Link
from .repository import LinkRepository

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 5.0


def format_state(accessible: bool) -> str:
    """Readable label for an accessibility state."""
    return "ACCESSIBLE" if accessible else "INACCESSIBLE"


class UrlMonitor:
    """Checks every stored long URL at a fixed interval and logs state changes."""

    def __init__(
        self,
        link_repo: LinkRepository,
        interval: timedelta | float,
        checker: Callable[[str], bool] | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        if isinstance(interval, timedelta):
            interval = interval.total_seconds()
        if interval <= 0:
            raise ValueError(f"interval must be positive: {interval}")
        self.link_repo = link_repo
        self.interval = float(interval)
        self.timeout = timeout
        self._checker = checker if checker is not None else self.is_url_accessible
        self._known_states: dict[int, bool] = {}
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    def start(self) -> None:
        """Check immediately, then once per interval until stop() is called."""
        logger.info(
            "[MONITOR] Démarrage du moniteur d'URLs avec un intervalle de %ss...",
            self.interval,
        )
        self.check_urls()
        while not self._stopped.wait(self.interval):
            self.check_urls()

    def stop(self) -> None:
        """Make a running start() loop return."""
        self._stopped.set()

    def check_urls(self) -> list[tuple[Link, bool, bool]]:
        """Check all links once; return (link, previous, current) for each change."""
        logger.info("[MONITOR] Lancement de la vérification de l'état des URLs...")
        try:
            links = self.link_repo.get_all_links()
        except Exception as exc:
            logger.error(
                "[MONITOR] ERREUR lors de la récupération des liens pour la surveillance : %s",
                exc,
            )
            return []

        changes = []
        for link in links:
            current = self._checker(link.long_url)
            with self._lock:
                previous = self._known_states.get(link.id)
                self._known_states[link.id] = current

            if previous is None:
                logger.info(
                    "[MONITOR] État initial pour le lien %s (%s) : %s",
                    link.short_code,
                    link.long_url,
                    format_state(current),
                )
                continue

            if current != previous:
                logger.warning(
                    "[NOTIFICATION] Le lien %s (%s) est passé de %s à %s !",
                    link.short_code,
                    link.long_url,
                    format_state(previous),
                    format_state(current),
                )
                changes.append((link, previous, current))
        logger.info("[MONITOR] Vérification de l'état des URLs terminée.")
        return changes

    def is_url_accessible(self, url: str) -> bool:
        """Send a HEAD request; a final 2xx or 3xx status means accessible."""
        if urlsplit(url).scheme.lower() not in ("http", "https"):
            logger.info("[MONITOR] Erreur d'accès à l'URL '%s': unsupported protocol scheme", url)
            return False
        request = urllib.request.Request(url, method="HEAD")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status = response.status
        except urllib.error.HTTPError as exc:
            status = exc.code
            exc.close()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            logger.info("[MONITOR] Erreur d'accès à l'URL '%s': %s", url, exc)
            return False
        return 200 <= status < 400