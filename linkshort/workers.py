"""Background workers that persist click events taken from a queue."""

from __future__ import annotations

import logging
import queue
import threading

from .models import ClickEvent
from .repository import ClickRepository

logger = logging.getLogger(__name__)


def click_worker(events: "queue.Queue[ClickEvent | None]", click_repo: ClickRepository) -> int:
    """Persist events from *events* until a ``None`` arrives; return how many were stored.

    A failed insert is logged and the event is dropped.
    """
    recorded = 0
    while True:
        event = events.get()
        try:
            if event is None:
                return recorded
            try:
                click_repo.create_click(event.to_click())
            except Exception as exc:
                logger.error(
                    "ERROR: Failed to save click for LinkID %s (UserAgent: %s, IP: %s): %s",
                    event.link_id,
                    event.user_agent,
                    event.ip_address,
                    exc,
                )
            else:
                recorded += 1
                logger.info("Click recorded successfully for LinkID %s", event.link_id)
        finally:
            events.task_done()


def start_click_workers(
    worker_count: int,
    events: "queue.Queue[ClickEvent | None]",
    click_repo: ClickRepository,
) -> list[threading.Thread]:
    """Start *worker_count* daemon threads that all read from *events*.

    Put one ``None`` on the queue per worker to make them finish.
    """
    logger.info("Starting %d click worker(s)...", worker_count)
    threads = []
    for number in range(1, worker_count + 1):
        thread = threading.Thread(
            target=click_worker,
            args=(events, click_repo),
            name=f"click-worker-{number}",
            daemon=True,
        )
        thread.start()
        threads.append(thread)
    return threads