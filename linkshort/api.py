"""HTTP routes: health check, link creation, statistics and redirection."""

from __future__ import annotations

import logging
import queue
import re
from datetime import datetime, timezone
from urllib.parse import urlsplit

from flask import Flask, jsonify, redirect, request

from .config import DEFAULT_BUFFER_SIZE
from .models import ClickEvent
from .repository import RecordNotFoundError
from .services import LinkService

logger = logging.getLogger(__name__)

FULL_SHORT_URL_PREFIX = "http://localhost:8080/"
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def is_valid_url(value: str) -> bool:
    """Return whether *value* is an absolute URL with a scheme and a host or opaque part."""
    if not isinstance(value, str) or not value:
        return False
    if value.lower().startswith("file:/"):
        return True
    if _CONTROL_CHARS.search(value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme:
        return False
    if " " in parts.netloc:
        return False
    rest = value[len(parts.scheme) + 1 :]
    opaque = bool(rest) and not rest.startswith("/")
    return bool(parts.netloc or parts.fragment or opaque)


def _validation_error(tag: str) -> str:
    return (
        "Key: 'CreateLinkRequest.LongURL' Error:Field validation for 'LongURL' "
        f"failed on the '{tag}' tag"
    )


def _client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    for candidate in forwarded.split(","):
        candidate = candidate.strip()
        if candidate:
            return candidate
    real_ip = request.headers.get("X-Real-Ip", "").strip()
    if real_ip:
        return real_ip
    return request.remote_addr or ""


def create_app(
    link_service: LinkService,
    click_events: "queue.Queue[ClickEvent | None] | None" = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> Flask:
    """Build the application; without *click_events* a queue of *buffer_size* is made."""
    if click_events is None:
        if buffer_size < 1:
            raise ValueError(f"buffer size must be positive: {buffer_size}")
        click_events = queue.Queue(maxsize=buffer_size)

    app = Flask(__name__, static_folder=None)
    app.config["CLICK_EVENTS"] = click_events

    @app.get("/health")
    def health_check():
        return jsonify(status="ok"), 200

    @app.post("/api/v1/links")
    def create_short_link():
        body = request.get_json(silent=True)
        if body is not None and not isinstance(body, dict):
            return jsonify(error="invalid request body: expected a JSON object"), 400
        if body is None:
            if request.get_data():
                try:
                    request.get_json(force=True)
                except Exception:
                    return jsonify(error="invalid request body: malformed JSON"), 400
            body = {}
        long_url = body.get("long_url")
        if long_url is not None and not isinstance(long_url, str):
            return jsonify(error="invalid request body: 'long_url' must be a string"), 400
        if not long_url:
            return jsonify(error=_validation_error("required")), 400
        if not is_valid_url(long_url):
            return jsonify(error=_validation_error("url")), 400

        try:
            link = link_service.create_link(long_url)
        except Exception as exc:
            logger.error("Failed to create short link for %s: %s", long_url, exc)
            return jsonify(error="Failed to create short link"), 500

        return (
            jsonify(
                short_code=link.short_code,
                long_url=link.long_url,
                full_short_url=FULL_SHORT_URL_PREFIX + link.short_code,
            ),
            201,
        )

    @app.get("/api/v1/links/<short_code>/stats")
    def link_stats(short_code: str):
        try:
            link, total_clicks = link_service.get_link_stats(short_code)
        except RecordNotFoundError:
            return jsonify(error="Short link not found"), 404
        except Exception:
            return jsonify(error="Failed to retrieve stats"), 500
        return (
            jsonify(
                short_code=link.short_code,
                long_url=link.long_url,
                total_clicks=total_clicks,
            ),
            200,
        )

    @app.get("/<short_code>")
    def redirect_short_link(short_code: str):
        try:
            link = link_service.get_link_by_short_code(short_code)
        except RecordNotFoundError:
            return jsonify(error="Short link not found"), 404
        except Exception as exc:
            logger.error("Error retrieving link for %s: %s", short_code, exc)
            return jsonify(error="Internal server error"), 500

        event = ClickEvent(
            link_id=link.id,
            timestamp=datetime.now(timezone.utc),
            user_agent=request.headers.get("User-Agent", ""),
            ip_address=_client_ip(),
        )
        try:
            click_events.put_nowait(event)
        except queue.Full:
            logger.warning(
                "Warning: ClickEventsChannel is full, dropping click event for %s.",
                short_code,
            )
        return redirect(link.long_url, code=302)

    return app