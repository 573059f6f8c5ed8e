import socket
import threading
from datetime import timedelta
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from linkshort.models import Link
from linkshort.monitor import UrlMonitor, format_state
from linkshort.repository import Database, LinkRepository


class _Handler(BaseHTTPRequestHandler):
    routes = {"/ok": 200, "/missing": 404, "/error": 500, "/moved": 302}

    def do_HEAD(self):
        status = self.routes.get(self.path, 404)
        self.send_response(status)
        if status == 302:
            self.send_header("Location", "/ok")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, *args):
        pass


@pytest.fixture
def server_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "monitor.db")
    database.migrate()
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return LinkRepository(db)


def test_format_state():
    assert format_state(True) == "ACCESSIBLE"
    assert format_state(False) == "INACCESSIBLE"


@pytest.mark.parametrize(
    "path, expected",
    [("/ok", True), ("/moved", True), ("/missing", False), ("/error", False)],
)
def test_is_url_accessible_by_status(server_url, repo, path, expected):
    monitor = UrlMonitor(repo, 60)
    assert monitor.is_url_accessible(server_url + path) is expected


def test_is_url_accessible_false_when_unreachable(repo):
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    monitor = UrlMonitor(repo, 60, timeout=2)
    assert monitor.is_url_accessible(f"http://127.0.0.1:{port}/") is False


def test_is_url_accessible_rejects_other_schemes(repo):
    monitor = UrlMonitor(repo, 60)
    assert monitor.is_url_accessible("ftp://example.com/file") is False


def test_interval_accepts_timedelta(repo):
    monitor = UrlMonitor(repo, timedelta(minutes=5))
    assert monitor.interval == 300.0


def test_interval_must_be_positive(repo):
    with pytest.raises(ValueError):
        UrlMonitor(repo, 0)


def test_check_urls_reports_only_changes(repo):
    first = Link(short_code="aaa111", long_url="https://example.com/a")
    second = Link(short_code="bbb222", long_url="https://example.com/b")
    repo.create_link(first)
    repo.create_link(second)
    states = {first.long_url: True, second.long_url: True}
    monitor = UrlMonitor(repo, 60, checker=lambda url: states[url])

    assert monitor.check_urls() == []
    assert monitor.check_urls() == []

    states[second.long_url] = False
    changes = monitor.check_urls()
    assert [(link.short_code, prev, cur) for link, prev, cur in changes] == [
        ("bbb222", True, False)
    ]

    states[second.long_url] = True
    changes = monitor.check_urls()
    assert [(link.short_code, prev, cur) for link, prev, cur in changes] == [
        ("bbb222", False, True)
    ]


def test_check_urls_against_live_server(server_url, repo):
    repo.create_link(Link(short_code="live01", long_url=server_url + "/ok"))
    monitor = UrlMonitor(repo, 60)
    assert monitor.check_urls() == []
    assert monitor.check_urls() == []


def test_check_urls_returns_empty_when_repository_fails(tmp_path):
    database = Database(tmp_path / "broken.db")
    monitor = UrlMonitor(LinkRepository(database), 60, checker=lambda url: True)
    assert monitor.check_urls() == []
    database.close()


def test_start_runs_until_stopped(repo):
    repo.create_link(Link(short_code="loop01", long_url="https://example.com/loop"))
    called = threading.Event()
    calls = []

    def checker(url):
        calls.append(url)
        called.set()
        return True

    monitor = UrlMonitor(repo, 0.01, checker=checker)
    thread = threading.Thread(target=monitor.start, daemon=True)
    thread.start()
    assert called.wait(timeout=5)
    monitor.stop()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert calls and set(calls) == {"https://example.com/loop"}