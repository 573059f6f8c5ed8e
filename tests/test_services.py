import pytest

from linkshort.models import Click, Link
from linkshort.repository import (
    ClickRepository,
    Database,
    LinkRepository,
    RecordNotFoundError,
)
from linkshort.services import (
    CHARSET,
    MAX_RETRIES,
    SHORT_CODE_LENGTH,
    ClickService,
    LinkService,
    ServiceError,
    ShortCodeExhaustedError,
)


@pytest.fixture
def db():
    database = Database(":memory:")
    database.migrate()
    yield database
    database.close()


@pytest.fixture
def service(db):
    return LinkService(LinkRepository(db), ClickRepository(db))


class CollidingLinkRepo:
    """Reports the first `collisions` codes as taken, then any code as free."""

    def __init__(self, collisions):
        self.collisions = collisions
        self.lookups = []
        self.created = []

    def get_link_by_short_code(self, short_code):
        self.lookups.append(short_code)
        if len(self.lookups) <= self.collisions:
            return Link(short_code=short_code, long_url="https://example.com/taken", id=1)
        raise RecordNotFoundError()

    def create_link(self, link):
        link.id = len(self.created) + 1
        self.created.append(link)


class BrokenRepo:
    def get_link_by_short_code(self, short_code):
        raise RuntimeError("disk failure")

    def create_link(self, link):
        raise RuntimeError("disk failure")

    def create_click(self, click):
        raise RuntimeError("disk failure")

    def count_clicks_by_link_id(self, link_id):
        raise RuntimeError("disk failure")


class FreeButUnwritableRepo(BrokenRepo):
    def get_link_by_short_code(self, short_code):
        raise RecordNotFoundError()


def test_generate_short_code_length_and_charset(service):
    code = service.generate_short_code(SHORT_CODE_LENGTH)
    assert len(code) == SHORT_CODE_LENGTH
    assert set(code) <= set(CHARSET)


def test_generate_short_code_zero_length(service):
    assert service.generate_short_code(0) == ""


def test_generate_short_code_negative_length(service):
    with pytest.raises(ValueError):
        service.generate_short_code(-1)


def test_create_link_persists(service, db):
    link = service.create_link("https://example.com/long")
    assert len(link.short_code) == SHORT_CODE_LENGTH
    assert link.created_at == link.updated_at
    stored = LinkRepository(db).get_link_by_short_code(link.short_code)
    assert stored.id == link.id
    assert stored.long_url == "https://example.com/long"


def test_create_link_retries_after_collisions():
    repo = CollidingLinkRepo(collisions=2)
    link = LinkService(repo, BrokenRepo()).create_link("https://example.com")
    assert len(repo.lookups) == 3
    assert link.short_code == repo.lookups[-1]
    assert repo.created == [link]


def test_create_link_gives_up_after_max_retries():
    repo = CollidingLinkRepo(collisions=MAX_RETRIES)
    with pytest.raises(ShortCodeExhaustedError):
        LinkService(repo, BrokenRepo()).create_link("https://example.com")
    assert len(repo.lookups) == MAX_RETRIES
    assert repo.created == []


def test_create_link_lookup_failure_is_wrapped():
    with pytest.raises(ServiceError, match="uniqueness"):
        LinkService(BrokenRepo(), BrokenRepo()).create_link("https://example.com")


def test_create_link_insert_failure_is_wrapped():
    with pytest.raises(ServiceError, match="failed to create link"):
        LinkService(FreeButUnwritableRepo(), BrokenRepo()).create_link("https://example.com")


def test_get_link_by_short_code(service):
    link = service.create_link("https://example.com/x")
    assert service.get_link_by_short_code(link.short_code) == link


def test_get_link_by_short_code_not_found(service):
    with pytest.raises(RecordNotFoundError):
        service.get_link_by_short_code("missing")


def test_get_link_by_short_code_failure_is_wrapped():
    with pytest.raises(ServiceError):
        LinkService(BrokenRepo(), BrokenRepo()).get_link_by_short_code("abc")


def test_get_link_stats_counts_clicks(service, db):
    link = service.create_link("https://example.com/stats")
    clicks = ClickRepository(db)
    made = [Click(link_id=link.id) for _ in range(4)]
    for click in made:
        clicks.create_click(click)
    found, total = service.get_link_stats(link.short_code)
    assert found == link
    assert total == len(made)


def test_get_link_stats_not_found(service):
    with pytest.raises(RecordNotFoundError):
        service.get_link_stats("missing")


def test_get_link_stats_count_failure_is_wrapped():
    repo = CollidingLinkRepo(collisions=1)
    with pytest.raises(ServiceError, match="failed to count clicks"):
        LinkService(repo, BrokenRepo()).get_link_stats("abc")


def test_click_service_records_and_counts(db):
    links = LinkRepository(db)
    link = Link(short_code="cs1", long_url="https://example.com")
    links.create_link(link)
    clicks = ClickService(ClickRepository(db))
    click = Click(link_id=link.id, user_agent="ua", ip_address="127.0.0.1")
    clicks.record_click(click)
    assert click.id is not None
    assert clicks.get_clicks_count_by_link_id(link.id) == 1


def test_click_service_errors_are_wrapped():
    clicks = ClickService(BrokenRepo())
    with pytest.raises(ServiceError, match="failed to record click"):
        clicks.record_click(Click(link_id=1))
    with pytest.raises(ServiceError, match="link ID 9"):
        clicks.get_clicks_count_by_link_id(9)