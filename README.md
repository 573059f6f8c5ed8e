# linkshort

A small URL shortening service. It stores links in SQLite, answers short
codes with a redirect to the original address, records clicks in the
background, and periodically checks whether the target addresses are still
reachable. Command output and log messages are in French.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Configuration

Settings are read from `configs/config.yaml` (or `configs/config.yml`),
relative to the working directory. The file is optional; any key that is
missing falls back to its default:

```yaml
server:
  port: 8080
  base_url: "http://localhost:8080"
database:
  name: "url_shortener.db"
analytics:
  buffer_size: 1000
  worker_count: 5
monitor:
  interval_minutes: 5
```

Integer settings also accept numeric strings. If the file exists but cannot
be read or does not map onto these settings, a warning is logged and every
command then stops with `FATAL: Configuration non chargée`.

## Command line

Create the `links` and `clicks` tables (do this before `create` or `stats`
on a new database):

```
linkshort migrate
```

Shorten an address and print its six-character code and the full short URL
built from `server.base_url`:

```
linkshort create --url="https://www.example.com/search?q=python"
```

The address must be an absolute URI or an absolute path; anything else is
rejected with `Erreur: URL invalide: ...`.

Show the long URL and click count for a short code:

```
linkshort stats --code="xyz123"
```

Run the HTTP server on `server.port` (all interfaces) together with the
click workers and the URL monitor. Tables are migrated on start; stop it
with Ctrl+C or SIGTERM:

```
linkshort run-server
```

Every command returns exit status 0 on success and 1 on error, with the
error written to standard error.

## HTTP API

| Method | Path                               | Description                             |
|--------|------------------------------------|-----------------------------------------|
| GET    | `/health`                          | Returns `{"status": "ok"}`              |
| POST   | `/api/v1/links`                    | Body `{"long_url": "..."}`; returns 201 |
| GET    | `/api/v1/links/<short_code>/stats` | Short code, long URL and total clicks   |
| GET    | `/<short_code>`                    | 302 redirect to the long URL            |

`POST /api/v1/links` answers 400 when `long_url` is missing or is not an
absolute URL, and on success returns `short_code`, `long_url` and
`full_short_url`. Note that `full_short_url` always starts with
`http://localhost:8080/`, whatever `server.base_url` says.

Unknown short codes answer 404 with `{"error": "Short link not found"}`.
Each redirect puts a click event (timestamp, User-Agent, client IP taken
from `X-Forwarded-For`, `X-Real-Ip` or the peer address) on a bounded queue
that worker threads write to the database; when the queue is full the event
is dropped and a warning is logged.

## URL monitor

`linkshort.monitor.UrlMonitor` checks every stored long URL once at start and
then every `monitor.interval_minutes` minutes with an HTTP HEAD request
(5 second timeout). A 2xx or 3xx status counts as `ACCESSIBLE`; errors,
other statuses and non-HTTP schemes count as `INACCESSIBLE`. The first state
of each link is logged; later changes are logged as `[NOTIFICATION]` and
returned by `check_urls()`. No other notification is sent.

## Using it as a library

```python
from linkshort.config import load_config
from linkshort.repository import Database, LinkRepository, ClickRepository
from linkshort.services import LinkService

config = load_config("configs")
with Database(config.database.name) as db:
    db.migrate()
    service = LinkService(LinkRepository(db), ClickRepository(db))
    link = service.create_link("https://www.example.com/")
    print(link.short_code)
    _, clicks = service.get_link_stats(link.short_code)
```

Unknown codes raise `linkshort.repository.RecordNotFoundError`; storage
failures behind the services raise `linkshort.services.ServiceError`.

Other pieces:

- `linkshort.api.create_app(link_service, click_events=None, buffer_size=1000)`
  builds the Flask application; without a queue it makes one of
  `buffer_size` entries.
- `linkshort.workers.start_click_workers(worker_count, events, click_repo)`
  starts daemon threads that store events from a `queue.Queue`; put one
  `None` per worker on the queue to stop them.
- `linkshort.services.ClickService` records and counts clicks directly.

## What it does not do

There is no way to list, edit or delete links, no custom short codes, no
expiry, and no authentication on the API. Statistics are limited to a total
click count per link; the stored user agents, IP addresses and timestamps
are not reported anywhere. The built-in server is the standard library's
threaded WSGI server, meant for small deployments.