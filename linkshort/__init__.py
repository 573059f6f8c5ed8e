"""URL shortening service: SQLite storage, a Flask API, click workers, a URL monitor and a CLI."""

__version__ = "0.1.0"