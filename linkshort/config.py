"""Application configuration with defaults and an optional YAML file."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "./configs"
CONFIG_NAME = "config"
_CONFIG_EXTENSIONS = ("yaml", "yml")

DEFAULT_PORT = 8080
DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_DATABASE_NAME = "url_shortener.db"
DEFAULT_BUFFER_SIZE = 1000
DEFAULT_WORKER_COUNT = 5
DEFAULT_INTERVAL_MINUTES = 5


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or mapped."""


@dataclass
class ServerConfig:
    port: int = DEFAULT_PORT
    base_url: str = DEFAULT_BASE_URL


@dataclass
class DatabaseConfig:
    name: str = DEFAULT_DATABASE_NAME


@dataclass
class AnalyticsConfig:
    buffer_size: int = DEFAULT_BUFFER_SIZE
    worker_count: int = DEFAULT_WORKER_COUNT


@dataclass
class MonitorConfig:
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(
            f"erreur lors du mapping de la configuration: '{name}' doit être une table"
        )
    return {str(key).lower(): item for key, item in value.items()}


def _as_int(section: Mapping[str, Any], key: str, default: int, path: str) -> int:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigError(
        f"erreur lors du mapping de la configuration: '{path}' n'est pas un entier: {value!r}"
    )


def _as_str(section: Mapping[str, Any], key: str, default: str, path: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, (Mapping, list)):
        raise ConfigError(
            f"erreur lors du mapping de la configuration: '{path}' n'est pas une chaîne"
        )
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class Config:
    """The whole application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Config":
        """Build a configuration from nested mappings, filling gaps with defaults."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError(
                "erreur lors du mapping de la configuration: la racine doit être une table"
            )
        sections = {str(key).lower(): value for key, value in data.items()}
        server = _section(sections, "server")
        database = _section(sections, "database")
        analytics = _section(sections, "analytics")
        monitor = _section(sections, "monitor")
        return cls(
            server=ServerConfig(
                port=_as_int(server, "port", DEFAULT_PORT, "server.port"),
                base_url=_as_str(server, "base_url", DEFAULT_BASE_URL, "server.base_url"),
            ),
            database=DatabaseConfig(
                name=_as_str(database, "name", DEFAULT_DATABASE_NAME, "database.name"),
            ),
            analytics=AnalyticsConfig(
                buffer_size=_as_int(
                    analytics, "buffer_size", DEFAULT_BUFFER_SIZE, "analytics.buffer_size"
                ),
                worker_count=_as_int(
                    analytics, "worker_count", DEFAULT_WORKER_COUNT, "analytics.worker_count"
                ),
            ),
            monitor=MonitorConfig(
                interval_minutes=_as_int(
                    monitor,
                    "interval_minutes",
                    DEFAULT_INTERVAL_MINUTES,
                    "monitor.interval_minutes",
                ),
            ),
        )


def _find_config_file(config_dir: Path) -> Path | None:
    for extension in _CONFIG_EXTENSIONS:
        candidate = config_dir / f"{CONFIG_NAME}.{extension}"
        if candidate.is_file():
            return candidate
    return None


def load_config(config_dir: str | Path = DEFAULT_CONFIG_DIR) -> Config:
    """Load ``config.yaml`` from *config_dir*, falling back to defaults when absent."""
    path = _find_config_file(Path(config_dir))
    if path is None:
        logger.info("Fichier de configuration non trouvé. Utilisation des valeurs par défaut.")
        data: Any = {}
    else:
        try:
            with path.open(encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(
                f"erreur lors de la lecture du fichier de configuration: {exc}"
            ) from exc
        logger.info("Fichier de configuration chargé: %s", path)

    config = Config.from_mapping(data)
    logger.info(
        "Configuration loaded: Server Port=%d, DB Name=%s, Analytics Buffer=%d, "
        "Monitor Interval=%dmin",
        config.server.port,
        config.database.name,
        config.analytics.buffer_size,
        config.monitor.interval_minutes,
    )
    return config