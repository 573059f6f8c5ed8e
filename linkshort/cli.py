"""Command-line entry point: create links, show stats, migrate, run the server."""

from __future__ import annotations

import argparse
import logging
import queue
import signal
import socketserver
import sqlite3
import sys
import threading
from collections.abc import Sequence
from datetime import timedelta
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from .api import create_app
from .config import Config, ConfigError, load_config
from .models import ClickEvent
from .monitor import UrlMonitor
from .repository import ClickRepository, Database, LinkRepository, RecordNotFoundError
from .services import LinkService
from .workers import start_click_workers

logger = logging.getLogger(__name__)

PROG = "url-shortener"
SHUTDOWN_GRACE_SECONDS = 5.0

_DESCRIPTION = """\
'url-shortener' est une application complète pour gérer des URLs courtes.
Elle inclut un serveur API pour le raccourcissement et la redirection,
ainsi qu'une interface en ligne de commande pour l'administration.

Utilisez 'url-shortener [command] --help' pour plus d'informations sur une commande."""


def _split_scheme(raw: str) -> tuple[str, str]:
    """Split a leading ``scheme:`` off *raw*; an empty scheme means there was none."""
    for index, char in enumerate(raw):
        if char.isascii() and char.isalpha():
            continue
        if char.isascii() and (char.isdigit() or char in "+-."):
            if index == 0:
                return "", raw
            continue
        if char == ":":
            if index == 0:
                raise ValueError("missing protocol scheme")
            return raw[:index].lower(), raw[index + 1 :]
        return "", raw
    return "", raw


def _parse_request_uri(raw: str) -> None:
    """Accept an absolute URI or an absolute path, as an HTTP request line would."""
    try:
        if not raw:
            raise ValueError("empty url")
        if any(ord(char) < 0x20 or ord(char) == 0x7F for char in raw):
            raise ValueError("invalid control character in URL")
        scheme, rest = _split_scheme(raw)
        if not rest.startswith("/"):
            if scheme:
                return
            raise ValueError("invalid URI for request")
        if rest.startswith("//") and (scheme or not rest.startswith("///")):
            authority = rest[2:].split("/", 1)[0]
            host = authority.rsplit("@", 1)[-1]
            if " " in host:
                raise ValueError(f"invalid character {' '!r} in host name")
            if not host.startswith("["):
                _, colon, port = host.rpartition(":")
                if colon and port and not port.isdigit():
                    raise ValueError(f'invalid port ":{port}" after host')
    except ValueError as exc:
        raise ValueError(f'parse "{raw}": {exc}') from None


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def _open_database(config: Config) -> Database:
    return Database(config.database.name)


def run_create(config: Config | None, url: str) -> int:
    """Shorten *url*, print the new code and full short URL; return the exit status."""
    if not url:
        return _fail("Erreur: Le flag --url est requis")
    try:
        _parse_request_uri(url)
    except ValueError as exc:
        return _fail(f"Erreur: URL invalide: {exc}")
    if config is None:
        return _fail("FATAL: Configuration non chargée")

    try:
        db = _open_database(config)
    except sqlite3.Error as exc:
        return _fail(f"FATAL: Échec de la connexion à la base de données: {exc}")

    with db:
        service = LinkService(LinkRepository(db), ClickRepository(db))
        try:
            link = service.create_link(url)
        except Exception as exc:
            return _fail(f"Erreur lors de la création du lien: {exc}")

    print("URL courte créée avec succès:")
    print(f"Code: {link.short_code}")
    print(f"URL complète: {config.server.base_url}/{link.short_code}")
    return 0


def run_migrate(config: Config | None) -> int:
    """Create or update the database tables; return the exit status."""
    if config is None:
        return _fail("FATAL: Configuration non chargée")
    try:
        db = _open_database(config)
    except sqlite3.Error as exc:
        return _fail(f"FATAL: Échec de la connexion à la base de données: {exc}")
    with db:
        try:
            db.migrate()
        except sqlite3.Error as exc:
            return _fail(f"FATAL: Échec de la migration: {exc}")
    logger.info(
        "Migrations exécutées avec succès pour la base de données: %s", config.database.name
    )
    return 0


def run_stats(config: Config | None, code: str) -> int:
    """Print the long URL and click count of *code*; return the exit status."""
    if not code:
        return _fail("Erreur: Le flag --code est requis")
    if config is None:
        return _fail("FATAL: Configuration non chargée")
    try:
        db = _open_database(config)
    except sqlite3.Error as exc:
        return _fail(f"FATAL: Échec de la connexion à la base de données: {exc}")

    with db:
        service = LinkService(LinkRepository(db), ClickRepository(db))
        try:
            link, total_clicks = service.get_link_stats(code)
        except RecordNotFoundError:
            return _fail(f"Erreur: Aucun lien trouvé avec le code: {code}")
        except Exception as exc:
            return _fail(f"Erreur lors de la récupération des statistiques: {exc}")

    print(f"Statistiques pour le code court: {link.short_code}")
    print(f"URL longue: {link.long_url}")
    print(f"Total de clics: {total_clicks}")
    return 0


class _ThreadingWSGIServer(socketserver.ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _LoggingRequestHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)


def _wait_for_shutdown_signal() -> None:
    stop = threading.Event()

    def _handler(signum: int, frame: object) -> None:
        stop.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handler)
        except ValueError:
            pass
    try:
        while not stop.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def run_server(config: Config | None) -> int:
    """Run the HTTP API with its click workers and URL monitor until SIGINT/SIGTERM."""
    if config is None:
        return _fail("FATAL: Configuration non chargée")
    try:
        db = _open_database(config)
    except sqlite3.Error as exc:
        return _fail(f"FATAL: Échec de la connexion à la base de données: {exc}")

    with db:
        try:
            db.migrate()
        except sqlite3.Error as exc:
            return _fail(f"FATAL: Échec de la migration: {exc}")

        link_repo = LinkRepository(db)
        click_repo = ClickRepository(db)
        logger.info("Repositories initialisés.")

        link_service = LinkService(link_repo, click_repo)
        logger.info("Services métiers initialisés.")

        buffer_size = config.analytics.buffer_size
        events: queue.Queue[ClickEvent | None] = queue.Queue(maxsize=max(buffer_size, 1))
        workers = start_click_workers(config.analytics.worker_count, events, click_repo)
        logger.info(
            "Channel d'événements de clic initialisé avec un buffer de %d. "
            "%d worker(s) de clics démarré(s).",
            buffer_size,
            config.analytics.worker_count,
        )

        interval = timedelta(minutes=config.monitor.interval_minutes)
        monitor = UrlMonitor(link_repo, interval)
        monitor_thread = threading.Thread(target=monitor.start, name="url-monitor", daemon=True)
        monitor_thread.start()
        logger.info("Moniteur d'URLs démarré avec un intervalle de %s.", interval)

        app = create_app(link_service, events, buffer_size)
        logger.info("Routes API configurées.")

        try:
            server = make_server(
                "",
                config.server.port,
                app,
                server_class=_ThreadingWSGIServer,
                handler_class=_LoggingRequestHandler,
            )
        except OSError as exc:
            monitor.stop()
            return _fail(f"FATAL: Échec du démarrage du serveur: {exc}")

        server_thread = threading.Thread(
            target=server.serve_forever, name="http-server", daemon=True
        )
        logger.info("Serveur HTTP démarré sur le port %d", config.server.port)
        logger.info("URL de base: %s", config.server.base_url)
        server_thread.start()

        _wait_for_shutdown_signal()
        logger.info("Signal d'arrêt reçu. Arrêt du serveur...")
        server.shutdown()
        server.server_close()
        monitor.stop()

        logger.info("Arrêt en cours... Donnez un peu de temps aux workers pour finir.")
        for _ in workers:
            events.put(None)
        for worker in workers:
            worker.join(SHUTDOWN_GRACE_SECONDS)

    logger.info("Serveur arrêté proprement.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the create, stats, migrate and run-server commands."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", metavar="command")

    create = commands.add_parser(
        "create",
        help="Crée une URL courte à partir d'une URL longue.",
        description=(
            "Cette commande raccourcit une URL longue fournie et affiche le code court généré."
        ),
    )
    create.add_argument("--url", required=True, help="URL longue à raccourcir")

    commands.add_parser(
        "migrate",
        help="Exécute les migrations de base de données.",
        description=(
            "Cette commande exécute les migrations de base de données pour créer "
            "ou mettre à jour les tables 'links' et 'clicks'."
        ),
    )

    stats = commands.add_parser(
        "stats",
        help="Affiche les statistiques (nombre de clics) pour un lien court.",
        description=(
            "Cette commande permet de récupérer et d'afficher le nombre total de clics "
            "pour une URL courte spécifique en utilisant son code."
        ),
    )
    stats.add_argument(
        "--code", required=True, help="Code court pour lequel afficher les statistiques"
    )

    commands.add_parser(
        "run-server",
        help="Lance le serveur API de raccourcissement d'URLs et les processus de fond.",
        description=(
            "Cette commande initialise la base de données, configure les APIs, démarre "
            "les workers asynchrones pour les clics et le moniteur d'URLs, puis lance "
            "le serveur HTTP."
        ),
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command named in *argv* and return its exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if not exc.code else 1

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    config: Config | None
    try:
        config = load_config()
    except ConfigError as exc:
        logger.warning(
            "Attention: Problème lors du chargement de la configuration: %s. "
            "Utilisation des valeurs par défaut.",
            exc,
        )
        config = None

    if args.command == "create":
        return run_create(config, args.url)
    if args.command == "stats":
        return run_stats(config, args.code)
    if args.command == "migrate":
        return run_migrate(config)
    return run_server(config)


if __name__ == "__main__":
    sys.exit(main())