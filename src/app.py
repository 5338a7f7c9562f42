"""Application entry point for the tokenscope tracker."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.http_api import start_api, stop_api
from adapters.sqlite_storage import SQLiteTokenStore
from adapters.telegram_poller import ChannelPoller
from client import build_client
from core.extractors import build_extractor_map
from core.router import DispatchRouter
from core.tracker import TokenTracker
from core.update_queue import UpdateQueue

NAME = "TOKENSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tokenscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_tracker(store: SQLiteTokenStore) -> TokenTracker:
    queue = UpdateQueue(
        max_attempts=settings.QUEUE.max_attempts,
        backoff_seconds=settings.QUEUE.backoff_seconds,
    )
    return TokenTracker(store, queue, settings.DEDUP)


async def _watch() -> None:
    logger = logging.getLogger(__name__)

    store = SQLiteTokenStore(settings.DB_PATH)
    tracker = _build_tracker(store)
    tracker.start()
    logger.info("Token store ready at %s", settings.DB_PATH)

    extractors = build_extractor_map(settings.CHANNELS)
    # Markers are read from the store here and written through the tracker queue.
    router = DispatchRouter(extractors, sink=tracker, state=store)
    logger.info("%s channels are routed", len(extractors))

    client = build_client()
    await client.connect()
    # Authorization problems are the one fatal path: nothing works without it.
    if not await client.is_user_authorized():
        await client.disconnect()
        raise RuntimeError("Telegram session is not authorized, run `tokenscope login` first")

    runner = None
    if settings.API_ENABLED:
        runner = await start_api(tracker, settings.API_HOST, settings.API_PORT)

    poller = ChannelPoller(client, router, settings.CHANNELS, settings.POLLING)
    logger.info("Client connected. Polling %s channels...", len(settings.CHANNELS))
    try:
        await poller.run()
    finally:
        await poller.stop()
        await stop_api(runner)
        await tracker.stop()
        await client.disconnect()
        logger.info("Shutdown complete")


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting tokenscope")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted")


def _dashboard() -> None:
    _print_banner()
    from frontend.app import TokenDashboardApp

    TokenDashboardApp(SQLiteTokenStore(settings.DB_PATH)).run()


def _login() -> None:
    _print_banner()
    from get_session import main as login_main

    login_main()


def _import(path: str) -> int:
    _configure_logging()
    logger = logging.getLogger(__name__)
    with open(path, "r", encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        logger.error("%s must contain a JSON array of tokens", path)
        return 1

    async def _run_import() -> bool:
        tracker = _build_tracker(SQLiteTokenStore(settings.DB_PATH))
        tracker.start()
        try:
            return await tracker.import_tokens(rows)
        finally:
            await tracker.stop()

    if not asyncio.run(_run_import()):
        logger.error("Import failed")
        return 1
    print(f"Imported {len(rows)} tokens into {settings.DB_PATH}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tokenscope")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Poll channels and serve the API")
    subparsers.add_parser("dashboard", help="Browse tracked tokens in the terminal")
    subparsers.add_parser("login", help="Authorize Telegram and print a string session")
    import_parser = subparsers.add_parser("import", help="Import tokens from a JSON file")
    import_parser.add_argument("path", help="JSON array of token records")

    args = parser.parse_args(argv)
    if args.command == "dashboard":
        _dashboard()
        return
    if args.command == "login":
        _login()
        return
    if args.command == "import":
        raise SystemExit(_import(args.path))
    _run()


if __name__ == "__main__":
    main()
