"""Application entry point for the autoremind watcher."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.slack_actions import SlackActions
from adapters.slack_stream import RTMEventStream
from client import build_client, load_token
from core.config import ProcessorConfig
from core.consumer import consume
from core.errors import AutoremindError
from core.notifier import AcknowledgmentNotifier
from core.ports import EventStreamPort
from core.processor import MessageProcessor
from core.rules_engine import Rule, build_rules, format_duration
from core.scheduler import DeferredActionScheduler
from session import authenticate
from session import main as whoami

NAME = "AUTOREMIND"
FONT = "tarty-1"

DEFAULT_REDACT = ["SLACK_TOKEN"]


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
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", DEFAULT_REDACT):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    config = config or {}
    if not config.get("enabled", True):
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
        path = file_cfg.get("path", "logs/autoremind.log")
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


def _load_rules(config_path: Optional[str]) -> tuple[settings.Settings, list[Rule]]:
    loaded = settings.load_settings(config_path)
    return loaded, build_rules(loaded.rules)


async def _watch(loaded: settings.Settings, rules: list[Rule], token: str) -> None:
    logger = logging.getLogger(__name__)

    client = build_client(token)
    identity = await authenticate(client)
    logger.info("authenticated as: %s (%s)", identity.user_name, identity.user_id)

    actions = SlackActions(client)
    processor = MessageProcessor(
        rules=rules,
        identity=identity,
        scheduler=DeferredActionScheduler(actions),
        notifier=AcknowledgmentNotifier(actions),
        config=ProcessorConfig(acknowledge=loaded.acknowledge),
    )

    stop = asyncio.Event()
    stream: EventStreamPort = RTMEventStream(token, auto_reconnect=loaded.auto_reconnect, stop=stop)
    task = asyncio.create_task(consume(stream.events(), processor, stop=stop))

    # One shutdown signal stops the stream and cancels whatever remote call
    # is in flight.
    def _shutdown() -> None:
        stop.set()
        task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _shutdown)

    logger.info("Listening for messages from %s...", identity.user_name or identity.user_id)
    try:
        await task
    except asyncio.CancelledError:
        if not stop.is_set():
            raise
        logger.info("Shutdown requested, watcher stopped")


def _run(config_path: Optional[str]) -> None:
    _print_banner()
    logger = logging.getLogger(__name__)

    try:
        loaded, rules = _load_rules(config_path)
        _configure_logging(loaded.logging)
        logger.info("Starting autoremind")

        if not rules:
            logger.warning("No enabled rules in %s, nothing will be matched", loaded.path)
        logger.info("%s rules are loaded", len(rules))

        token = load_token()
        asyncio.run(_watch(loaded, rules, token))
    except AutoremindError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        raise SystemExit(f"autoremind: {exc}") from exc


def _check(config_path: Optional[str]) -> None:
    try:
        loaded, rules = _load_rules(config_path)
    except AutoremindError as exc:
        raise SystemExit(f"autoremind: {exc}") from exc

    print(f"{loaded.path}: {len(rules)} rule(s)")
    for rule in rules:
        print(f"{rule.name}: {rule.pattern.pattern} -> {format_duration(rule.delay)}")


def _whoami() -> None:
    try:
        asyncio.run(whoami())
    except AutoremindError as exc:
        raise SystemExit(f"autoremind: {exc}") from exc


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="autoremind")
    parser.add_argument("--config", help="Path to config.json (default: $AUTOREMIND_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("check", help="Validate the rules in the config file and list them")
    subparsers.add_parser("whoami", help="Show the account the Slack token belongs to")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check(args.config)
        return
    if args.command == "whoami":
        _whoami()
        return
    _run(args.config)


if __name__ == "__main__":
    main()
