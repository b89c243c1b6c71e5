"""Logging for skybake.

Modules log through loguru with a bound context (``provider``,
``component``, ``resource_id``); the lifecycle waiter adds ``attempt`` and
``state`` on every poll it retries. setup_logging() renders that context
between the call site and the message, so a bake log reads as one line per
poll:

    12:00:01.250 | DEBUG    | skybake.providers.wait:_log_waiting:259
        [component=wait resource_id=ocid1.image... attempt=3 state=PROVISIONING]
        - Waiting 10.0s for AVAILABLE

Example:
    handler_ids = setup_logging(LogConfig(level="DEBUG"))
    try:
        bake_image(driver, public_key)
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypeAlias

from loguru import logger

LogLevel: TypeAlias = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

# Rendered in this order; anything else bound on a record is left out
_CONTEXT_KEYS = ("provider", "component", "resource_id", "attempt", "state")


def _format_context(record: Any) -> str:
    extra = record["extra"]
    parts = [f"{key}={extra[key]}" for key in _CONTEXT_KEYS if key in extra]
    if not parts:
        return ""
    # The result is spliced into a loguru template
    text = " ".join(parts).replace("{", "{{").replace("}", "}}")
    return f" [{text}]"


def _formatter(prefix: str, context: str) -> Callable[[Any], str]:
    def format_record(record: Any) -> str:
        return (
            f"{prefix} | {{level: <8}} | {{name}}:{{function}}:{{line}}"
            f"{context.format(_format_context(record))} - {{message}}\n{{exception}}"
        )

    return format_record


_console_format = _formatter(
    "<green>{time:HH:mm:ss.SSS}</green>", "<dim>{}</dim>",
)
_file_format = _formatter("{time:YYYY-MM-DD HH:mm:ss.SSS}", "{}")


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration, the ``[logging]`` table of skybake.toml.

    Attributes:
        level: Minimum level for the console handler.
        file: Log file receiving every DEBUG record. None disables it.
        console: Whether to log to stderr.
    """

    level: LogLevel = "INFO"
    file: str | None = ".skybake/skybake.log"
    console: bool = True


def setup_logging(config: LogConfig) -> list[int]:
    """Install skybake's handlers and return their ids for teardown_logging()."""
    logger.remove()
    logger.enable("skybake")

    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            sys.stderr,
            level=config.level,
            format=_console_format,
            colorize=True,
            filter="skybake",
        ))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            config.file,
            level="DEBUG",
            format=_file_format,
            diagnose=False,
        ))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers added by setup_logging() and silence skybake again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("skybake")
