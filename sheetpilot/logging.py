"""SheetPilot — Structured logging configuration.

Every layer logs through structlog with event-style keys (``batch_started``,
``action_applied``, ``xlsx_saved``).  While a batch runs, records carry the
batch id, and while an action is dispatched they also carry its input index
and kind, so a single batch can be followed through the validator, the
resolver and each mutator.

Records go to stderr; stdout belongs to the CLI's report output.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, WrappedLogger

_batch_id: ContextVar[str | None] = ContextVar("batch_id", default=None)
_action: ContextVar[tuple[int, str] | None] = ContextVar("action", default=None)

_QUIET_LOGGERS = ("asyncio", "openpyxl")


@contextmanager
def batch_context(batch_id: str) -> Iterator[None]:
    """Tag every record emitted inside the block with *batch_id*."""
    token = _batch_id.set(batch_id)
    try:
        yield
    finally:
        _batch_id.reset(token)


@contextmanager
def action_context(index: int, kind: str) -> Iterator[None]:
    """Tag every record emitted inside the block with the action being dispatched."""
    token = _action.set((index, kind))
    try:
        yield
    finally:
        _action.reset(token)


def _add_batch_fields(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    if (batch_id := _batch_id.get()) is not None:
        event_dict.setdefault("batch_id", batch_id)
    if (action := _action.get()) is not None:
        event_dict.setdefault("action_index", action[0])
        event_dict.setdefault("action_kind", action[1])
    return event_dict


def _renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "warning",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level:    debug, info, warning, error or critical.
        format:   ``"console"`` or ``"json"``.
        log_file: Also write records to this file.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_batch_fields,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(format)],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named *name* (normally ``__name__``)."""
    return structlog.get_logger(name)
