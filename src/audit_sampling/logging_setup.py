"""Structured logging for sampling runs.

Every line is rendered as ``<run_id> {json}`` so that the log of one run can
be grepped out of a shared stream and each payload parsed as JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger


def _run_id_prefix_renderer(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> str:
    """Render an event as '<run_id> {json}'.

    Values JSON cannot encode (dates, enums, paths) fall back to ``str``.
    """
    del logger, method_name
    run_id = event_dict.get("run_id", "-")
    payload = json.dumps(event_dict, separators=(",", ":"), default=str)
    return f"{run_id} {payload}"


def configure_logging(run_id: str, level: int = logging.INFO) -> None:
    """Route structlog through stdlib logging with the run id bound.

    Args:
        run_id (str): Identifier bound to every log line of the run.
        level (int): Stdlib logging level for the root handler.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _run_id_prefix_renderer,
    ]

    # the renderer already produces the full line
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_id=run_id)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structured logger of one engine component."""
    return structlog.get_logger(name)
