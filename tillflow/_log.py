"""
Logging — structlog configuration.

Every module logs through ``structlog.get_logger(__name__)`` with an event
name and key/value context; ``configure_logging`` installs the JSON chain.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int | str = logging.INFO, *, json: bool = True) -> None:
    """
    Install the structlog processor chain.

    Args:
        level: Minimum level (``logging.INFO`` or ``"info"``).
        json: Render JSON lines; ``False`` uses the console renderer.
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping()[level.upper()]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger bound to the module name."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)


__all__ = ("configure_logging", "get_logger")
