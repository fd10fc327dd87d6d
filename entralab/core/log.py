"""Logging helpers for EntraLab.

Adds a ``TRACE`` level below ``DEBUG`` and an adapter that tags every record
with the name of the operation that emitted it::

    log = operation_logger(logger, "create_group")
    log.trace("enter")
    log.info("Creating group %s", name)   # record.operation == "create_group"
"""
from __future__ import annotations
import logging
import sys
from typing import Any

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(operation)s] %(message)s"

_configured = False


class OperationFilter(logging.Filter):
    """Guarantee ``record.operation`` exists so the format string never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "operation"):
            record.operation = "-"
        return True


class OperationAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps records with an operation tag."""

    def __init__(self, logger: logging.Logger, operation: str):
        super().__init__(logger, {"operation": operation})

    @property
    def operation(self) -> str:
        return self.extra["operation"]

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("operation", self.operation)
        kwargs["extra"] = extra
        return msg, kwargs

    def trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(TRACE, msg, *args, **kwargs)


def operation_logger(logger: logging.Logger, operation: str) -> OperationAdapter:
    """Return an adapter for ``logger`` tagged with ``operation``."""
    return OperationAdapter(logger, operation)


def configure_logging(level: int = logging.INFO, third_party_level: int = logging.WARNING) -> None:
    """Install a stderr handler on the root logger.

    Call once from a CLI entry point. Subsequent calls only adjust the level.

    Args:
        level: Level for EntraLab loggers (``TRACE``, ``DEBUG``, ``INFO``...)
        third_party_level: Level for msal/urllib3/requests loggers
    """
    global _configured
    root = logging.getLogger()
    root.setLevel(level)
    if not _configured:
        _configured = True
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        handler = logging.StreamHandler(sys.stderr)
        handler.addFilter(OperationFilter())
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for name in ("msal", "urllib3", "requests"):
        logging.getLogger(name).setLevel(third_party_level)
