"""Logging for deploybox.

User-facing output goes through rich consoles; this module covers the
diagnostic side. Records are written to stderr under the ``deploybox``
namespace and are stamped with the provisioning run they belong to, so a
debug trace reads as:

    12:00:01 [INFO] deploybox.pipeline [probe_up 3f2a9c1d0b7e]: Provision state: probe_up

The run context is held by ``RUN_CONTEXT`` and updated by the pipeline as it
moves between states and containers.

Verbose output: ``deploybox --debug`` or ``DEPLOYBOX_DEBUG=1``.
"""

from __future__ import annotations

import logging
import os
import sys

NAMESPACE = "deploybox"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s%(run)s: %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d%(run)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


class RunContextFilter(logging.Filter):
    """Adds a ``run`` attribute carrying the current state and container."""

    def __init__(self) -> None:
        super().__init__()
        self.state: str | None = None
        self.container: str | None = None

    def clear(self) -> None:
        self.state = None
        self.container = None

    def label(self) -> str:
        parts = [p for p in (self.state, self.container and self.container[:12]) if p]
        return f" [{' '.join(parts)}]" if parts else ""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run = self.label()
        return True


RUN_CONTEXT = RunContextFilter()


def _get_log_level() -> int:
    if os.environ.get("DEPLOYBOX_DEBUG", "").lower() in ("1", "true", "yes"):
        return logging.DEBUG
    return logging.WARNING


def _formatter(debug: bool) -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT_DEBUG if debug else LOG_FORMAT, datefmt=DATE_FORMAT)


def _own_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if RUN_CONTEXT in h.filters]


def _init_logging() -> None:
    """Attach the stderr handler to the namespace logger once."""
    root_logger = logging.getLogger(NAMESPACE)
    if _own_handlers(root_logger):
        return

    level = _get_log_level()
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter(level == logging.DEBUG))
    handler.addFilter(RUN_CONTEXT)
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the deploybox namespace (typically for __name__)."""
    _init_logging()
    if name != NAMESPACE and not name.startswith(f"{NAMESPACE}."):
        name = f"{NAMESPACE}.{name}"
    return logging.getLogger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch the namespace logger and its handler to debug output (--debug)."""
    level = logging.DEBUG if enabled else logging.WARNING
    root_logger = logging.getLogger(NAMESPACE)
    root_logger.setLevel(level)
    for handler in _own_handlers(root_logger):
        handler.setLevel(level)
        handler.setFormatter(_formatter(enabled))
