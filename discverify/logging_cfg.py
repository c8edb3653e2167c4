"""Centralized logging helpers for discverify.

Provide a small helper to create a logger that writes to stdout, plus the
root console setup, correlation ids and a call-timing decorator. Keeping this in
one place makes it easy to adjust formatting/verbosity.
"""

from __future__ import annotations

import contextvars
import functools
import json
import logging
import os
import sys
import time
import uuid
from typing import Optional


def get_logger(name: str = "discverify", level: int = logging.INFO) -> logging.Logger:
    if not name.startswith("discverify"):
        name = f"discverify.{name}"
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Check if console handler exists
    has_console = any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    if not has_console and not _root_has_console():
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(ch)

    return logger


def _root_has_console() -> bool:
    return any(
        getattr(h, "name", None) == "discverify_console"
        for h in logging.getLogger().handlers
    )


# Correlation ID support for tracing one verification across modules
_cid_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "discverify_correlation_id", default=None
)


def set_correlation_id(cid: str | None = None) -> str:
    """Set or create and set a correlation id for the current context.

    Returns the correlation id string.
    """
    if cid is None:
        cid = uuid.uuid4().hex
    _cid_var.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _cid_var.get()


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter that includes correlation id when available."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = get_correlation_id()
        if cid:
            payload["correlation_id"] = cid
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def log_call(level: int = logging.DEBUG):
    """Decorator that logs function entry, duration and exit.

    Usage:
        @log_call()
        def finish(self):
            ...
    """

    def _decorator(func):
        @functools.wraps(func)
        def _wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            start = time.time()
            try:
                logger.debug("Entering %s", func.__qualname__)
                result = func(*args, **kwargs)
                duration = (time.time() - start) * 1000.0
                logger.log(
                    level,
                    "Exited %s; duration_ms=%.2f",
                    func.__qualname__,
                    duration,
                )
                return result
            except Exception:
                duration = (time.time() - start) * 1000.0
                logger.exception(
                    "Exception in %s after %.2fms",
                    func.__qualname__,
                    duration,
                )
                raise

        return _wrapper

    return _decorator


def configure_logging(env: Optional[str] = "auto", level: int = logging.INFO):
    """Configure the root logger.

    env: 'auto' (default) | 'json' | 'human'
    - 'auto' chooses human-readable when stderr is a TTY, otherwise JSON.
    - 'json' forces JSON output.
    - 'human' forces a readable formatter.

    Returns the root logger.
    """
    chosen = env or "auto"
    if chosen == "auto":
        chosen = os.getenv("DISCVERIFY_LOG_FORMAT", "auto")
    chosen = chosen.lower()
    if chosen in ("json", "human"):
        mode = chosen
    else:
        try:
            mode = "human" if sys.stderr.isatty() else "json"
        except (AttributeError, ValueError):
            mode = "json"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Add one console handler idempotently (mark by name)
    if not _root_has_console():
        sh = logging.StreamHandler()
        sh.name = "discverify_console"
        if mode == "json":
            sh.setFormatter(JsonFormatter())
        else:
            sh.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        root_logger.addHandler(sh)

    return root_logger
