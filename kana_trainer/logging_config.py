"""Logging setup for the trainer.

The curses screen owns the terminal, so records go to a file. ``log_event``
adapts the scheduler's structured events to the standard logging module.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from . import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

event_logger = logging.getLogger("kana_trainer.events")


def configure_logging(debug: bool = config.DEBUG, log_path: str = config.LOG_PATH) -> None:
    root = logging.getLogger("kana_trainer")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False


def log_event(name: str, fields: Dict[str, Any]) -> None:
    if not event_logger.isEnabledFor(logging.DEBUG):
        return
    details = " ".join(f"{k}={v:.4f}" if isinstance(v, float) else f"{k}={v}" for k, v in fields.items())
    event_logger.debug("%s %s", name, details)
