"""Logging configuration helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty third-party loggers kept at WARNING unless BLE tracing is requested
_NOISY_LOGGERS = ("bleak", "aiohttp.access")


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_ble: bool = False
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    Parameters
    ----------
    level:
        Log level name, e.g. "DEBUG". Unknown names fall back to INFO.
    log_path:
        File to append to in addition to the console. Parent directories are created.
    log_ble:
        Leave the bleak backend loggers at ``level`` to trace pairing and GATT traffic.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    logging.captureWarnings(True)
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=_FORMAT)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(file_handler)

    noisy_level = logging.NOTSET if log_ble else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
