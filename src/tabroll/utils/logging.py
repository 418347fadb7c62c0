"""Structured logging helpers for the tabroll service.

Everything the history tracker considers non-fatal (host enumeration and
activation failures, commands issued against unknown or non-normal windows)
is reported on the ``tabroll`` debug channel only. Running at INFO keeps the
service silent; :func:`set_debug_channel` flips it at runtime.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = [
    "setup_logging",
    "get_log_path",
    "set_debug_channel",
    "debug_channel_enabled",
]

_DEFAULT_LOG_DIR = Path.home() / ".tabroll" / "logs"
_CHANNEL = "tabroll"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_CONFIGURED = False
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 512_000,
    backup_count: int = 2,
    force: bool = False,
) -> Path:
    """Configure root logging with a rotating file and an optional console handler."""

    global _CONFIGURED, _LOG_PATH
    if _CONFIGURED and not force and _LOG_PATH is not None:
        return _LOG_PATH

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / "tabroll.log"

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    handlers.append(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _tune_external_loggers(level)
    logging.getLogger(_CHANNEL).setLevel(level)

    _CONFIGURED = True
    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def set_debug_channel(enabled: bool) -> None:
    """Turn the ``tabroll`` debug channel on or off."""

    channel = logging.getLogger(_CHANNEL)
    channel.setLevel(logging.DEBUG if enabled else logging.INFO)
    if not enabled:
        return
    for handler in logging.getLogger().handlers:
        if handler.level > logging.DEBUG:
            handler.setLevel(logging.DEBUG)


def debug_channel_enabled() -> bool:
    return logging.getLogger(_CHANNEL).isEnabledFor(logging.DEBUG)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("TABROLL_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _tune_external_loggers(root_level: int) -> None:
    quiet_level = logging.WARNING if root_level < logging.WARNING else root_level
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
