from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import LogConfig

_MAX_VALUE_CHARS = 400


def sanitize_log_value(value: Any) -> str:
    if isinstance(value, BaseException):
        text = f"{type(value).__name__}: {value}"
    else:
        text = str(value)
    text = " ".join(text.split())
    if len(text) > _MAX_VALUE_CHARS:
        text = text[: _MAX_VALUE_CHARS - 3] + "..."
    if not text or any(ch in text for ch in (" ", "=", '"')):
        text = '"' + text.replace('"', '\\"') + '"'
    return text


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit a single `event key=value ...` line; logging failures are ignored."""
    try:
        if not logger.isEnabledFor(level):
            return
        parts = [event]
        for key, value in fields.items():
            if value is None:
                continue
            parts.append(f"{key}={sanitize_log_value(value)}")
        logger.log(level, " ".join(parts))
    except Exception:
        pass


def setup_rotating_logger(name: str, log_config: LogConfig) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(log_config.level)
    target = str(log_config.path.resolve())
    for handler in logger.handlers:
        if (
            isinstance(handler, RotatingFileHandler)
            and getattr(handler, "baseFilename", None) == target
        ):
            return logger
    log_config.path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_config.path,
        maxBytes=log_config.max_bytes,
        backupCount=log_config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logger.addHandler(handler)
    return logger
