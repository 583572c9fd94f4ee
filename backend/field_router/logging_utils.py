from __future__ import annotations

import logging
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .errors import normalize_reason_code
from .settings import settings

LOGGER_NAME = "field_router"
LOG_FILE_NAME = "routing.log.jsonl"

# Stamped on every record.
_STATIC_FIELDS: dict[str, Any] = {"service": LOGGER_NAME}


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _resolve_log_dir(configured_out_dir: str) -> Path | None:
    candidates = (
        Path(configured_out_dir) / "logs",
        Path(gettempdir()) / LOGGER_NAME / "logs",
    )
    for log_dir in candidates:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
            return log_dir
        except OSError:
            continue
    return None


def _formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")


def get_logger() -> logging.Logger:
    """The ``field_router`` JSON logger: stderr plus ``out/logs/routing.log.jsonl`` when writable."""
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger

    logger.setLevel(_parse_level(settings.log_level))
    logger.propagate = False
    formatter = _formatter()

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    log_dir = _resolve_log_dir(settings.out_dir)
    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def event_fields(event: str, **fields: Any) -> dict[str, Any]:
    """Record extras for one routing event.

    Unknown ``reason_code`` values are folded onto the frozen taxonomy.
    """
    payload: dict[str, Any] = {**_STATIC_FIELDS, "event": event, **fields}
    if "reason_code" in payload:
        payload["reason_code"] = normalize_reason_code(payload["reason_code"])
    return payload


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    get_logger().log(level, event, extra=event_fields(event, **fields))
