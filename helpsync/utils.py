from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

LOGGER = logging.getLogger("helpsync")
_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Optional[Path] = None


def _configure_logger(log_path: Optional[Path]) -> None:
    """Configure the shared logger for stdout and, optionally, ``log_path``."""

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    LOGGER.addHandler(stream_handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        LOGGER.addHandler(file_handler)

    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False

    _CURRENT_LOG_FILE = log_path
    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    if _LOGGER_INITIALISED:
        return
    _configure_logger(None)


def setup_run_logger(log_dir: Optional[Path]) -> Optional[Path]:
    """Point the logger at a fresh timestamped file under ``log_dir``.

    With no ``log_dir`` the logger writes to stdout only and ``None`` is
    returned.
    """

    if log_dir is None:
        _configure_logger(None)
        return None

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = Path(log_dir) / f"sync_{timestamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def get_current_log_path() -> Optional[Path]:
    """Return the log file currently receiving lines, if any."""

    _ensure_logger()
    return _CURRENT_LOG_FILE


def log_line(message: str) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.info(message)


def short_error_message(exc: BaseException, max_length: int = 200) -> str:
    """Return a truncated string representation of ``exc`` for logging."""

    message = str(exc) or type(exc).__name__
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def save_json_file(path: Path, payload: Any) -> None:
    """Persist ``payload`` as JSON, replacing ``path`` atomically."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


__all__ = [
    "LOGGER",
    "get_current_log_path",
    "log_line",
    "save_json_file",
    "setup_run_logger",
    "short_error_message",
]
