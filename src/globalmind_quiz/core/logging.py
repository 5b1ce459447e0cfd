"""Logging helpers: JSON-lines file output plus a session-aware adapter."""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Optional

__all__ = [
    "JsonLogFormatter",
    "SessionLogAdapter",
    "configure_logger",
]

# Handlers we install carry this attribute so reconfiguration can find them.
_ROLE_ATTR = "_globalmind_role"

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields land under ``"extra"``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info
        return json.dumps(entry, ensure_ascii=False)


class SessionLogAdapter(logging.LoggerAdapter):
    """Stamp every record with the live session epoch and question sequence.

    ``context`` is called on each log call so the values reflect the state at
    the moment the record is emitted, not when the adapter was built.
    """

    def __init__(
        self,
        logger: logging.Logger,
        context: Callable[[], Mapping[str, Any]],
    ) -> None:
        super().__init__(logger, {})
        self._context = context

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self._context())
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach a rotating JSON file handler (and optionally stderr) to ``name``.

    Calling this again for the same logger reuses the file handler, so
    repeated CLI invocations inside one process do not duplicate output.
    ``verbose`` lowers the file threshold to DEBUG and mirrors records to
    stderr; turning it off again removes the stderr handler.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    file_handler = _find_handler(logger, "file")
    if file_handler is None:
        log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
        file_handler = _open_log_file(log_dir, log_name, max_bytes, backup_count)
        logger.addHandler(file_handler)
    file_handler.setLevel(logging.DEBUG if verbose else _level_number(level))

    console = _find_handler(logger, "console")
    if verbose and console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        setattr(console, _ROLE_ATTR, "console")
        logger.addHandler(console)
    elif not verbose and console is not None:
        logger.removeHandler(console)
        console.close()

    return logger, Path(file_handler.baseFilename)


def _find_handler(logger: logging.Logger, role: str) -> Optional[Any]:
    for handler in logger.handlers:
        if getattr(handler, _ROLE_ATTR, None) == role:
            return handler
    return None


def _open_log_file(
    log_dir: Path, filename: str, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    """Open the log under ``log_dir``, or the temp fallback if it is locked."""

    last_error: PermissionError | None = None
    for directory in (log_dir, _fallback_log_dir()):
        try:
            path = _prepare_log_file(directory, filename)
            handler = RotatingFileHandler(
                path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except PermissionError as exc:
            last_error = exc
            continue
        handler.setFormatter(JsonLogFormatter())
        setattr(handler, _ROLE_ATTR, "file")
        return handler
    assert last_error is not None
    raise last_error


def _prepare_log_file(log_dir: Path, filename: str) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / filename
    if not path.exists():
        path.touch(mode=0o600)
    return path


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "globalmind-quiz-logs"


def _level_number(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    return repr(value)
