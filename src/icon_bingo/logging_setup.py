from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from rich.logging import RichHandler

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def _file_handler(path: str, json_format: bool) -> logging.Handler:
    handler = RotatingFileHandler(
        path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    handler.setFormatter(JsonLineFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    return handler


def setup_logging(*, level: str = "INFO", log_file: Optional[str] = None, json_format: bool = False) -> None:
    """Console logging through rich, plus an optional rotating log file."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    handlers: List[logging.Handler] = [RichHandler(rich_tracebacks=True, markup=False)]
    if log_file:
        handlers.append(_file_handler(log_file, json_format))
    logging.basicConfig(level=numeric, handlers=handlers, force=True)
    # PIL logs every plugin it tries at DEBUG
    logging.getLogger("PIL").setLevel(max(numeric, logging.INFO))
