from __future__ import annotations

import json
import logging
import sys
import time
from typing import IO, Any, Mapping, MutableMapping, Optional



_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_RESERVED = frozenset((
    "args", "asctime", "created", "exc_info", "exc_text",
    "filename", "funcName", "levelname", "levelno",
    "lineno", "module", "msecs", "message", "msg",
    "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "taskName", "thread", "threadName",
))

# Extra fields that must never reach the log stream in clear text.
_SENSITIVE = frozenset((
    "access_token", "refresh_token", "token", "client_secret", "code", "authorization",
))


def _mask(key: str, value: Any) -> Any:
    if key.lower() in _SENSITIVE and value:
        return "***"
    if isinstance(value, Mapping):
        return {k: _mask(str(k), v) for k, v in value.items()}

    return value


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: MutableMapping[str, Any] = {
            "ts": int(time.time() * 1000),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k, v in record.__dict__.items():
            if k not in _RESERVED:
                payload[k] = _mask(k, v)

        return json.dumps(payload, ensure_ascii=False, default=str)


def init_logging(level: str = "INFO", *, stream: Optional[IO[str]] = None) -> None:
    root = logging.getLogger()

    # Idempotent: clear existing handlers to avoid duplication
    for h in list(root.handlers):
        root.removeHandler(h)

    root.setLevel(_LEVELS.get(level.upper(), logging.INFO))
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name if name else __name__)
