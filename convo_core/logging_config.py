"""Line-delimited JSON logs.

Structured fields travel in ``extra={"context": {...}}``; ``TurnLogger`` fills in
the (tenant, channel, sender) identity so flow and catalog logs can be joined.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # datetimes and Decimals from catalog rows end up in context
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Replace root handlers with a single stdout JSON handler.

    Unknown level names fall back to INFO.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"convo_core.{name}")


class TurnLogger(logging.LoggerAdapter):
    """Merges the conversation identity, ``extra["context"]`` and a ``context=`` kwarg."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        extra = kwargs.get("extra") or {}
        merged = {**(self.extra or {}), **extra.get("context", {}), **(context or {})}
        if merged:
            kwargs["extra"] = {**extra, "context": merged}
        return msg, kwargs


def turn_logger(logger: logging.Logger, tenant_id: str, channel: str, sender_id: str) -> TurnLogger:
    return TurnLogger(logger, {"tenant_id": tenant_id, "channel": channel, "sender_id": sender_id})
