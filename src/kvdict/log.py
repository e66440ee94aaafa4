from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

ROOT_LOGGER = "kvdict"


def _utc_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg + structured fields."""

    def format(self, record: logging.LogRecord) -> str:
        d: Dict[str, Any] = {
            "ts": _utc_iso(record.created),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        d.update(getattr(record, "fields", None) or {})
        if record.exc_info:
            d["error"] = self.formatException(record.exc_info)
        return json.dumps(d, ensure_ascii=False, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Logger carrying structured context that is passed down explicitly.

    Call-site ``extra={"fields": {...}}`` is merged over the bound context.
    """

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(logger, {"fields": dict(fields or {})})

    def bind(self, **fields: Any) -> "ContextLogger":
        merged = dict(self.extra["fields"])
        merged.update(fields)
        return ContextLogger(self.logger, merged)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = dict(self.extra["fields"])
        extra = kwargs.get("extra") or {}
        fields.update(extra.get("fields") or {})
        kwargs["extra"] = {**extra, "fields": fields}
        return msg, kwargs


def get_logger(name: str = ROOT_LOGGER, **fields: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), fields)


def configure_logging(debug: bool = False, *, stream=None) -> logging.Logger:
    """Install the JSON line handler on the package logger.

    Production logs INFO and above; debug mode logs everything.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger
