import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Exposed so the middleware can set the id for the current request
req_id_var: ContextVar[str] = ContextVar("req_id", default="-")

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "req_id": getattr(record, "req_id", req_id_var.get()),
            "level": record.levelname,
            "component": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "meta"):
            payload["meta"] = record.meta
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        try:
            return json.dumps(payload, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            # Fallback to plain message if payload has unserialisable types
            return payload["msg"]


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Propagate request id from context-var into every log line
        record.req_id = getattr(record, "req_id", None) or req_id_var.get()
        return True


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Call once at app startup.
    ``level`` is a logging level name; ``fmt`` is "text" or "json".
    """
    level = (level or "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if fmt.lower() == "json":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    # Reduce third-party verbosity unless LOG_LEVEL is DEBUG
    if level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured", extra={"meta": {"level": level, "format": fmt}}
    )
