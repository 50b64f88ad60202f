"""Structured logging configuration for ANODE Lite."""
import json
import logging
import sys
from datetime import datetime, timezone

# Attributes passed through `extra=` that are copied into the JSON line when present
EXTRA_FIELDS = (
    "duration_ms",
    "request_id",
    "http_method",
    "http_path",
    "http_status",
    "sheet_filename",
    "page_count",
    "function",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Suppress noisy loggers
    for name in ["uvicorn.access", "httpcore", "httpx", "PIL"]:
        logging.getLogger(name).setLevel(logging.WARNING)
