"""Logging setup for loan-ledger: console output, plain or JSON lines."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

LOG_FORMATS = ("standard", "json")

# Identifiers services attach through ``extra=``; copied into JSON records
CONTEXT_FIELDS = ("client_id", "loan_id", "installment_id", "owner_id")

QUIET_LIBRARIES = ("psycopg", "faker", "reportlab")


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Route every logger to stdout.

    Parameters
    ----------
    level : str
        Level name; unknown names fall back to INFO.
    format_type : str
        ``"standard"`` (pipe separated text) or ``"json"``.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
    logging.getLogger("loan_ledger").setLevel(log_level)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ledger identifiers when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)
