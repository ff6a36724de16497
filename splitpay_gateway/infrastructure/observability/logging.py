"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from splitpay_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


# Loggers that would otherwise print checkout tokens embedded in request URLs
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    """Send JSON log lines to stdout; HTTP client internals only at WARNING"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_split_event(
    request_id: str,
    flow_id: Optional[str],
    operation: str,
    mode: str,
    total_cents: int,
    participant_count: int,
    duration_ms: float,
) -> None:
    """Log structured split outcome for analysis"""
    logging.info(
        "Split operation completed",
        extra={
            "request_id": request_id,
            "flow_id": flow_id,
            "step": operation,
            "split_mode": mode,
            "total_cents": total_cents,
            "participant_count": participant_count,
            "duration_ms": duration_ms,
        },
    )
