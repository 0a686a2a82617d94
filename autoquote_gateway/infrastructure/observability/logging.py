"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from autoquote_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_session_transition(session_id: str, status: str, total: int, completed: int, failed: int) -> None:
    """Log a quote session state change with its progress counters"""
    logging.info(
        "Quote session transition",
        extra={
            "session_id": session_id,
            "step": "session_transition",
            "status": status,
            "progress_total": total,
            "progress_completed": completed,
            "progress_failed": failed,
        },
    )


def log_quote_outcome(session_id: str, lender_id: str, outcome: str, apr: float | None = None) -> None:
    """Log a single lender's quote result (received | failed | timeout)"""
    level = logging.INFO if outcome == "received" else logging.WARNING
    logging.log(
        level,
        "Lender quote %s",
        outcome,
        extra={
            "session_id": session_id,
            "lender_id": lender_id,
            "step": "quote_outcome",
            "outcome": outcome,
            "offered_apr": apr,
        },
    )


def log_negotiation_complete(
    session_id: str,
    quotes_improved: int,
    average_rate_improvement: float,
    fees_saved: int,
    duration_ms: float,
) -> None:
    """Log negotiation summary for analysis"""
    logging.info(
        "Negotiation completed",
        extra={
            "session_id": session_id,
            "step": "negotiation_complete",
            "quotes_improved": quotes_improved,
            "average_rate_improvement": average_rate_improvement,
            "fees_saved": fees_saved,
            "duration_ms": duration_ms,
        },
    )
