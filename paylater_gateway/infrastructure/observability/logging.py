"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "paylater-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_quote(request_id: str, transaction_id: str, quote_kind: str, option_count: int) -> None:
    """Log which quote was served and how many options it produced"""
    logging.info(
        "Early payment quote served",
        extra={
            "request_id": request_id,
            "transaction_id": transaction_id,
            "step": "quote",
            "quote_kind": quote_kind,
            "option_count": option_count,
        },
    )


def log_early_payment(
    request_id: str,
    transaction_id: str,
    payment_type: str,
    status: str,
    savings: str,
    duration_ms: float,
) -> None:
    """Log structured early payment outcome for analysis"""
    logging.info(
        "Early payment submitted",
        extra={
            "request_id": request_id,
            "transaction_id": transaction_id,
            "step": "early_payment_submitted",
            "payment_type": payment_type,
            "status": status,
            "savings": savings,
            "duration_ms": duration_ms,
        },
    )
