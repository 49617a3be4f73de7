"""Structured JSON logging for sync runs"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from fintoc_sync.config import DEFAULT_SERVICE_NAME
from fintoc_sync.domain.models import AccountSyncReport


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = DEFAULT_SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = DEFAULT_SERVICE_NAME) -> None:
    """Configure structured JSON logging on stderr, leaving stdout for command output"""
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # httpx logs every request at INFO, which would leak link tokens in query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_sync_summary(report: AccountSyncReport, duration_ms: float) -> None:
    """Log structured per-account sync outcome"""
    logging.info(
        "Account sync completed",
        extra={
            "bank": report.bank_name,
            "account": report.account_name,
            "step": "sync_complete",
            "movements_skipped": report.movements_skipped,
            "movements_fetched": report.movements_fetched,
            "normalization_failures": report.normalization_failures,
            "inserted": report.result.inserted_count,
            "duplicates": report.result.duplicate_count,
            "failed": report.result.failed_count,
            "balance": str(report.balance),
            "currency": str(report.currency),
            "duration_ms": duration_ms,
        },
    )
