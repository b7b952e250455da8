"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from covenant_gateway.domain.models import TestRunSummary


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args: Any, service_name: str = "covenant-gateway", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "covenant-gateway") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_test_run(request_id: str, summary: TestRunSummary, duration_ms: float) -> None:
    """Log structured test run outcome for audit trails"""
    logging.info(
        "Covenant test run completed",
        extra={
            "request_id": request_id,
            "loan_id": summary.loan_id,
            "step": "test_run_complete",
            "period_end_date": summary.period_end_date.isoformat(),
            "tests_run": len(summary.results),
            "alerts_created": len(summary.alerts),
            "failed_covenants": [f.covenant_id for f in summary.failures],
            "duration_ms": duration_ms,
        },
    )
