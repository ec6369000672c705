"""Structured JSON logging for the policy daemon."""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger


# Worker identifier for correlation across processes ("main" in the supervisor)
WORKER_ID = "main"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter that adds worker_id and standardized fields."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record.

        Args:
            log_record: The log record to modify.
            record: The original logging.LogRecord.
            message_dict: Additional fields from the logging call.
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        log_record["worker_id"] = WORKER_ID
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(verbose: bool = False, worker_id: str | None = None) -> logging.Logger:
    """Configure structured JSON logging for the process.

    Args:
        verbose: Enable DEBUG level output.
        worker_id: Identifier stamped on every record of this process.

    Returns:
        logging.Logger: Configured root logger.
    """
    global WORKER_ID
    if worker_id is not None:
        WORKER_ID = worker_id

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Remove existing handlers to avoid duplicates (workers inherit them)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(message)s",
        timestamp=True,
    )
    json_handler.setFormatter(formatter)
    logger.addHandler(json_handler)

    return logger


def log_policy_decision(
    instance: str | None,
    client_address: str | None,
    username: str | None,
    source: str,
    verdict: str,
    duration_ms: int,
) -> None:
    """Log structured per-request decision.

    Args:
        instance: Postfix instance identifier of the request.
        client_address: SMTP client address.
        username: Normalized SASL username (None if unauthenticated).
        source: What decided the request (unauthenticated, cache, authbl,
            authbl_rcpt, clean).
        verdict: Verdict token returned.
        duration_ms: Processing time in milliseconds.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Policy request completed",
        extra={
            "instance": instance,
            "client_address": client_address,
            "username": username,
            "source": source,
            "verdict": verdict,
            "duration_ms": duration_ms,
        },
    )


def log_lookup_error(result) -> None:
    """Log a reputation lookup that ended without a definitive answer.

    Args:
        result: LookupResult with ERROR status.
    """
    logger = logging.getLogger(__name__)
    logger.warning(
        "DNS lookup error",
        extra={
            "identifier": result.identifier,
            "zone": result.zone,
            "failure_type": result.failure_type,
            "response_data": result.response_data,
        },
    )
