"""Logging setup for deal-flow.

Services attach workflow identifiers to log calls with
``extra={"extra": {"session_id": ..., "deal_id": ...}}``. Both formatters
surface those identifiers so a single negotiation can be traced from offer
to signed contract.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Identifiers that tie a log line to a workflow record, in chain order
WORKFLOW_FIELDS = (
    "session_id",
    "draft_id",
    "deal_id",
    "contract_id",
    "asset_id",
    "recipient_id",
)


def workflow_context(record: logging.LogRecord) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a record's ``extra`` payload into workflow ids and everything else."""
    extra = getattr(record, "extra", None)
    if not isinstance(extra, dict):
        return {}, {}
    ids = {key: extra[key] for key in WORKFLOW_FIELDS if extra.get(key) is not None}
    rest = {key: value for key, value in extra.items() if key not in ids}
    return ids, rest


class WorkflowFormatter(logging.Formatter):
    """Plain-text formatter that appends workflow ids as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ids, _ = workflow_context(record)
        if not ids:
            return line
        tags = " ".join(f"{key}={value}" for key, value in ids.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{tags}]{sep}{tail}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; workflow ids become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        ids, rest = workflow_context(record)
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **ids,
        }
        if rest:
            log_data["context"] = rest
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimal amounts and enums render as strings
        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Configure root logging for a deal-flow process.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        "standard" for text lines, "json" for structured output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if format_type == "json" else WorkflowFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(log_level)

    # Kafka delivery chatter and Faker provider loading stay quiet
    logging.getLogger("confluent_kafka").setLevel(logging.WARNING)
    logging.getLogger("faker").setLevel(logging.WARNING)
