"""Structured logging configuration for the S3 website reconciler."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from .constants import CONTROLLER
from .utils.context import get_context_dict
from .utils.errors import sanitize_dict

_SECRET_FIELDS = {"access_key", "secret_key", "session_token", "password"}


def setup_structured_logging(level: int = logging.WARNING, stream: TextIO | None = None) -> None:
    """Configure structured JSON logging.

    Log lines go to stderr by default so that stdout only carries command output.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        force=True,
    )
    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def verbosity_to_level(verbosity: int) -> int:
    """Map the number of -v flags to a logging level."""
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def log_resource_event(
    logger: logging.Logger,
    resource_kind: str,
    resource_name: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event."""
    log_data = {
        "controller": CONTROLLER,
        "resource": resource_kind,
        "name": resource_name,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(get_context_dict(sanitize_secrets(kwargs)))
    logger.log(level, json.dumps(log_data, default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Redact secret fields and credentials embedded in string values."""
    return sanitize_dict(log_data, _SECRET_FIELDS)
