"""Utility functions for the S3 website reconciler."""

from .context import get_context_dict, get_run_id, new_run_id, with_run_id
from .errors import sanitize_dict, sanitize_error_message, sanitize_exception

__all__ = [
    "get_context_dict",
    "get_run_id",
    "new_run_id",
    "with_run_id",
    "sanitize_dict",
    "sanitize_error_message",
    "sanitize_exception",
]
