"""Redaction of credentials in error messages and log payloads."""

import re
from typing import Any

# (pattern, replacement) pairs applied in order
SENSITIVE_PATTERNS = [
    # Long-term and temporary access key ids
    (r"\b(AKIA|ASIA)[A-Z0-9]{16}\b", "[REDACTED]"),
    # Account ids inside ARNs
    (r"(arn:aws[a-z\-]*:[a-z0-9\-]+:[a-z0-9\-]*:)\d{12}(:)", r"\1[REDACTED]\2"),
    # Signatures in presigned URLs and auth headers
    (r"(Signature=)[^&\s,]+", r"\1[REDACTED]"),
    (r"(X-Amz-Security-Token=)[^&\s,]+", r"\1[REDACTED]"),
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "aws_access_key_id",
    "aws_secret_access_key",
    "aws_session_token",
    "access_key_id",
    "secret_access_key",
    "session_token",
    "password",
    "secret",
    "credentials",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credentials.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized)

    # Replace "field: value" and "field=value" pairs
    for field in sorted(SENSITIVE_FIELDS, key=len, reverse=True):
        sanitized = re.sub(
            rf"\b{field}\s*[:=]\s*(?!\[REDACTED\])([^\s,;\)]+)",
            f"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized copy, nested dicts included
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
