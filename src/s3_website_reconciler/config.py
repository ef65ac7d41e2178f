"""Configuration for the S3 website reconciler.

Values are resolved in this order, first match wins:

1. command line flags
2. environment variables
3. a JSON config file (``--config``)
4. built-in defaults

The bucket name has no default. Bucket names are global, a name shared by
every copy of this tool would collide on the second deployment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .constants import (
    DEFAULT_INDEX_DOCUMENT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REGION,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_TIMEOUT_SECONDS,
)
from .errors import ValidationError

# Environment variable -> Settings field. Earlier entries win.
ENV_VARS: tuple[tuple[str, str], ...] = (
    ("SITE_BUCKET_NAME", "bucket_name"),
    ("SITE_REGION", "region"),
    ("AWS_REGION", "region"),
    ("AWS_DEFAULT_REGION", "region"),
    ("SITE_INDEX_DOCUMENT", "index_document"),
    ("SITE_ERROR_DOCUMENT", "error_document"),
    ("SITE_FORCE_DESTROY", "force_destroy"),
    ("SITE_ENDPOINT_URL", "endpoint_url"),
    ("AWS_PROFILE", "profile"),
    ("SITE_TIMEOUT_SECONDS", "timeout"),
    ("SITE_MAX_RETRIES", "max_retries"),
    ("SITE_RETRY_BASE_DELAY", "retry_base_delay"),
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one run."""

    bucket_name: str | None = None
    region: str = DEFAULT_REGION
    index_document: str = DEFAULT_INDEX_DOCUMENT
    error_document: str | None = None
    force_destroy: bool = False
    endpoint_url: str | None = None
    profile: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY

    def require_bucket_name(self) -> str:
        if not self.bucket_name:
            raise ValidationError(
                "bucket name is required: pass --bucket, set SITE_BUCKET_NAME or add bucket_name to the config file"
            )
        return self.bucket_name


_FIELD_TYPES = {f.name: f.type for f in fields(Settings)}


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw string or JSON value to the type of the Settings field."""
    kind = _FIELD_TYPES[name]
    try:
        if kind == "bool":
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(value)
        if kind == "int":
            result = int(value)
            if result < 0:
                raise ValueError(value)
            return result
        if kind == "float":
            result = float(value)
            if result <= 0 and name == "timeout":
                raise ValueError(value)
            if result < 0:
                raise ValueError(value)
            return result
    except (TypeError, ValueError):
        raise ValidationError(f"invalid value for {name}: {value!r}") from None
    if value is None:
        return None
    return str(value)


def load_config_file(path: str) -> dict[str, Any]:
    """Read settings from a JSON object file.

    Raises:
        ValidationError: If the file is unreadable, not a JSON object or has unknown keys
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as e:
        raise ValidationError(f"cannot read config file {path}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError(f"config file {path} must contain a JSON object")

    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ValidationError(f"unknown keys in config file {path}: {', '.join(unknown)}")

    return {key: _coerce(key, value) for key, value in data.items()}


def settings_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect settings from environment variables."""
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for var, name in ENV_VARS:
        if name in values:
            continue
        raw = environ.get(var)
        if raw is not None and raw != "":
            values[name] = _coerce(name, raw)
    return values


def load_settings(
    config_path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings from file, environment and explicit overrides.

    Args:
        config_path: Optional JSON config file
        overrides: Values from the command line, ``None`` values are ignored
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Resolved Settings
    """
    settings = Settings()
    if config_path:
        settings = replace(settings, **load_config_file(config_path))

    settings = replace(settings, **settings_from_env(environ))

    if overrides:
        explicit = {
            key: _coerce(key, value)
            for key, value in overrides.items()
            if value is not None and key in _FIELD_TYPES
        }
        settings = replace(settings, **explicit)

    return settings
