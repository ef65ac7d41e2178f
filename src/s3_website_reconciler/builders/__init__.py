"""Builders for desired state and provider clients."""

from .desired import create_desired_state, validate_bucket_name, validate_region
from .provider import create_provider_from_settings

__all__ = [
    "create_desired_state",
    "create_provider_from_settings",
    "validate_bucket_name",
    "validate_region",
]
