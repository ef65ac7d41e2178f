"""AWS S3 provider."""

from .client import AWSProvider, translate_client_error

__all__ = ["AWSProvider", "translate_client_error"]
