"""Builder for S3 provider instances."""

from __future__ import annotations

from botocore.exceptions import InvalidRegionError, ProfileNotFound

from ..config import Settings
from ..errors import ValidationError
from ..services.aws.client import AWSProvider


def create_provider_from_settings(settings: Settings) -> AWSProvider:
    """Create an S3 provider instance from resolved settings.

    Credentials come from the standard boto3 chain (environment, shared
    credentials file, named profile, instance or task role).

    Args:
        settings: Resolved configuration

    Returns:
        Configured S3 provider instance

    Raises:
        ValidationError: If the named profile does not exist or the region is malformed
    """
    try:
        return AWSProvider(
            region=settings.region,
            endpoint_url=settings.endpoint_url,
            profile=settings.profile,
            timeout=settings.timeout,
        )
    except ProfileNotFound as e:
        raise ValidationError(f"AWS profile {settings.profile!r} not found") from e
    except InvalidRegionError as e:
        raise ValidationError(f"invalid region {settings.region!r}, expected a code like 'us-east-1'") from e
