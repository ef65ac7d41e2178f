"""Builder for the desired state of a static site."""

from __future__ import annotations

import re

from ..config import Settings
from ..errors import ValidationError
from ..models import BucketSpec, DesiredState

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]{1,61}[a-z0-9]$")
_IP_ADDRESS_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_REGION_RE = re.compile(r"^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d$")

_RESERVED_PREFIXES = ("xn--", "sthree-", "amzn-s3-demo-")
_RESERVED_SUFFIXES = ("-s3alias", "--ol-s3", "--x-s3", "--table-s3", ".mrap")


def validate_bucket_name(name: str) -> None:
    """Validate a bucket name against the S3 naming rules.

    Raises:
        ValidationError: If the name is not a valid bucket identifier
    """
    if not name:
        raise ValidationError("bucket name is required")
    if not 3 <= len(name) <= 63:
        raise ValidationError(f"bucket name {name!r} must be between 3 and 63 characters long")
    if not _BUCKET_NAME_RE.match(name):
        raise ValidationError(
            f"bucket name {name!r} may only contain lowercase letters, digits, dots and hyphens, "
            "and must begin and end with a letter or digit"
        )
    if ".." in name:
        raise ValidationError(f"bucket name {name!r} must not contain two adjacent periods")
    if _IP_ADDRESS_RE.match(name):
        raise ValidationError(f"bucket name {name!r} must not be formatted as an IP address")
    if name.startswith(_RESERVED_PREFIXES):
        raise ValidationError(f"bucket name {name!r} uses a reserved prefix")
    if name.endswith(_RESERVED_SUFFIXES):
        raise ValidationError(f"bucket name {name!r} uses a reserved suffix")


def validate_region(region: str) -> None:
    """Validate the shape of a region code such as ``us-east-1``."""
    if not region or not _REGION_RE.match(region):
        raise ValidationError(f"invalid region {region!r}, expected a code like 'us-east-1'")


def validate_document_key(kind: str, key: str | None, allow_slash: bool = True) -> None:
    # S3 treats the index document as a suffix appended to every "directory" request
    if key is None:
        return
    if not key or key.startswith("/") or (not allow_slash and "/" in key):
        raise ValidationError(f"invalid {kind} {key!r}")


def create_desired_state(settings: Settings) -> DesiredState:
    """Create the desired state of the site from resolved settings.

    Args:
        settings: Resolved configuration

    Returns:
        DesiredState with the public-read policy and the public access block disabled

    Raises:
        ValidationError: If the bucket name, region or document keys are invalid
    """
    name = settings.require_bucket_name()
    validate_bucket_name(name)
    validate_region(settings.region)
    validate_document_key("index document", settings.index_document, allow_slash=False)
    validate_document_key("error document", settings.error_document)

    bucket = BucketSpec(
        name=name,
        region=settings.region,
        index_document=settings.index_document,
        error_document=settings.error_document,
    )
    return DesiredState.for_bucket(bucket)
