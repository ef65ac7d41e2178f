"""Data model for the S3 website reconciler."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    LEGACY_WEBSITE_ENDPOINT_REGIONS,
    POLICY_ACTION_GET_OBJECT,
    POLICY_VERSION,
)


def partition_for_region(region: str) -> str:
    """Return the AWS partition a region belongs to."""
    if region.startswith("cn-"):
        return "aws-cn"
    if region.startswith("us-gov-"):
        return "aws-us-gov"
    return "aws"


def website_endpoint_for(bucket_name: str, region: str) -> str:
    """Compute the S3 website endpoint host for a bucket.

    Older regions use a dash between ``s3-website`` and the region, newer
    ones use a dot.
    """
    separator = "-" if region in LEGACY_WEBSITE_ENDPOINT_REGIONS else "."
    suffix = "amazonaws.com.cn" if region.startswith("cn-") else "amazonaws.com"
    return f"{bucket_name}.s3-website{separator}{region}.{suffix}"


@dataclass(frozen=True)
class WebsiteConfig:
    """Static website hosting configuration."""

    index_document: str
    error_document: str | None = None


@dataclass(frozen=True)
class BucketSpec:
    """Desired bucket. ``name`` is global across the provider's namespace."""

    name: str
    region: str
    index_document: str
    error_document: str | None = None

    @property
    def arn(self) -> str:
        return f"arn:{partition_for_region(self.region)}:s3:::{self.name}"

    @property
    def website(self) -> WebsiteConfig:
        return WebsiteConfig(self.index_document, self.error_document)


@dataclass(frozen=True)
class PublicAccessPolicy:
    """Anonymous read access to every object of a bucket.

    The resource pattern is always derived from the bucket it protects.
    """

    bucket: BucketSpec
    effect: str = "Allow"
    principal: str = "*"
    actions: tuple[str, ...] = (POLICY_ACTION_GET_OBJECT,)

    @property
    def resource_pattern(self) -> str:
        return f"{self.bucket.arn}/*"

    def document(self) -> dict[str, Any]:
        """Return the policy document in the provider's policy language."""
        return {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": self.effect,
                    "Principal": self.principal,
                    "Action": list(self.actions),
                    "Resource": [self.resource_pattern],
                }
            ],
        }


@dataclass(frozen=True)
class PublicAccessBlockSettings:
    """Bucket-level public access block flags."""

    block_public_acls: bool = True
    block_public_policy: bool = True
    ignore_public_acls: bool = True
    restrict_public_buckets: bool = True

    @classmethod
    def disabled(cls) -> PublicAccessBlockSettings:
        """All four protections off, required for a public-read policy to take effect."""
        return cls(False, False, False, False)

    def to_api(self) -> dict[str, bool]:
        return {
            "BlockPublicAcls": self.block_public_acls,
            "IgnorePublicAcls": self.ignore_public_acls,
            "BlockPublicPolicy": self.block_public_policy,
            "RestrictPublicBuckets": self.restrict_public_buckets,
        }

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> PublicAccessBlockSettings:
        # Missing flags are reported as false by S3
        return cls(
            block_public_acls=bool(data.get("BlockPublicAcls", False)),
            block_public_policy=bool(data.get("BlockPublicPolicy", False)),
            ignore_public_acls=bool(data.get("IgnorePublicAcls", False)),
            restrict_public_buckets=bool(data.get("RestrictPublicBuckets", False)),
        )


@dataclass(frozen=True)
class DesiredState:
    """Everything one static site needs."""

    bucket: BucketSpec
    policy: PublicAccessPolicy
    public_access_block: PublicAccessBlockSettings

    @classmethod
    def for_bucket(cls, bucket: BucketSpec) -> DesiredState:
        return cls(
            bucket=bucket,
            policy=PublicAccessPolicy(bucket),
            public_access_block=PublicAccessBlockSettings.disabled(),
        )


@dataclass(frozen=True)
class RemoteState:
    """Observed state of one bucket at the provider."""

    bucket_name: str
    exists: bool
    region: str | None = None
    website: WebsiteConfig | None = None
    policy: dict[str, Any] | None = None
    public_access_block: PublicAccessBlockSettings | None = None
    empty: bool = True

    @classmethod
    def absent(cls, bucket_name: str) -> RemoteState:
        return cls(bucket_name=bucket_name, exists=False)


class OperationKind(str, enum.Enum):
    """Remote operations, in the order they may appear in a change set."""

    CREATE_BUCKET = "CreateBucket"
    SET_WEBSITE_CONFIG = "SetWebsiteConfig"
    SET_PUBLIC_ACCESS_BLOCK = "SetPublicAccessBlock"
    PUT_BUCKET_POLICY = "PutBucketPolicy"
    DELETE_BUCKET_POLICY = "DeleteBucketPolicy"
    DELETE_PUBLIC_ACCESS_BLOCK = "DeletePublicAccessBlock"
    DELETE_BUCKET = "DeleteBucket"


class Action(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


_ACTION_SYMBOLS = {Action.CREATE: "+", Action.UPDATE: "~", Action.DELETE: "-"}


@dataclass(frozen=True)
class Operation:
    """One remote call of a change set."""

    kind: OperationKind
    bucket: str
    action: Action
    payload: dict[str, Any] = field(default_factory=dict, compare=False)

    def describe(self) -> str:
        return f"{_ACTION_SYMBOLS[self.action]} {self.kind.value} {self.bucket}"


@dataclass(frozen=True)
class ChangeSet:
    """Ordered operations that converge remote state to desired state."""

    bucket_name: str
    operations: tuple[Operation, ...] = ()
    region: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def kinds(self) -> list[OperationKind]:
        return [op.kind for op in self.operations]

    def summary(self) -> dict[str, int]:
        counts = {action.value: 0 for action in Action}
        for op in self.operations:
            counts[op.action.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self):
        return iter(self.operations)


@dataclass(frozen=True)
class WebsiteEndpointOutput:
    """Where the site is served from once the bucket hosts a website."""

    bucket_name: str
    region: str
    endpoint: str

    @property
    def url(self) -> str:
        return f"http://{self.endpoint}"


@dataclass(frozen=True)
class AppliedState:
    """Result of apply or destroy."""

    bucket_name: str
    region: str | None
    performed: tuple[Operation, ...] = ()
    outputs: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.performed)
