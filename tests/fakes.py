"""In-memory S3 provider for reconciler tests."""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass, field
from typing import Any, Iterable

from s3_website_reconciler.errors import BucketNotEmptyError, ConflictError, NotReadyError
from s3_website_reconciler.models import PublicAccessBlockSettings, WebsiteConfig, website_endpoint_for

# Calls that change remote state
MUTATIONS = frozenset(
    {
        "create_bucket",
        "set_website_config",
        "put_bucket_policy",
        "delete_bucket_policy",
        "set_public_access_block",
        "delete_public_access_block",
        "delete_bucket",
        "empty_bucket",
        "upload_file",
        "delete_objects",
    }
)


@dataclass
class FakeBucket:
    region: str
    website: WebsiteConfig | None = None
    policy: dict[str, Any] | None = None
    public_access_block: PublicAccessBlockSettings | None = None
    objects: dict[str, bytes] = field(default_factory=dict)
    object_args: dict[str, dict[str, str]] = field(default_factory=dict)


class FakeProvider:
    """Provider keeping buckets in a dict and recording every call.

    ``fail_on`` maps a method name to a list of exceptions, one is raised per
    call until the list is exhausted.
    """

    def __init__(self, foreign_buckets: Iterable[str] = ()) -> None:
        self.buckets: dict[str, FakeBucket] = {}
        self.foreign_buckets = set(foreign_buckets)
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[str, list[Exception]] = {}

    def _record(self, method: str, name: str) -> None:
        self.calls.append((method, name))
        pending = self.fail_on.get(method)
        if pending:
            raise pending.pop(0)

    @property
    def mutations(self) -> list[str]:
        return [method for method, _ in self.calls if method in MUTATIONS]

    def reset_calls(self) -> None:
        self.calls.clear()

    def head_bucket(self, name: str) -> str | None:
        self._record("head_bucket", name)
        if name in self.foreign_buckets:
            raise ConflictError(name)
        bucket = self.buckets.get(name)
        return bucket.region if bucket else None

    def create_bucket(self, name: str, region: str) -> None:
        self._record("create_bucket", name)
        if name in self.foreign_buckets:
            raise ConflictError(name)
        # New buckets block all public access until told otherwise
        self.buckets.setdefault(name, FakeBucket(region=region, public_access_block=PublicAccessBlockSettings()))

    def is_bucket_empty(self, name: str) -> bool:
        self._record("is_bucket_empty", name)
        return not self.buckets[name].objects

    def empty_bucket(self, name: str) -> None:
        self._record("empty_bucket", name)
        self.buckets[name].objects.clear()

    def delete_bucket(self, name: str, force: bool = False) -> None:
        self._record("delete_bucket", name)
        bucket = self.buckets[name]
        if bucket.objects:
            if not force:
                raise BucketNotEmptyError(name)
            bucket.objects.clear()
        del self.buckets[name]

    def get_website_config(self, name: str) -> WebsiteConfig | None:
        self._record("get_website_config", name)
        return self.buckets[name].website

    def set_website_config(self, name: str, index_document: str, error_document: str | None = None) -> None:
        self._record("set_website_config", name)
        self.buckets[name].website = WebsiteConfig(index_document, error_document)

    def get_bucket_policy(self, name: str) -> dict[str, Any] | None:
        self._record("get_bucket_policy", name)
        return copy.deepcopy(self.buckets[name].policy)

    def put_bucket_policy(self, name: str, policy: dict[str, Any]) -> None:
        self._record("put_bucket_policy", name)
        bucket = self.buckets[name]
        if bucket.public_access_block is not None and bucket.public_access_block.block_public_policy:
            raise AssertionError("public policy attached while BlockPublicPolicy is on")
        bucket.policy = copy.deepcopy(policy)

    def delete_bucket_policy(self, name: str) -> None:
        self._record("delete_bucket_policy", name)
        self.buckets[name].policy = None

    def get_public_access_block(self, name: str) -> PublicAccessBlockSettings | None:
        self._record("get_public_access_block", name)
        return self.buckets[name].public_access_block

    def set_public_access_block(self, name: str, settings: PublicAccessBlockSettings) -> None:
        self._record("set_public_access_block", name)
        self.buckets[name].public_access_block = settings

    def delete_public_access_block(self, name: str) -> None:
        self._record("delete_public_access_block", name)
        self.buckets[name].public_access_block = None

    def get_website_endpoint(self, name: str, region: str) -> str:
        self._record("get_website_endpoint", name)
        if self.buckets[name].website is None:
            raise NotReadyError(f"Bucket {name} has no website configuration yet")
        return website_endpoint_for(name, region)

    def list_objects(self, name: str) -> dict[str, str]:
        self._record("list_objects", name)
        return {key: hashlib.md5(body).hexdigest() for key, body in self.buckets[name].objects.items()}

    def upload_file(self, name: str, path: str, key: str, extra_args: dict[str, str] | None = None) -> None:
        self._record("upload_file", name)
        with open(path, "rb") as fh:
            self.buckets[name].objects[key] = fh.read()
        self.buckets[name].object_args[key] = dict(extra_args or {})

    def delete_objects(self, name: str, keys: Iterable[str]) -> None:
        self._record("delete_objects", name)
        for key in keys:
            self.buckets[name].objects.pop(key, None)
