"""Upload a local site directory to the website bucket."""

from __future__ import annotations

import hashlib
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .constants import EVENT_REASON_OBJECT_DELETED, EVENT_REASON_OBJECT_UPLOADED, KIND_BUCKET
from .errors import ValidationError
from .logging import log_resource_event
from .services.s3.base import S3Provider
from .utils.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

# Never published, whatever the site directory contains
DEFAULT_EXCLUDE_DIRS = (".git", ".github", "__pycache__", ".terraform", "node_modules")
DEFAULT_EXCLUDE_SUFFIXES = (".tf", ".tfstate", ".tfstate.backup", ".tfvars", ".pyc", ".DS_Store")

# Browsers should revalidate the documents that change with every deployment
_SHORT_CACHE_TYPES = {"text/html", "text/css", "application/javascript", "text/javascript"}
_SHORT_CACHE_CONTROL = "max-age=3600"

_CHUNK_SIZE = 1024 * 1024


@dataclass
class SyncResult:
    """What a sync did."""

    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


def file_md5(path: str) -> str:
    """MD5 hex digest of a file, comparable to the ETag of a single-part upload."""
    digest = hashlib.md5(usedforsecurity=False)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def upload_args_for(path: str) -> dict[str, str]:
    """ContentType and CacheControl for an object."""
    content_type, _ = mimetypes.guess_type(path)
    content_type = content_type or "application/octet-stream"
    extra_args = {"ContentType": content_type}
    if content_type in _SHORT_CACHE_TYPES:
        extra_args["CacheControl"] = _SHORT_CACHE_CONTROL
    return extra_args


def collect_files(
    source_dir: str,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    exclude_suffixes: Iterable[str] = DEFAULT_EXCLUDE_SUFFIXES,
) -> dict[str, str]:
    """Map object keys to local paths for every publishable file below ``source_dir``.

    Raises:
        ValidationError: If ``source_dir`` is not a directory
    """
    if not os.path.isdir(source_dir):
        raise ValidationError(f"site directory {source_dir!r} does not exist or is not a directory")

    root_dir = os.path.abspath(source_dir)
    excluded_dirs = set(exclude_dirs)
    suffixes = tuple(exclude_suffixes)
    files: dict[str, str] = {}

    for root, dirs, names in os.walk(root_dir):
        dirs[:] = sorted(d for d in dirs if d not in excluded_dirs)
        for filename in sorted(names):
            if filename.endswith(suffixes):
                continue
            local_path = os.path.join(root, filename)
            key = os.path.relpath(local_path, root_dir).replace(os.sep, "/")
            files[key] = local_path

    return files


def sync_directory(
    provider: S3Provider,
    bucket_name: str,
    source_dir: str,
    delete: bool = False,
    retry_policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] | None = None,
) -> SyncResult:
    """Upload a directory to a bucket, skipping unchanged files.

    Args:
        provider: Provider client
        bucket_name: Target bucket name, not the website endpoint
        source_dir: Local directory holding the site
        delete: Remove remote objects that no longer exist locally
        retry_policy: Retry budget for transient provider errors
        sleep: Sleep function used between retries

    Returns:
        SyncResult listing uploaded, skipped and deleted keys
    """
    policy = retry_policy or RetryPolicy()
    retry_kwargs = {"sleep": sleep} if sleep is not None else {}

    local_files = collect_files(source_dir)
    remote = call_with_retry(
        lambda: provider.list_objects(bucket_name), policy, "ListObjectsV2", bucket_name, **retry_kwargs
    )
    result = SyncResult()

    for key, local_path in local_files.items():
        if remote.get(key) == file_md5(local_path):
            result.skipped.append(key)
            continue
        call_with_retry(
            lambda: provider.upload_file(bucket_name, local_path, key, upload_args_for(local_path)),
            policy,
            "PutObject",
            bucket_name,
            **retry_kwargs,
        )
        result.uploaded.append(key)
        log_resource_event(
            logger, KIND_BUCKET, bucket_name, "info", EVENT_REASON_OBJECT_UPLOADED, f"Uploaded {key}", key=key
        )

    if delete:
        stale = sorted(set(remote) - set(local_files))
        if stale:
            call_with_retry(
                lambda: provider.delete_objects(bucket_name, stale), policy, "DeleteObjects", bucket_name,
                **retry_kwargs,
            )
            result.deleted.extend(stale)
            log_resource_event(
                logger,
                KIND_BUCKET,
                bucket_name,
                "info",
                EVENT_REASON_OBJECT_DELETED,
                f"Deleted {len(stale)} stale objects",
                keys=stale,
            )

    return result
