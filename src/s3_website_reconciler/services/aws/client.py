"""AWS S3 client implementation."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Iterable

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from ... import metrics
from ...constants import (
    DEFAULT_TIMEOUT_SECONDS,
    ERROR_BUCKET_ALREADY_EXISTS,
    ERROR_BUCKET_ALREADY_OWNED,
    ERROR_BUCKET_NOT_EMPTY,
    ERROR_INVALID_BUCKET_NAME,
    ERROR_NO_SUCH_BUCKET,
    ERROR_NO_SUCH_POLICY,
    ERROR_NO_SUCH_PUBLIC_ACCESS_BLOCK,
    ERROR_NO_SUCH_WEBSITE,
    TRANSIENT_ERROR_CODES,
    TRANSIENT_HTTP_STATUSES,
)
from ...errors import (
    BucketNotEmptyError,
    ConflictError,
    NotReadyError,
    ProviderError,
    ReconcilerError,
    TransientProviderError,
    ValidationError,
)
from ...models import PublicAccessBlockSettings, WebsiteConfig, website_endpoint_for
from ...utils.errors import sanitize_error_message, sanitize_exception

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per request
_DELETE_BATCH_SIZE = 1000


def error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def http_status(error: ClientError) -> int | None:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def translate_client_error(operation: str, bucket: str, error: ClientError) -> ReconcilerError:
    """Map a botocore ClientError onto the reconciler error taxonomy.

    Args:
        operation: Provider operation that failed
        bucket: Bucket the operation targeted
        error: Error raised by botocore

    Returns:
        The error to raise in its place
    """
    code = error_code(error)
    status = http_status(error)
    message = sanitize_error_message(error.response.get("Error", {}).get("Message") or str(error))

    if code == ERROR_BUCKET_ALREADY_EXISTS:
        return ConflictError(bucket)
    if code == ERROR_INVALID_BUCKET_NAME:
        return ValidationError(f"invalid bucket name {bucket!r}: {message}")
    if code == ERROR_BUCKET_NOT_EMPTY:
        return BucketNotEmptyError(bucket)
    if code in TRANSIENT_ERROR_CODES or status in TRANSIENT_HTTP_STATUSES:
        return TransientProviderError(operation, message, code)
    return ProviderError(operation, f"{code or status}: {message}", code)


class AWSProvider:
    """AWS S3 provider implementation."""

    def __init__(
        self,
        region: str,
        endpoint_url: str | None = None,
        profile: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: boto3.session.Session | None = None,
    ) -> None:
        """Initialize AWS S3 provider.

        Args:
            region: Default AWS region of the client
            endpoint_url: Optional S3 endpoint URL (S3-compatible stores, local stacks)
            profile: Optional named profile from the shared credentials file
            timeout: Connect and read timeout of every call, in seconds
            session: Optional preconfigured boto3 session
        """
        self.region = region
        self.endpoint_url = endpoint_url
        self.timeout = timeout

        # Retries are handled by the reconciler, botocore makes a single attempt
        config = Config(
            signature_version="s3v4",
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )

        session = session or boto3.session.Session(profile_name=profile, region_name=region)
        self.client = session.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            config=config,
        )

    def _call(
        self,
        operation: str,
        bucket: str,
        func: Callable[..., Any],
        ignore_codes: frozenset[str] = frozenset(),
        **kwargs: Any,
    ) -> Any:
        """Invoke one SDK call with metrics and error translation.

        Returns None when the provider answers with one of ``ignore_codes``,
        which is how "not configured" and "already done" answers are tolerated.
        """
        start_time = time.time()
        try:
            response = func(**kwargs)
            metrics.api_call_total.labels(operation=operation, result="success").inc()
            return response
        except ClientError as e:
            if error_code(e) in ignore_codes:
                metrics.api_call_total.labels(operation=operation, result="ignored").inc()
                return None
            metrics.api_call_total.labels(operation=operation, result="error").inc()
            translated = translate_client_error(operation, bucket, e)
            if isinstance(translated, TransientProviderError):
                logger.warning(f"Transient error during {operation} for bucket {bucket}: {translated}")
            else:
                logger.error(f"Failed {operation} for bucket {bucket}: {translated}")
            raise translated from e
        except (HTTPClientError, BotoConnectionError) as e:
            # Timeouts, dropped connections and unreachable endpoints
            metrics.api_call_total.labels(operation=operation, result="error").inc()
            logger.warning(f"Connection error during {operation} for bucket {bucket}: {sanitize_exception(e)}")
            raise TransientProviderError(operation, sanitize_exception(e)) from e
        except BotoCoreError as e:
            metrics.api_call_total.labels(operation=operation, result="error").inc()
            logger.error(f"Failed {operation} for bucket {bucket}: {sanitize_exception(e)}")
            raise ProviderError(operation, sanitize_exception(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(operation=operation).observe(duration)

    def head_bucket(self, name: str) -> str | None:
        """Return the bucket region, or None if the bucket does not exist.

        Raises:
            ConflictError: If the bucket exists but belongs to another account
        """
        try:
            response = self.client.head_bucket(Bucket=name)
        except ClientError as e:
            status = http_status(e)
            code = error_code(e)
            if status == 404 or code in ("404", ERROR_NO_SUCH_BUCKET, "NotFound"):
                metrics.api_call_total.labels(operation="HeadBucket", result="not_found").inc()
                return None
            if status == 403 or code in ("403", "Forbidden", "AccessDenied"):
                metrics.api_call_total.labels(operation="HeadBucket", result="error").inc()
                raise ConflictError(
                    name,
                    f"Bucket {name} exists but is not accessible with the current credentials. "
                    "It is probably owned by another account, pick a different name.",
                ) from e
            headers = e.response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
            if status == 301 and headers.get("x-amz-bucket-region"):
                # Bucket lives in another region than the client
                metrics.api_call_total.labels(operation="HeadBucket", result="success").inc()
                return headers["x-amz-bucket-region"]
            metrics.api_call_total.labels(operation="HeadBucket", result="error").inc()
            raise translate_client_error("HeadBucket", name, e) from e
        except (HTTPClientError, BotoConnectionError) as e:
            metrics.api_call_total.labels(operation="HeadBucket", result="error").inc()
            raise TransientProviderError("HeadBucket", sanitize_exception(e)) from e
        except BotoCoreError as e:
            metrics.api_call_total.labels(operation="HeadBucket", result="error").inc()
            raise ProviderError("HeadBucket", sanitize_exception(e)) from e

        metrics.api_call_total.labels(operation="HeadBucket", result="success").inc()
        headers = response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
        return response.get("BucketRegion") or headers.get("x-amz-bucket-region") or self.region

    def create_bucket(self, name: str, region: str) -> None:
        """Create a bucket in a region.

        Raises:
            ConflictError: If the name is taken by another account
            ValidationError: If the provider rejects the name
        """
        create_params: dict[str, Any] = {"Bucket": name}
        # us-east-1 is the default location and rejects an explicit constraint
        if region != "us-east-1":
            create_params["CreateBucketConfiguration"] = {"LocationConstraint": region}

        response = self._call(
            "CreateBucket",
            name,
            self.client.create_bucket,
            ignore_codes=frozenset({ERROR_BUCKET_ALREADY_OWNED}),
            **create_params,
        )
        if response is None:
            logger.info(f"Bucket {name} already exists and is owned by this account")
            return
        logger.info(f"Created bucket {name} in {region}")

    def is_bucket_empty(self, name: str) -> bool:
        """Check if a bucket holds no objects and no object versions."""
        response = self._call(
            "ListObjectVersions", name, self.client.list_object_versions, Bucket=name, MaxKeys=1
        )
        return not (response.get("Versions") or response.get("DeleteMarkers"))

    def empty_bucket(self, name: str) -> None:
        """Delete all objects, versions and delete markers of a bucket."""
        logger.info(f"Emptying bucket {name}")
        paginator = self.client.get_paginator("list_object_versions")

        keys: list[dict[str, str]] = []
        try:
            for page in paginator.paginate(Bucket=name):
                for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
                    keys.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})
        except ClientError as e:
            raise translate_client_error("ListObjectVersions", name, e) from e

        self._delete_batches(name, keys)
        logger.info(f"Emptied bucket {name}, deleted {len(keys)} object versions")

    def delete_bucket(self, name: str, force: bool = False) -> None:
        """Delete a bucket.

        Args:
            name: Bucket name
            force: If True, empty the bucket before deletion if it's not empty

        Raises:
            BucketNotEmptyError: If the bucket holds objects and force is False
        """
        if not self.is_bucket_empty(name):
            if not force:
                raise BucketNotEmptyError(name)
            self.empty_bucket(name)

        self._call("DeleteBucket", name, self.client.delete_bucket, Bucket=name)
        logger.info(f"Deleted bucket {name}")

    def get_website_config(self, name: str) -> WebsiteConfig | None:
        """Get the website configuration, None if hosting is not enabled."""
        response = self._call(
            "GetBucketWebsite",
            name,
            self.client.get_bucket_website,
            ignore_codes=frozenset({ERROR_NO_SUCH_WEBSITE}),
            Bucket=name,
        )
        if response is None or "IndexDocument" not in response:
            return None
        error_document = response.get("ErrorDocument", {}).get("Key")
        return WebsiteConfig(response["IndexDocument"]["Suffix"], error_document)

    def set_website_config(self, name: str, index_document: str, error_document: str | None = None) -> None:
        """Enable static website hosting."""
        website_config: dict[str, Any] = {"IndexDocument": {"Suffix": index_document}}
        if error_document:
            website_config["ErrorDocument"] = {"Key": error_document}

        self._call(
            "PutBucketWebsite",
            name,
            self.client.put_bucket_website,
            Bucket=name,
            WebsiteConfiguration=website_config,
        )
        logger.info(f"Configured static website hosting for bucket {name}")

    def get_bucket_policy(self, name: str) -> dict[str, Any] | None:
        """Get bucket policy.

        Returns:
            Policy document dict if policy exists, None if no policy is set
        """
        response = self._call(
            "GetBucketPolicy",
            name,
            self.client.get_bucket_policy,
            ignore_codes=frozenset({ERROR_NO_SUCH_POLICY}),
            Bucket=name,
        )
        if response is None:
            return None
        return json.loads(response["Policy"])

    def put_bucket_policy(self, name: str, policy: dict[str, Any]) -> None:
        """Attach a bucket policy document."""
        policy_json = json.dumps(policy, separators=(",", ":"))
        logger.debug(f"Policy JSON for bucket {name}: {policy_json}")
        self._call("PutBucketPolicy", name, self.client.put_bucket_policy, Bucket=name, Policy=policy_json)
        logger.info(f"Attached bucket policy to {name}")

    def delete_bucket_policy(self, name: str) -> None:
        """Delete bucket policy."""
        self._call(
            "DeleteBucketPolicy",
            name,
            self.client.delete_bucket_policy,
            ignore_codes=frozenset({ERROR_NO_SUCH_POLICY}),
            Bucket=name,
        )
        logger.info(f"Deleted bucket policy of {name}")

    def get_public_access_block(self, name: str) -> PublicAccessBlockSettings | None:
        """Get the bucket-level public access block, None if not configured."""
        response = self._call(
            "GetPublicAccessBlock",
            name,
            self.client.get_public_access_block,
            ignore_codes=frozenset({ERROR_NO_SUCH_PUBLIC_ACCESS_BLOCK}),
            Bucket=name,
        )
        if response is None:
            return None
        return PublicAccessBlockSettings.from_api(response.get("PublicAccessBlockConfiguration", {}))

    def set_public_access_block(self, name: str, settings: PublicAccessBlockSettings) -> None:
        """Set the bucket-level public access block."""
        self._call(
            "PutPublicAccessBlock",
            name,
            self.client.put_public_access_block,
            Bucket=name,
            PublicAccessBlockConfiguration=settings.to_api(),
        )
        logger.info(f"Set public access block of {name}: {settings.to_api()}")

    def delete_public_access_block(self, name: str) -> None:
        """Remove the bucket-level public access block."""
        self._call(
            "DeletePublicAccessBlock",
            name,
            self.client.delete_public_access_block,
            ignore_codes=frozenset({ERROR_NO_SUCH_PUBLIC_ACCESS_BLOCK}),
            Bucket=name,
        )
        logger.info(f"Deleted public access block of {name}")

    def get_website_endpoint(self, name: str, region: str) -> str:
        """Return the website endpoint host.

        Raises:
            NotReadyError: If the bucket does not host a website (yet)
        """
        if self.get_website_config(name) is None:
            raise NotReadyError(f"Bucket {name} has no website configuration yet, run apply first")
        return website_endpoint_for(name, region)

    def list_objects(self, name: str) -> dict[str, str]:
        """Map every object key of a bucket to its ETag (quotes stripped)."""
        objects: dict[str, str] = {}
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=name):
                for obj in page.get("Contents", []):
                    objects[obj["Key"]] = obj.get("ETag", "").strip('"')
        except ClientError as e:
            raise translate_client_error("ListObjectsV2", name, e) from e
        return objects

    def upload_file(self, name: str, path: str, key: str, extra_args: dict[str, str] | None = None) -> None:
        """Upload a local file."""
        try:
            self.client.upload_file(path, name, key, ExtraArgs=extra_args or {})
        except ClientError as e:
            raise translate_client_error("PutObject", name, e) from e
        except (HTTPClientError, BotoConnectionError) as e:
            raise TransientProviderError("PutObject", sanitize_exception(e)) from e
        except (BotoCoreError, S3UploadFailedError) as e:
            # upload_file wraps failures in S3UploadFailedError
            raise ProviderError("PutObject", sanitize_exception(e)) from e

    def delete_objects(self, name: str, keys: Iterable[str]) -> None:
        """Delete objects by key."""
        self._delete_batches(name, [{"Key": key} for key in keys])

    def _delete_batches(self, name: str, objects: list[dict[str, str]]) -> None:
        for start in range(0, len(objects), _DELETE_BATCH_SIZE):
            batch = objects[start:start + _DELETE_BATCH_SIZE]
            response = self._call(
                "DeleteObjects",
                name,
                self.client.delete_objects,
                Bucket=name,
                Delete={"Objects": batch, "Quiet": True},
            )
            errors = (response or {}).get("Errors", [])
            if errors:
                first = errors[0]
                raise ProviderError(
                    "DeleteObjects",
                    f"{len(errors)} objects could not be deleted, first: {first.get('Key')} ({first.get('Code')})",
                    first.get("Code"),
                )
