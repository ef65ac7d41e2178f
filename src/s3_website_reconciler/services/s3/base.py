"""Base S3 provider interface."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from ...models import PublicAccessBlockSettings, WebsiteConfig


class S3Provider(Protocol):
    """Protocol defining the provider operations the reconciler needs.

    Implementations raise the reconciler error taxonomy, never raw SDK errors.
    """

    def head_bucket(self, name: str) -> str | None:
        """Return the bucket region, or None if the bucket does not exist."""
        ...

    def create_bucket(self, name: str, region: str) -> None:
        """Create a bucket in a region."""
        ...

    def is_bucket_empty(self, name: str) -> bool:
        """Check if a bucket is empty."""
        ...

    def empty_bucket(self, name: str) -> None:
        """Delete all objects and versions of a bucket."""
        ...

    def delete_bucket(self, name: str, force: bool = False) -> None:
        """Delete a bucket.

        Args:
            name: Bucket name
            force: If True, empty the bucket before deletion if it's not empty
        """
        ...

    def get_website_config(self, name: str) -> WebsiteConfig | None:
        """Get the website configuration, None if hosting is not enabled."""
        ...

    def set_website_config(self, name: str, index_document: str, error_document: str | None = None) -> None:
        """Enable static website hosting."""
        ...

    def get_bucket_policy(self, name: str) -> dict[str, Any] | None:
        """Get bucket policy, None if no policy is attached."""
        ...

    def put_bucket_policy(self, name: str, policy: dict[str, Any]) -> None:
        """Attach a bucket policy document."""
        ...

    def delete_bucket_policy(self, name: str) -> None:
        """Delete bucket policy."""
        ...

    def get_public_access_block(self, name: str) -> PublicAccessBlockSettings | None:
        """Get the bucket-level public access block, None if not configured."""
        ...

    def set_public_access_block(self, name: str, settings: PublicAccessBlockSettings) -> None:
        """Set the bucket-level public access block."""
        ...

    def delete_public_access_block(self, name: str) -> None:
        """Remove the bucket-level public access block."""
        ...

    def get_website_endpoint(self, name: str, region: str) -> str:
        """Return the website endpoint host. Raises NotReadyError without website hosting."""
        ...

    def list_objects(self, name: str) -> dict[str, str]:
        """Map every object key of a bucket to its ETag."""
        ...

    def upload_file(self, name: str, path: str, key: str, extra_args: dict[str, str] | None = None) -> None:
        """Upload a local file."""
        ...

    def delete_objects(self, name: str, keys: Iterable[str]) -> None:
        """Delete objects by key."""
        ...
