"""Unit tests for the desired state builder."""

from __future__ import annotations

import pytest

from s3_website_reconciler.builders.desired import (
    create_desired_state,
    validate_bucket_name,
    validate_region,
)
from s3_website_reconciler.config import Settings
from s3_website_reconciler.errors import ValidationError
from s3_website_reconciler.models import PublicAccessBlockSettings


class TestDesiredBuilder:
    """Test desired state builder."""

    def test_basic_state(self) -> None:
        """Test creating the desired state with defaults."""
        desired = create_desired_state(Settings(bucket_name="my-terraform-portfolio-site-12345"))

        assert desired.bucket.name == "my-terraform-portfolio-site-12345"
        assert desired.bucket.region == "us-east-1"
        assert desired.bucket.index_document == "index.html"
        assert desired.bucket.error_document is None
        assert desired.public_access_block == PublicAccessBlockSettings.disabled()
        assert desired.policy.resource_pattern == "arn:aws:s3:::my-terraform-portfolio-site-12345/*"

    def test_error_document(self) -> None:
        """Test that the error document is carried into the website configuration."""
        desired = create_desired_state(Settings(bucket_name="my-site", error_document="errors/404.html"))

        assert desired.bucket.website.error_document == "errors/404.html"

    def test_force_destroy_does_not_change_desired_state(self) -> None:
        """Test that force destroy only affects destroy, not the desired bucket."""
        forced = create_desired_state(Settings(bucket_name="my-site", force_destroy=True))

        assert forced == create_desired_state(Settings(bucket_name="my-site"))

    def test_bucket_name_required(self) -> None:
        """Test that there is no default bucket name."""
        with pytest.raises(ValidationError, match="bucket name is required"):
            create_desired_state(Settings())

    def test_invalid_index_document(self) -> None:
        """Test that the index document must be a plain suffix."""
        with pytest.raises(ValidationError):
            create_desired_state(Settings(bucket_name="my-site", index_document="docs/index.html"))

    def test_invalid_region(self) -> None:
        """Test that the region must look like a region code."""
        with pytest.raises(ValidationError):
            create_desired_state(Settings(bucket_name="my-site", region="Frankfurt"))


class TestValidateBucketName:
    """Test bucket naming rules."""

    @pytest.mark.parametrize(
        "name",
        ["my-site", "abc", "a" * 63, "my.site.example.com", "site-2024"],
    )
    def test_valid_names(self, name: str) -> None:
        """Test names that S3 accepts."""
        validate_bucket_name(name)

    @pytest.mark.parametrize(
        "name",
        [
            "ab",
            "a" * 64,
            "My-Site",
            "my_site",
            "-my-site",
            "my-site-",
            "my..site",
            "192.168.1.10",
            "xn--site",
            "my-site-s3alias",
            "",
        ],
    )
    def test_invalid_names(self, name: str) -> None:
        """Test names that S3 rejects."""
        with pytest.raises(ValidationError):
            validate_bucket_name(name)


class TestValidateRegion:
    """Test region validation."""

    @pytest.mark.parametrize("region", ["us-east-1", "eu-central-1", "ap-southeast-2", "us-gov-west-1"])
    def test_valid_regions(self, region: str) -> None:
        """Test region codes that are accepted."""
        validate_region(region)

    @pytest.mark.parametrize("region", ["", "useast1", "US-EAST-1", "us-east"])
    def test_invalid_regions(self, region: str) -> None:
        """Test values that are not region codes."""
        with pytest.raises(ValidationError):
            validate_region(region)
