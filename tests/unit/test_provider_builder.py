"""Tests for provider builder."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import InvalidRegionError, ProfileNotFound

from s3_website_reconciler.builders.provider import create_provider_from_settings
from s3_website_reconciler.config import Settings
from s3_website_reconciler.errors import ValidationError


class TestCreateProviderFromSettings:
    """Test cases for create_provider_from_settings function."""

    @patch("s3_website_reconciler.builders.provider.AWSProvider")
    def test_create_provider_success(self, mock_aws_provider):
        """Test successfully creating provider."""
        mock_provider_instance = Mock()
        mock_aws_provider.return_value = mock_provider_instance
        settings = Settings(
            bucket_name="my-site",
            region="eu-west-1",
            endpoint_url="http://localhost:4566",
            profile="deploy",
            timeout=10.0,
        )

        result = create_provider_from_settings(settings)

        assert result == mock_provider_instance
        mock_aws_provider.assert_called_once_with(
            region="eu-west-1",
            endpoint_url="http://localhost:4566",
            profile="deploy",
            timeout=10.0,
        )

    @patch("s3_website_reconciler.builders.provider.AWSProvider")
    def test_unknown_profile(self, mock_aws_provider):
        """Test that a missing named profile is a validation error."""
        mock_aws_provider.side_effect = ProfileNotFound(profile="missing")

        with pytest.raises(ValidationError, match="missing"):
            create_provider_from_settings(Settings(bucket_name="my-site", profile="missing"))

    @patch("s3_website_reconciler.builders.provider.AWSProvider")
    def test_malformed_region(self, mock_aws_provider):
        """Test that botocore rejecting the region is a validation error."""
        mock_aws_provider.side_effect = InvalidRegionError(region_name="us_east_1!")

        with pytest.raises(ValidationError, match="invalid region"):
            create_provider_from_settings(Settings(bucket_name="my-site", region="us_east_1!"))
