"""Unit tests for configuration loading."""

from __future__ import annotations

import json

import pytest

from s3_website_reconciler.config import Settings, load_config_file, load_settings, settings_from_env
from s3_website_reconciler.errors import ValidationError


class TestSettingsFromEnv:
    """Test reading settings from the environment."""

    def test_empty_environment(self) -> None:
        """Test that nothing is set without variables."""
        assert settings_from_env({}) == {}

    def test_values_are_coerced(self) -> None:
        """Test that numbers and booleans are parsed."""
        values = settings_from_env(
            {
                "SITE_BUCKET_NAME": "my-site",
                "SITE_FORCE_DESTROY": "true",
                "SITE_TIMEOUT_SECONDS": "12.5",
                "SITE_MAX_RETRIES": "2",
            }
        )

        assert values == {"bucket_name": "my-site", "force_destroy": True, "timeout": 12.5, "max_retries": 2}

    def test_site_region_wins_over_aws_region(self) -> None:
        """Test that the tool's own region variable takes precedence."""
        values = settings_from_env({"AWS_DEFAULT_REGION": "us-west-2", "SITE_REGION": "eu-west-1"})

        assert values["region"] == "eu-west-1"

    def test_aws_region_fallback(self) -> None:
        """Test that the standard AWS variables are honoured."""
        assert settings_from_env({"AWS_DEFAULT_REGION": "us-west-2"})["region"] == "us-west-2"

    def test_invalid_boolean(self) -> None:
        """Test that an unparseable flag is rejected."""
        with pytest.raises(ValidationError):
            settings_from_env({"SITE_FORCE_DESTROY": "maybe"})

    def test_invalid_timeout(self) -> None:
        """Test that the timeout must be positive."""
        with pytest.raises(ValidationError):
            settings_from_env({"SITE_TIMEOUT_SECONDS": "0"})


class TestLoadConfigFile:
    """Test the JSON config file."""

    def test_load(self, tmp_path) -> None:
        """Test reading a config file."""
        path = tmp_path / "site.json"
        path.write_text(json.dumps({"bucket_name": "my-site", "region": "eu-west-1", "max_retries": 1}))

        assert load_config_file(str(path)) == {"bucket_name": "my-site", "region": "eu-west-1", "max_retries": 1}

    def test_unknown_key(self, tmp_path) -> None:
        """Test that typos in the config file are reported."""
        path = tmp_path / "site.json"
        path.write_text(json.dumps({"bucket": "my-site"}))

        with pytest.raises(ValidationError, match="bucket"):
            load_config_file(str(path))

    def test_not_an_object(self, tmp_path) -> None:
        """Test that the file must hold a JSON object."""
        path = tmp_path / "site.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValidationError):
            load_config_file(str(path))

    def test_invalid_json(self, tmp_path) -> None:
        """Test that malformed JSON is a validation error."""
        path = tmp_path / "site.json"
        path.write_text("{bucket_name: ")

        with pytest.raises(ValidationError):
            load_config_file(str(path))

    def test_missing_file(self, tmp_path) -> None:
        """Test that a missing file is a validation error."""
        with pytest.raises(ValidationError):
            load_config_file(str(tmp_path / "missing.json"))


class TestLoadSettings:
    """Test configuration precedence."""

    def test_defaults(self) -> None:
        """Test the built-in defaults."""
        settings = load_settings(environ={})

        assert settings == Settings()
        assert settings.region == "us-east-1"
        assert settings.bucket_name is None

    def test_precedence(self, tmp_path) -> None:
        """Test that flags beat the environment, which beats the config file."""
        path = tmp_path / "site.json"
        path.write_text(
            json.dumps({"bucket_name": "file-bucket", "region": "eu-west-1", "index_document": "home.html"})
        )
        environ = {"SITE_BUCKET_NAME": "env-bucket", "SITE_REGION": "eu-central-1"}

        settings = load_settings(str(path), overrides={"bucket_name": "flag-bucket", "region": None}, environ=environ)

        assert settings.bucket_name == "flag-bucket"
        assert settings.region == "eu-central-1"
        assert settings.index_document == "home.html"

    def test_require_bucket_name(self) -> None:
        """Test that a missing bucket name is reported with the ways to set it."""
        with pytest.raises(ValidationError, match="SITE_BUCKET_NAME"):
            Settings().require_bucket_name()
