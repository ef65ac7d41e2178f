"""Shared fixtures for unit tests."""

from __future__ import annotations

import logging

import pytest
from fakes import FakeProvider

from s3_website_reconciler.builders import create_desired_state
from s3_website_reconciler.config import Settings
from s3_website_reconciler.models import DesiredState
from s3_website_reconciler.reconciler import Reconciler
from s3_website_reconciler.utils.retry import NO_RETRY

BUCKET_NAME = "my-terraform-portfolio-site-12345"


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Create an empty in-memory provider."""
    return FakeProvider()


@pytest.fixture
def sleeps() -> list[float]:
    """Collect the delays a reconciler would have slept."""
    return []


@pytest.fixture
def reconciler(fake_provider: FakeProvider, sleeps: list[float]) -> Reconciler:
    """Create a reconciler that does not retry."""
    return Reconciler(fake_provider, retry_policy=NO_RETRY, sleep=sleeps.append)


@pytest.fixture
def desired() -> DesiredState:
    """Desired state of the portfolio site in us-east-1."""
    return create_desired_state(Settings(bucket_name=BUCKET_NAME))


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo logging setup done by the command line entry point."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
