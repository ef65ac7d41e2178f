"""Bounded exponential backoff for transient provider errors."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .. import metrics
from ..constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_DELAY,
    EVENT_REASON_RETRYING,
)
from ..errors import TransientProviderError
from ..logging import log_resource_event

_T = TypeVar("_T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to retry a transient failure."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    max_delay: float = DEFAULT_RETRY_MAX_DELAY
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-based): base * 2^attempt, capped."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        if self.jitter:
            # Full jitter keeps concurrent CI jobs from retrying in lockstep
            delay = random.uniform(0, delay)
        return delay


NO_RETRY = RetryPolicy(max_retries=0)


def call_with_retry(
    func: Callable[[], _T],
    policy: RetryPolicy,
    operation: str,
    resource_name: str = "",
    sleep: Callable[[float], None] = time.sleep,
) -> _T:
    """Call ``func`` and retry it while it raises TransientProviderError.

    Args:
        func: Zero-argument callable doing one provider call
        policy: Retry budget and backoff
        operation: Operation name for logs and metrics
        resource_name: Bucket name for logs
        sleep: Sleep function, replaced in tests

    Returns:
        Whatever ``func`` returns

    Raises:
        TransientProviderError: Once the retry budget is exhausted
    """
    attempt = 0
    while True:
        try:
            return func()
        except TransientProviderError as e:
            if attempt >= policy.max_retries:
                raise
            delay = policy.delay(attempt)
            attempt += 1
            metrics.retry_total.labels(operation=operation).inc()
            log_resource_event(
                logger,
                resource_kind="Operation",
                resource_name=resource_name,
                event="retry",
                reason=EVENT_REASON_RETRYING,
                message=f"{operation} failed with a transient error, retrying in {delay:.2f}s",
                level=logging.WARNING,
                attempt=attempt,
                max_retries=policy.max_retries,
                error=str(e),
            )
            sleep(delay)

