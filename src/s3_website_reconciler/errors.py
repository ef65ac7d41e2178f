"""Error taxonomy for the S3 website reconciler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .models import Operation


class ReconcilerError(Exception):
    """Base class for all reconciler errors."""

    exit_code = 1


class ValidationError(ReconcilerError):
    """Desired state or configuration is invalid. Never retried."""

    exit_code = 2


class BucketNotEmptyError(ValidationError):
    """Bucket still holds objects and force destroy was not requested."""

    def __init__(self, bucket_name: str) -> None:
        super().__init__(
            f"Bucket {bucket_name} is not empty. Re-run destroy with --force to empty it before deletion."
        )
        self.bucket_name = bucket_name


class ConflictError(ReconcilerError):
    """Bucket name is already taken in the global namespace."""

    exit_code = 3

    def __init__(self, bucket_name: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Bucket name {bucket_name} is already taken by another account. "
            "Bucket names are global, pick a different name and re-run apply."
        )
        self.bucket_name = bucket_name


class ProviderError(ReconcilerError):
    """Non-transient error returned by the provider API."""

    def __init__(self, operation: str, message: str, code: str | None = None) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.code = code


class TransientProviderError(ProviderError):
    """Throttling, timeouts and 5xx responses. Retried with backoff."""

    exit_code = 4


class PartialApplyError(ReconcilerError):
    """Some operations of a change set succeeded before one failed.

    Re-running the same command is safe: the next plan re-observes remote state and only
    emits the operations that are still missing.
    """

    exit_code = 5

    def __init__(
        self,
        completed: Sequence[Operation],
        failed: Operation,
        remaining: Sequence[Operation],
        cause: Exception,
        command: str = "apply",
    ) -> None:
        self.completed = tuple(completed)
        self.failed = failed
        self.remaining = tuple(remaining)
        self.cause = cause
        self.command = command
        done = ", ".join(op.kind.value for op in self.completed) or "none"
        todo = ", ".join(op.kind.value for op in self.remaining) or "none"
        super().__init__(
            f"{command.capitalize()} stopped at {failed.kind.value} ({cause}). "
            f"Completed: {done}. Not attempted: {todo}. Re-run {command} to finish."
        )


class NotReadyError(ReconcilerError):
    """Output requested before the bucket and its website configuration exist."""

    exit_code = 6
