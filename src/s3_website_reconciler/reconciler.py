"""Reconciler converging one static-site bucket to its desired state.

Every entry point re-observes the remote state first. Nothing from a previous
run, including a cancelled one, is trusted, so re-running apply after any
failure only issues the operations that are still missing.

Concurrent runs against the same bucket are not coordinated and may race.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from . import metrics
from .constants import (
    EVENT_REASON_DRIFT_DETECTED,
    EVENT_REASON_NO_CHANGES,
    EVENT_REASON_OPERATION_APPLIED,
    EVENT_REASON_OPERATION_FAILED,
    EVENT_REASON_PARTIAL_APPLY,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    KIND_BUCKET,
    KIND_BUCKET_POLICY,
    KIND_PUBLIC_ACCESS_BLOCK,
    KIND_WEBSITE,
    OUTPUT_BUCKET_ARN,
    OUTPUT_BUCKET_DOMAIN,
    OUTPUT_BUCKET_NAME,
    OUTPUT_NAMES,
    OUTPUT_REGION,
    OUTPUT_WEBSITE_ENDPOINT,
    OUTPUT_WEBSITE_URL,
)
from .errors import (
    BucketNotEmptyError,
    ConflictError,
    NotReadyError,
    PartialApplyError,
    ReconcilerError,
    ValidationError,
)
from .logging import log_resource_event
from .models import (
    Action,
    AppliedState,
    BucketSpec,
    ChangeSet,
    DesiredState,
    Operation,
    OperationKind,
    RemoteState,
    WebsiteEndpointOutput,
    partition_for_region,
    website_endpoint_for,
)
from .services.s3.base import S3Provider
from .tracing import trace_span
from .utils.errors import sanitize_exception
from .utils.retry import RetryPolicy, call_with_retry

_T = TypeVar("_T")

_KIND_BY_OPERATION = {
    OperationKind.CREATE_BUCKET: KIND_BUCKET,
    OperationKind.DELETE_BUCKET: KIND_BUCKET,
    OperationKind.SET_WEBSITE_CONFIG: KIND_WEBSITE,
    OperationKind.PUT_BUCKET_POLICY: KIND_BUCKET_POLICY,
    OperationKind.DELETE_BUCKET_POLICY: KIND_BUCKET_POLICY,
    OperationKind.SET_PUBLIC_ACCESS_BLOCK: KIND_PUBLIC_ACCESS_BLOCK,
    OperationKind.DELETE_PUBLIC_ACCESS_BLOCK: KIND_PUBLIC_ACCESS_BLOCK,
}


def _as_sorted_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return sorted(value, key=str)
    return [value]


def normalize_policy(document: dict[str, Any] | None) -> dict[str, Any] | None:
    """Normalize a policy document so that equivalent documents compare equal.

    S3 may hand back single-element lists as plain strings and a wildcard
    principal as ``{"AWS": "*"}``.
    """
    if document is None:
        return None

    statements = document.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]

    normalized = []
    for stmt in statements:
        principal = stmt.get("Principal")
        if principal == {"AWS": "*"}:
            principal = "*"
        normalized.append({
            "Effect": stmt.get("Effect"),
            "Principal": principal,
            "Action": _as_sorted_list(stmt.get("Action")),
            "Resource": _as_sorted_list(stmt.get("Resource")),
            "Condition": stmt.get("Condition"),
        })

    return {"Version": document.get("Version"), "Statement": sorted(normalized, key=str)}


def build_outputs(bucket_name: str, region: str, endpoint: WebsiteEndpointOutput) -> dict[str, str]:
    """All named outputs of a deployed site.

    The website endpoint and the bucket name are distinct values: the endpoint
    is where browsers go, the bucket name is what uploads target.
    """
    return {
        OUTPUT_WEBSITE_ENDPOINT: endpoint.endpoint,
        OUTPUT_WEBSITE_URL: endpoint.url,
        OUTPUT_BUCKET_NAME: bucket_name,
        OUTPUT_BUCKET_ARN: f"arn:{partition_for_region(region)}:s3:::{bucket_name}",
        OUTPUT_BUCKET_DOMAIN: f"{bucket_name}.s3.{region}.amazonaws.com",
        OUTPUT_REGION: region,
    }


class Reconciler:
    """Plans and applies the operations that converge a bucket to its desired state."""

    def __init__(
        self,
        provider: S3Provider,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the reconciler.

        Args:
            provider: Provider client, an in-memory fake in tests
            retry_policy: Retry budget for transient provider errors
            sleep: Sleep function used between retries
        """
        self.provider = provider
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self.logger = logging.getLogger(__name__)

    def log_info(self, kind: str, name: str, message: str, reason: str = "Info", **kwargs: Any) -> None:
        log_resource_event(self.logger, kind, name, "info", reason, message, **kwargs)

    def log_warning(self, kind: str, name: str, message: str, reason: str = "Warning", **kwargs: Any) -> None:
        log_resource_event(self.logger, kind, name, "warning", reason, message, level=logging.WARNING, **kwargs)

    def log_error(
        self,
        kind: str,
        name: str,
        message: str,
        error: BaseException | None = None,
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        log_resource_event(self.logger, kind, name, "error", reason, message, level=logging.ERROR, **kwargs)

    def _call(self, operation: str, bucket: str, func: Callable[[], _T]) -> _T:
        return call_with_retry(func, self.retry_policy, operation, bucket, sleep=self._sleep)

    def run_with_metrics(self, command: str, bucket_name: str, fn: Callable[[], _T]) -> _T:
        """Run one command with metrics, a trace span and failure logging.

        Args:
            command: Command name (plan, apply, destroy, output, sync)
            bucket_name: Target bucket
            fn: Function doing the work

        Returns:
            Whatever ``fn`` returns
        """
        self.log_info(KIND_BUCKET, bucket_name, f"{command} started", reason=EVENT_REASON_RECONCILE_STARTED)
        start_time = time.time()
        try:
            with trace_span(command, kind=KIND_BUCKET, attributes={"bucket.name": bucket_name}):
                result = fn()
            metrics.reconcile_total.labels(command=command, result="success").inc()
            return result
        except ReconcilerError as e:
            metrics.error_total.labels(error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(command=command, result="error").inc()
            self.log_error(KIND_BUCKET, bucket_name, f"{command} failed", error=e, reason=EVENT_REASON_RECONCILE_FAILED)
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(command=command).observe(duration)

    def observe(self, bucket_name: str, check_contents: bool = False) -> RemoteState:
        """Read the current remote state of a bucket.

        Args:
            bucket_name: Bucket to observe
            check_contents: Also check whether the bucket holds objects

        Raises:
            ConflictError: If the bucket exists but belongs to another account
        """
        with trace_span("observe", kind=KIND_BUCKET, attributes={"bucket.name": bucket_name}):
            region = self._call("HeadBucket", bucket_name, lambda: self.provider.head_bucket(bucket_name))
            if region is None:
                return RemoteState.absent(bucket_name)

            website = self._call(
                "GetBucketWebsite", bucket_name, lambda: self.provider.get_website_config(bucket_name)
            )
            policy = self._call(
                "GetBucketPolicy", bucket_name, lambda: self.provider.get_bucket_policy(bucket_name)
            )
            public_access_block = self._call(
                "GetPublicAccessBlock", bucket_name, lambda: self.provider.get_public_access_block(bucket_name)
            )
            empty = True
            if check_contents:
                empty = self._call(
                    "ListObjectVersions", bucket_name, lambda: self.provider.is_bucket_empty(bucket_name)
                )

        return RemoteState(
            bucket_name=bucket_name,
            exists=True,
            region=region,
            website=website,
            policy=policy,
            public_access_block=public_access_block,
            empty=empty,
        )

    def plan(self, desired: DesiredState, observed: RemoteState) -> ChangeSet:
        """Diff desired against observed state. Performs no remote calls.

        Each resource that exists and matches is a no-op. Operations are
        ordered: bucket, website configuration, public access block, policy.
        The public access block goes before the policy because S3 rejects a
        public policy while BlockPublicPolicy is on.

        Raises:
            ValidationError: If the observed state is for another bucket, or the
                bucket exists in a different region
        """
        bucket = desired.bucket
        if observed.bucket_name != bucket.name:
            raise ValidationError(
                f"observed state is for bucket {observed.bucket_name}, desired bucket is {bucket.name}"
            )

        with trace_span("plan", kind=KIND_BUCKET, attributes={"bucket.name": bucket.name}):
            if not observed.exists:
                operations = self._plan_create(desired)
            else:
                operations = self._plan_update(desired, observed)

        change_set = ChangeSet(bucket_name=bucket.name, operations=tuple(operations), region=bucket.region)
        if change_set.is_empty:
            self.log_info(KIND_BUCKET, bucket.name, "Remote state matches desired state", reason=EVENT_REASON_NO_CHANGES)
        return change_set

    def _plan_create(self, desired: DesiredState) -> list[Operation]:
        bucket = desired.bucket
        return [
            Operation(OperationKind.CREATE_BUCKET, bucket.name, Action.CREATE, {"region": bucket.region}),
            self._website_operation(bucket, Action.CREATE),
            Operation(
                OperationKind.SET_PUBLIC_ACCESS_BLOCK,
                bucket.name,
                Action.CREATE,
                {"settings": desired.public_access_block},
            ),
            Operation(OperationKind.PUT_BUCKET_POLICY, bucket.name, Action.CREATE, {"policy": desired.policy.document()}),
        ]

    def _plan_update(self, desired: DesiredState, observed: RemoteState) -> list[Operation]:
        bucket = desired.bucket
        if observed.region and observed.region != bucket.region:
            raise ValidationError(
                f"bucket {bucket.name} exists in {observed.region} but the desired region is {bucket.region}; "
                "a bucket cannot move between regions, destroy it first or change the region setting"
            )

        operations: list[Operation] = []

        if observed.website != bucket.website:
            action = Action.CREATE if observed.website is None else Action.UPDATE
            self._record_drift(bucket.name, KIND_WEBSITE, observed.website is not None)
            operations.append(self._website_operation(bucket, action))

        if observed.public_access_block != desired.public_access_block:
            action = Action.CREATE if observed.public_access_block is None else Action.UPDATE
            self._record_drift(bucket.name, KIND_PUBLIC_ACCESS_BLOCK, observed.public_access_block is not None)
            operations.append(
                Operation(
                    OperationKind.SET_PUBLIC_ACCESS_BLOCK,
                    bucket.name,
                    action,
                    {"settings": desired.public_access_block},
                )
            )

        desired_policy = desired.policy.document()
        if normalize_policy(observed.policy) != normalize_policy(desired_policy):
            action = Action.CREATE if observed.policy is None else Action.UPDATE
            self._record_drift(bucket.name, KIND_BUCKET_POLICY, observed.policy is not None)
            operations.append(
                Operation(OperationKind.PUT_BUCKET_POLICY, bucket.name, action, {"policy": desired_policy})
            )

        return operations

    def _website_operation(self, bucket: BucketSpec, action: Action) -> Operation:
        return Operation(
            OperationKind.SET_WEBSITE_CONFIG,
            bucket.name,
            action,
            {"index_document": bucket.index_document, "error_document": bucket.error_document},
        )

    def _record_drift(self, bucket_name: str, kind: str, existed: bool) -> None:
        if not existed:
            return
        metrics.drift_detected_total.labels(resource_type=kind).inc()
        self.log_info(kind, bucket_name, f"Drift detected: {kind} of bucket {bucket_name}", reason=EVENT_REASON_DRIFT_DETECTED)

    def plan_destroy(self, observed: RemoteState, force: bool = False) -> ChangeSet:
        """Plan the teardown: policy and public access block go before the bucket.

        Raises:
            BucketNotEmptyError: If the bucket holds objects and force is False
        """
        name = observed.bucket_name
        if not observed.exists:
            return ChangeSet(bucket_name=name, operations=(), region=None)
        if not observed.empty and not force:
            raise BucketNotEmptyError(name)

        operations: list[Operation] = []
        if observed.policy is not None:
            operations.append(Operation(OperationKind.DELETE_BUCKET_POLICY, name, Action.DELETE))
        if observed.public_access_block is not None:
            operations.append(Operation(OperationKind.DELETE_PUBLIC_ACCESS_BLOCK, name, Action.DELETE))
        operations.append(Operation(OperationKind.DELETE_BUCKET, name, Action.DELETE, {"force": force}))
        return ChangeSet(bucket_name=name, operations=tuple(operations), region=observed.region)

    def apply(self, change_set: ChangeSet) -> AppliedState:
        """Execute a change set in order.

        An empty change set performs no remote calls.

        Raises:
            ValidationError: Terminal, nothing was retried
            ConflictError: Terminal, the bucket name is taken
            PartialApplyError: An operation failed after earlier ones succeeded
            ReconcilerError: The first operation failed
        """
        operations = change_set.operations
        completed: list[Operation] = []
        destroying = bool(operations) and operations[-1].kind is OperationKind.DELETE_BUCKET
        command = "destroy" if destroying else "apply"

        with trace_span("apply", kind=KIND_BUCKET, attributes={"bucket.name": change_set.bucket_name}):
            for index, operation in enumerate(operations):
                kind = _KIND_BY_OPERATION[operation.kind]
                try:
                    with trace_span(operation.kind.value, kind=kind):
                        self._call(operation.kind.value, operation.bucket, lambda op=operation: self._execute(op))
                except (ValidationError, ConflictError) as e:
                    metrics.bucket_operations_total.labels(operation=operation.kind.value, result="failed").inc()
                    self.log_error(kind, operation.bucket, f"{operation.kind.value} rejected", error=e,
                                   reason=EVENT_REASON_OPERATION_FAILED)
                    raise
                except ReconcilerError as e:
                    metrics.bucket_operations_total.labels(operation=operation.kind.value, result="failed").inc()
                    self.log_error(kind, operation.bucket, f"{operation.kind.value} failed", error=e,
                                   reason=EVENT_REASON_OPERATION_FAILED)
                    if not completed:
                        raise
                    remaining = operations[index + 1:]
                    self.log_warning(
                        KIND_BUCKET,
                        change_set.bucket_name,
                        f"{command.capitalize()} stopped part way, re-run {command} to finish",
                        reason=EVENT_REASON_PARTIAL_APPLY,
                        completed=[op.kind.value for op in completed],
                        failed=operation.kind.value,
                        remaining=[op.kind.value for op in remaining],
                    )
                    raise PartialApplyError(completed, operation, remaining, e, command=command) from e

                completed.append(operation)
                metrics.bucket_operations_total.labels(operation=operation.kind.value, result="success").inc()
                self.log_info(kind, operation.bucket, f"{operation.describe()} done", reason=EVENT_REASON_OPERATION_APPLIED)

        outputs: dict[str, str] = {}
        if change_set.region and not destroying:
            endpoint = WebsiteEndpointOutput(
                change_set.bucket_name,
                change_set.region,
                website_endpoint_for(change_set.bucket_name, change_set.region),
            )
            outputs = build_outputs(change_set.bucket_name, change_set.region, endpoint)

        return AppliedState(
            bucket_name=change_set.bucket_name,
            region=change_set.region,
            performed=tuple(completed),
            outputs=outputs,
        )

    def _execute(self, operation: Operation) -> None:
        name = operation.bucket
        payload = operation.payload
        kind = operation.kind

        if kind is OperationKind.CREATE_BUCKET:
            self.provider.create_bucket(name, payload["region"])
        elif kind is OperationKind.SET_WEBSITE_CONFIG:
            self.provider.set_website_config(name, payload["index_document"], payload.get("error_document"))
        elif kind is OperationKind.SET_PUBLIC_ACCESS_BLOCK:
            self.provider.set_public_access_block(name, payload["settings"])
        elif kind is OperationKind.PUT_BUCKET_POLICY:
            self.provider.put_bucket_policy(name, payload["policy"])
        elif kind is OperationKind.DELETE_BUCKET_POLICY:
            self.provider.delete_bucket_policy(name)
        elif kind is OperationKind.DELETE_PUBLIC_ACCESS_BLOCK:
            self.provider.delete_public_access_block(name)
        elif kind is OperationKind.DELETE_BUCKET:
            self.provider.delete_bucket(name, force=payload.get("force", False))
        else:
            raise ValidationError(f"unsupported operation {kind}")

    def reconcile(self, desired: DesiredState) -> AppliedState:
        """Observe, plan and apply in one go."""
        observed = self.observe(desired.bucket.name)
        return self.apply(self.plan(desired, observed))

    def destroy(self, bucket_name: str, force: bool = False) -> AppliedState:
        """Remove the policy, the public access block and the bucket."""
        observed = self.observe(bucket_name, check_contents=True)
        return self.apply(self.plan_destroy(observed, force=force))

    def website_endpoint(self, bucket_name: str) -> WebsiteEndpointOutput:
        """Return the website endpoint of a deployed bucket.

        Raises:
            NotReadyError: Before the bucket and its website configuration exist
        """
        region = self._call("HeadBucket", bucket_name, lambda: self.provider.head_bucket(bucket_name))
        if region is None:
            raise NotReadyError(f"Bucket {bucket_name} does not exist yet, run apply first")
        endpoint = self._call(
            "GetBucketWebsite", bucket_name, lambda: self.provider.get_website_endpoint(bucket_name, region)
        )
        return WebsiteEndpointOutput(bucket_name=bucket_name, region=region, endpoint=endpoint)

    def output(self, bucket_name: str, name: str | None = None) -> dict[str, str] | str:
        """Return one named output, or all of them when ``name`` is None.

        Raises:
            NotReadyError: Before the bucket and its website configuration exist
            ValidationError: If ``name`` is not a known output
        """
        if name is not None and name not in OUTPUT_NAMES:
            raise ValidationError(f"unknown output {name!r}, available: {', '.join(OUTPUT_NAMES)}")

        endpoint = self.website_endpoint(bucket_name)
        outputs = build_outputs(bucket_name, endpoint.region, endpoint)
        if name is None:
            return outputs
        return outputs[name]
