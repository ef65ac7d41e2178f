"""Prometheus metrics for the S3 website reconciler."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, write_to_textfile

# Reconciliation metrics
reconcile_total = Counter(
    "s3_website_reconciler_reconcile_total",
    "Total number of reconciler commands",
    ["command", "result"],
)

reconcile_duration_seconds = Histogram(
    "s3_website_reconciler_reconcile_duration_seconds",
    "Duration of reconciler commands in seconds",
    ["command"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Remote mutations issued by apply/destroy
bucket_operations_total = Counter(
    "s3_website_reconciler_bucket_operations_total",
    "Total number of bucket operations applied",
    ["operation", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "s3_website_reconciler_drift_detected_total",
    "Total number of configuration drift detections",
    ["resource_type"],
)

# API call metrics
api_call_total = Counter(
    "s3_website_reconciler_api_call_total",
    "Total number of provider API calls",
    ["operation", "result"],
)

api_call_duration_seconds = Histogram(
    "s3_website_reconciler_api_call_duration_seconds",
    "Duration of provider API calls in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

retry_total = Counter(
    "s3_website_reconciler_retry_total",
    "Total number of retries after transient provider errors",
    ["operation"],
)

error_total = Counter(
    "s3_website_reconciler_error_total",
    "Total number of errors surfaced to the user",
    ["error_type"],
)


def write_metrics_file(path: str, registry: CollectorRegistry = REGISTRY) -> None:
    """Write the registry in the text exposition format.

    The file is written atomically, which is what the node-exporter
    textfile collector expects.
    """
    write_to_textfile(path, registry)
