"""Reconcile an S3 bucket into a public static website."""

__version__ = "0.1.0"
