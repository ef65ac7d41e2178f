"""Command line interface: plan, apply, destroy, output and sync."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Callable

from colorama import Fore, Style, just_fix_windows_console

from . import __version__
from .builders import create_desired_state, create_provider_from_settings, validate_bucket_name, validate_region
from .config import Settings, load_settings
from .constants import OUTPUT_NAMES
from .errors import ReconcilerError
from .logging import setup_structured_logging, verbosity_to_level
from .metrics import write_metrics_file
from .models import Action, AppliedState, ChangeSet
from .reconciler import Reconciler
from .sync import sync_directory
from .tracing import initialize_tracing, shutdown_tracing
from .utils.context import with_run_id
from .utils.errors import sanitize_exception
from .utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

_ACTION_COLORS = {Action.CREATE: Fore.GREEN, Action.UPDATE: Fore.YELLOW, Action.DELETE: Fore.RED}

EXAMPLES = """\
Examples:
  s3-site --bucket my-portfolio-site-12345 plan
  s3-site --bucket my-portfolio-site-12345 --region eu-west-1 apply --auto-approve
  s3-site --bucket my-portfolio-site-12345 sync ./public --delete
  s3-site --bucket my-portfolio-site-12345 output website_url
  s3-site --bucket my-portfolio-site-12345 destroy --force
"""


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="s3-site",
        description="Provision and tear down a public static website on S3.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Global flags (apply to all subcommands)
    parser.add_argument("--config", help="JSON config file with settings")
    parser.add_argument("--bucket", dest="bucket_name", help="Bucket name (globally unique)")
    parser.add_argument("--region", help="Bucket region (default: us-east-1)")
    parser.add_argument("--index-document", help="Index document suffix (default: index.html)")
    parser.add_argument("--error-document", help="Error document key")
    parser.add_argument("--endpoint-url", help="Custom S3 endpoint URL")
    parser.add_argument("--profile", help="Named AWS profile")
    parser.add_argument("--timeout", type=float, help="Per-call timeout in seconds")
    parser.add_argument("--max-retries", type=int, help="Retries for transient provider errors")
    parser.add_argument("--metrics-file", help="Write Prometheus metrics to this file on exit")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log INFO (-v) or DEBUG (-vv)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("plan", help="Show the operations apply would perform")

    apply_parser = subparsers.add_parser("apply", help="Create or update the bucket, website, policy and access block")
    apply_parser.add_argument("--auto-approve", action="store_true", help="Skip the confirmation prompt")

    destroy_parser = subparsers.add_parser("destroy", help="Remove the policy, access block and bucket")
    destroy_parser.add_argument("--auto-approve", action="store_true", help="Skip the confirmation prompt")
    destroy_parser.add_argument(
        "--force",
        dest="force_destroy",
        action="store_true",
        default=None,
        help="Empty a non-empty bucket before deleting it",
    )

    output_parser = subparsers.add_parser("output", help="Print outputs of the deployed site")
    output_parser.add_argument("name", nargs="?", choices=OUTPUT_NAMES, help="Single output to print")
    output_parser.add_argument("--json", action="store_true", help="Print all outputs as JSON")

    sync_parser = subparsers.add_parser("sync", help="Upload a local directory to the bucket")
    sync_parser.add_argument("source_dir", help="Directory holding the site")
    sync_parser.add_argument("--delete", action="store_true", help="Delete remote objects missing locally")

    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Resolve settings with command line flags taking precedence."""
    overrides = {
        "bucket_name": args.bucket_name,
        "region": args.region,
        "index_document": args.index_document,
        "error_document": args.error_document,
        "endpoint_url": args.endpoint_url,
        "profile": args.profile,
        "timeout": args.timeout,
        "max_retries": args.max_retries,
        "force_destroy": getattr(args, "force_destroy", None),
    }
    return load_settings(args.config, overrides)


def _paint(text: str, color: str, use_color: bool) -> str:
    if not use_color:
        return text
    return f"{color}{text}{Style.RESET_ALL}"


def print_change_set(change_set: ChangeSet, use_color: bool = True) -> None:
    """Print the operations of a change set, one per line."""
    if change_set.is_empty:
        print(_paint("No changes. Remote state matches the desired state.", Fore.GREEN, use_color))
        return

    for operation in change_set:
        print("  " + _paint(operation.describe(), _ACTION_COLORS[operation.action], use_color))

    counts = change_set.summary()
    print(
        f"\nPlan: {counts['create']} to create, {counts['update']} to update, {counts['delete']} to delete."
    )


def print_applied(applied: AppliedState, use_color: bool = True) -> None:
    if applied.changed:
        print(_paint(f"\nApply complete, {len(applied.performed)} operations performed.", Fore.GREEN, use_color))
    for name, value in applied.outputs.items():
        print(f"{name} = {value}")


def confirm(prompt: str) -> bool:
    """Ask for an explicit "yes" on stdin."""
    try:
        answer = input(f"{prompt} Only 'yes' will be accepted: ")
    except EOFError:
        return False
    return answer.strip() == "yes"


def _make_reconciler(settings: Settings) -> Reconciler:
    provider = create_provider_from_settings(settings)
    retry_policy = RetryPolicy(max_retries=settings.max_retries, base_delay=settings.retry_base_delay)
    return Reconciler(provider, retry_policy=retry_policy)


def cmd_plan(reconciler: Reconciler, settings: Settings, args: argparse.Namespace) -> int:
    desired = create_desired_state(settings)
    change_set = reconciler.plan(desired, reconciler.observe(desired.bucket.name))
    print_change_set(change_set, not args.no_color)
    return 0


def cmd_apply(reconciler: Reconciler, settings: Settings, args: argparse.Namespace) -> int:
    desired = create_desired_state(settings)
    change_set = reconciler.plan(desired, reconciler.observe(desired.bucket.name))
    print_change_set(change_set, not args.no_color)

    if not change_set.is_empty and not args.auto_approve:
        if not confirm("\nDo you want to perform these operations?"):
            print("Apply cancelled.")
            return 1

    applied = reconciler.apply(change_set)
    print_applied(applied, not args.no_color)
    return 0


def cmd_destroy(reconciler: Reconciler, settings: Settings, args: argparse.Namespace) -> int:
    bucket_name = settings.require_bucket_name()
    observed = reconciler.observe(bucket_name, check_contents=True)
    change_set = reconciler.plan_destroy(observed, force=settings.force_destroy)
    print_change_set(change_set, not args.no_color)
    if change_set.is_empty:
        return 0

    if not args.auto_approve and not confirm("\nDo you really want to destroy the site?"):
        print("Destroy cancelled.")
        return 1

    applied = reconciler.apply(change_set)
    print(_paint(f"Destroy complete, {len(applied.performed)} operations performed.", Fore.GREEN, not args.no_color))
    return 0


def cmd_output(reconciler: Reconciler, settings: Settings, args: argparse.Namespace) -> int:
    bucket_name = settings.require_bucket_name()
    result = reconciler.output(bucket_name, args.name)
    if isinstance(result, str):
        print(result)
    elif args.json:
        print(json.dumps(result, indent=2))
    else:
        for name, value in result.items():
            print(f"{name} = {value}")
    return 0


def cmd_sync(reconciler: Reconciler, settings: Settings, args: argparse.Namespace) -> int:
    bucket_name = settings.require_bucket_name()
    # Refuses to upload into a bucket that does not serve a website yet
    endpoint = reconciler.website_endpoint(bucket_name)
    result = sync_directory(
        reconciler.provider,
        bucket_name,
        args.source_dir,
        delete=args.delete,
        retry_policy=reconciler.retry_policy,
    )
    print(
        f"Uploaded {len(result.uploaded)}, unchanged {len(result.skipped)}, deleted {len(result.deleted)} objects."
    )
    print(f"website_url = {endpoint.url}")
    return 0


COMMANDS: dict[str, Callable[[Reconciler, Settings, argparse.Namespace], int]] = {
    "plan": cmd_plan,
    "apply": cmd_apply,
    "destroy": cmd_destroy,
    "output": cmd_output,
    "sync": cmd_sync,
}


def run(args: argparse.Namespace) -> int:
    """Run one parsed command and return its exit status."""
    settings = settings_from_args(args)
    bucket_name = settings.require_bucket_name()
    # Validate before any client is built
    validate_bucket_name(bucket_name)
    validate_region(settings.region)
    reconciler = _make_reconciler(settings)
    handler = COMMANDS[args.command]
    return reconciler.run_with_metrics(args.command, bucket_name, lambda: handler(reconciler, settings, args))


def _report_error(error: BaseException, use_color: bool) -> None:
    print(_paint(f"Error: {sanitize_exception(error)}", Fore.RED, use_color), file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    use_color = not args.no_color
    if use_color:
        just_fix_windows_console()
    setup_structured_logging(verbosity_to_level(args.verbose))
    initialize_tracing()

    exit_code: int
    try:
        with with_run_id():
            exit_code = run(args)
    except ReconcilerError as e:
        _report_error(e, use_color)
        exit_code = e.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted. Re-run the command, it re-reads the remote state first.", file=sys.stderr)
        exit_code = EXIT_INTERRUPTED
    finally:
        shutdown_tracing()

    if args.metrics_file:
        try:
            write_metrics_file(args.metrics_file)
        except OSError as e:
            logger.warning(f"Failed to write metrics file {args.metrics_file}: {e}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
