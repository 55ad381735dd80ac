"""Chapa CLI entry point: login, logout and merge of EMU stats."""

import argparse
import asyncio
import json
import sys
import uuid
from typing import Any

from pydantic import ValidationError

from chapa_cli.auth.poller import AuthPoller
from chapa_cli.core.config import Settings, get_settings
from chapa_cli.core.credentials import CredentialStore, resolve_token
from chapa_cli.core.logging import (
    Console,
    Timings,
    get_logger,
    get_operation_id,
    set_operation_id,
    setup_logging,
)
from chapa_cli.github.client import GitHubClient
from chapa_cli.shared.exceptions import AuthSessionError, ConfigError, CredentialsError
from chapa_cli.stats.aggregator import format_stats_summary
from chapa_cli.stats.models import StatsData
from chapa_cli.upload.telemetry import (
    TelemetryPayload,
    TelemetryStats,
    TelemetryTiming,
    classify_error,
    drain_telemetry,
    fire_telemetry,
)
from chapa_cli.upload.uploader import upload_supplemental_stats

logger = get_logger(__name__)

COMMANDS = ("login", "logout", "merge")
EMU_TOKEN_ENV_VAR = "GITHUB_EMU_TOKEN"

DESCRIPTION = "Merge GitHub EMU (Enterprise Managed User) contributions into your Chapa badge."

EPILOG = """commands:
  chapa login                          Authenticate with Chapa (opens browser)
  chapa logout                         Clear stored credentials
  chapa merge --emu-handle <emu>       Merge EMU stats into your badge
"""


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the chapa command."""
    parser = argparse.ArgumentParser(
        prog="chapa",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", help="login | logout | merge")
    parser.add_argument("--emu-handle", help="Your EMU GitHub handle (required for merge)")
    parser.add_argument("--emu-token", help=f"EMU GitHub token (or set {EMU_TOKEN_ENV_VAR})")
    parser.add_argument("--handle", help="Override personal handle (auto-detected from login)")
    parser.add_argument("--token", help="Override auth token (auto-detected from login)")
    parser.add_argument("--server", help="Chapa server URL")
    parser.add_argument(
        "--verbose", action="store_true", help="Show detailed debug output and timings"
    )
    parser.add_argument(
        "--json", action="store_true", help="Output merge result as JSON (for scripting)"
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification (corporate networks)",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version number")
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Unknown commands parse as command=None so the caller can print usage
    and exit 1 instead of argparse's exit 2.

    Args:
        argv: Arguments without the program name

    Returns:
        Parsed namespace
    """
    args, _unknown = build_parser().parse_known_args(argv)
    if args.command not in COMMANDS:
        args.command = None
    return args


def _round_ms(value: float) -> float:
    return round(value, 1)


def _write_json(console: Console, document: dict[str, Any]) -> None:
    console.out.write(json.dumps(document, indent=2) + "\n")


async def run_login(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    """Run the browser login handshake and save credentials."""
    poller = AuthPoller(
        server_url=args.server or settings.server_url,
        store=CredentialStore(settings.credentials_path),
        console=console,
        verify_tls=not args.insecure,
        verbose=args.verbose,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_poll_attempts=settings.max_poll_attempts,
        progress_every=settings.progress_every,
    )
    try:
        await poller.login()
    except AuthSessionError as e:
        logger.info("cli.login.failed", error=str(e))
        return 1
    except CredentialsError as e:
        console.error(f"Error: {e}")
        return 1
    return 0


def run_logout(settings: Settings, console: Console) -> int:
    """Remove stored credentials."""
    store = CredentialStore(settings.credentials_path)
    try:
        removed = store.delete()
    except CredentialsError as e:
        console.error(f"Error: {e}")
        return 1

    if removed:
        console.notice(f"Logged out. Credentials removed from {store.file_path}")
    else:
        console.notice("Not logged in (no credentials found).")
    return 0


async def run_merge(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    """Fetch EMU stats, upload them to Chapa and fire telemetry.

    Returns:
        Process exit code (0 on success)
    """
    set_operation_id(str(uuid.uuid4()))

    timings = Timings(console)
    timings.start("total")

    credentials = CredentialStore(settings.credentials_path).load()

    handle = args.handle or (credentials.handle if credentials else None)
    emu_handle = args.emu_handle

    if not emu_handle:
        console.error("Error: --emu-handle is required.")
        return 1

    if not handle:
        console.error("Error: No personal handle found. Run 'chapa login' first, or pass --handle.")
        return 1

    emu_token = resolve_token(args.emu_token, EMU_TOKEN_ENV_VAR)
    if not emu_token:
        console.error(f"Error: EMU token required. Use --emu-token or set {EMU_TOKEN_ENV_VAR}.")
        return 1

    auth_token = args.token or (credentials.token if credentials else None)
    if not auth_token:
        console.error("Error: Not authenticated. Run 'chapa login' first, or pass --token.")
        return 1

    verify_tls = not args.insecure

    console.info(f"Fetching stats for EMU account: {emu_handle}...")
    timings.start("fetch")
    async with GitHubClient(
        emu_token, graphql_url=settings.github_graphql_url, verify_tls=verify_tls
    ) as github:
        stats = await github.fetch_contribution_stats(emu_handle)
    timings.stop("fetch")

    if stats is None:
        console.error("Error: Failed to fetch EMU stats. Check your EMU token and handle.")
        return 1

    console.info(format_stats_summary(stats))

    # An explicit --server wins, then the server the login was made against
    server_url = args.server or (credentials.server if credentials else settings.server_url)
    console.info(f"Uploading supplemental stats to {server_url}...")
    timings.start("upload")
    result = await upload_supplemental_stats(
        target_handle=handle,
        source_handle=emu_handle,
        stats=stats,
        token=auth_token,
        server_url=server_url,
        verify_tls=verify_tls,
    )
    timings.stop("upload")
    total_ms = timings.stop("total")

    elapsed = timings.as_dict()
    timing = TelemetryTiming(
        fetch_ms=_round_ms(elapsed["fetch"]),
        upload_ms=_round_ms(elapsed["upload"]),
        total_ms=_round_ms(total_ms),
    )

    if result.success:
        if args.json:
            _write_json(
                console,
                {
                    "success": True,
                    "targetHandle": handle,
                    "sourceHandle": emu_handle,
                    "stats": _json_stats(stats),
                    "timing": timing.model_dump(by_alias=True),
                    "cliVersion": settings.app_version,
                },
            )
        else:
            console.info(
                f"Success! Stats merged for {emu_handle} -> {handle} ({total_ms / 1000:.1f}s)"
            )
    else:
        if args.json:
            _write_json(
                console,
                {
                    "success": False,
                    "targetHandle": handle,
                    "sourceHandle": emu_handle,
                    "error": result.error,
                    "timing": timing.model_dump(by_alias=True),
                    "cliVersion": settings.app_version,
                },
            )
        else:
            console.error(f"Error: {result.error}")

    fire_telemetry(
        server_url,
        TelemetryPayload(
            operation_id=get_operation_id(),
            target_handle=handle,
            source_handle=emu_handle,
            success=result.success,
            error_category=None if result.success else classify_error(result.error or "unknown"),
            stats=TelemetryStats.from_stats(stats),
            timing=timing,
            cli_version=settings.app_version,
        ),
        timeout_seconds=settings.telemetry_timeout_seconds,
        verify_tls=verify_tls,
    )

    return 0 if result.success else 1


def _json_stats(stats: StatsData) -> dict[str, Any]:
    payload = stats.to_payload()
    keys = (
        "commitsTotal",
        "activeDays",
        "prsMergedCount",
        "prsMergedWeight",
        "reviewsSubmittedCount",
        "issuesClosedCount",
        "linesAdded",
        "linesDeleted",
        "reposContributed",
        "totalStars",
        "totalForks",
    )
    return {key: payload[key] for key in keys}


async def run(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    """Dispatch a parsed command.

    Args:
        args: Parsed command-line arguments
        settings: Loaded settings
        console: Operator-facing output

    Returns:
        Process exit code
    """
    if args.version:
        console.out.write(settings.app_version + "\n")
        return 0

    if args.json and args.verbose:
        console.error("Error: --json and --verbose cannot be used together.")
        return 1

    if args.insecure:
        console.warn("\nWarning: TLS certificate verification disabled (--insecure).")
        console.warn("  Use only on corporate networks with TLS interception.\n")

    if args.command == "login":
        return await run_login(args, settings, console)

    if args.command == "logout":
        return run_logout(settings, console)

    if args.command == "merge":
        return await run_merge(args, settings, console)

    console.error("Usage: chapa <login | logout | merge> [options]")
    console.error("\nRun 'chapa --help' for more information.")
    return 1


async def _run_and_drain(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    exit_code = await run(args, settings, console)
    # The outcome is already decided; telemetry only gets a bounded grace period
    await drain_telemetry(settings.telemetry_timeout_seconds)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = get_settings()
    except (ConfigError, ValidationError) as e:
        sys.stderr.write(f"Error: {e}\n")
        sys.exit(1)

    setup_logging("DEBUG" if args.verbose else settings.log_level, json_output=args.json)
    console = Console(verbose=args.verbose, json_output=args.json)

    try:
        exit_code = asyncio.run(_run_and_drain(args, settings, console))
    except KeyboardInterrupt:
        console.error("\nAborted.")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
