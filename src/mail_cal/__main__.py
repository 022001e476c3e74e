"""Entry point for ``python -m mail_cal``.

Provides a CLI that polls the assistant mailbox and answers forwarded emails
with calendar invites.  Uses stdlib :mod:`argparse` for argument parsing.

Subcommands:
    run   -- Default. Run a single polling pass and print a report.
    watch -- Poll repeatedly on a fixed interval until interrupted.

Exit codes:
    0 -- Completed (including passes where individual messages failed).
    1 -- Configuration error, or a mailbox error that aborted a pass
         (authentication, or listing unread messages).
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import sys

from mail_cal.config import ConfigError, Settings, load_settings
from mail_cal.demo_output import print_pass_result
from mail_cal.log import setup_logging
from mail_cal.mail.exceptions import MailAPIError
from mail_cal.pipeline import PassResult, run_pipeline, watch


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser with subcommands.

    Returns:
        Configured :class:`argparse.ArgumentParser` with ``run`` and
        ``watch`` subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="mail-cal",
        description="Reply to forwarded emails with calendar invites.",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- "run" subcommand (default) -----------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Process unread messages once.",
    )
    _add_common_arguments(run_parser)

    # --- "watch" subcommand -------------------------------------------
    watch_parser = subparsers.add_parser(
        "watch",
        help="Poll for unread messages until interrupted.",
    )
    watch_parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help=(
            "Seconds between passes "
            "(defaults to POLL_INTERVAL_SECONDS from config)."
        ),
    )
    _add_common_arguments(watch_parser)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Extract events and build invites but do not reply or mark read.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )


def _resolve_command(
    parser: argparse.ArgumentParser,
    argv: list[str],
) -> argparse.Namespace:
    """Parse *argv*, routing to ``run`` when no subcommand is given.

    ``python -m mail_cal`` and ``python -m mail_cal --dry-run`` both run a
    single pass.
    """
    known_subcommands = {"run", "watch"}
    if not argv:
        argv = ["run"]
    elif argv[0] in {"-h", "--help"}:
        pass
    elif argv[0] not in known_subcommands:
        argv = ["run", *argv]

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> Settings | None:
    """Load settings and apply the configured log level.

    ``--verbose`` takes precedence over ``LOG_LEVEL``.  Errors are printed
    to stderr and ``None`` is returned.
    """
    try:
        settings = load_settings()
        if not args.verbose:
            setup_logging(settings.log_level)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None
    return settings


def _print_if_busy(result: PassResult) -> None:
    if result.messages_found:
        print_pass_result(result)


def _handle_run(args: argparse.Namespace) -> int:
    """Execute the ``run`` subcommand."""
    settings = _load_settings(args)
    if settings is None:
        return 1

    try:
        result = run_pipeline(settings, dry_run=args.dry_run)
    except MailAPIError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print_pass_result(result)
    return 0


def _handle_watch(args: argparse.Namespace) -> int:
    """Execute the ``watch`` subcommand."""
    if args.interval is not None and args.interval <= 0:
        print("Error: --interval must be a positive number of seconds", file=sys.stderr)
        return 1

    settings = _load_settings(args)
    if settings is None:
        return 1

    try:
        watch(
            settings,
            dry_run=args.dry_run,
            interval_seconds=args.interval,
            on_pass=_print_if_busy,
        )
    except MailAPIError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Stopped.", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the mail-cal CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``
            when ``None`` (the normal case).

    Returns:
        Exit code: ``0`` on success, ``1`` on error.
    """
    parser = build_parser()
    args = _resolve_command(parser, argv if argv is not None else sys.argv[1:])

    log_level = "DEBUG" if getattr(args, "verbose", False) else "INFO"
    setup_logging(log_level)

    if args.command == "watch":
        return _handle_watch(args)

    return _handle_run(args)


if __name__ == "__main__":
    raise SystemExit(main())
