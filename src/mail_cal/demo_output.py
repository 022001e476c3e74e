"""Console report for a polling pass.

Renders a :class:`~mail_cal.pipeline.PassResult` as structured console
output: one block per processed message with the extracted event, one line
per failure, and a summary.

:func:`format_pass_result` returns the formatted string;
:func:`print_pass_result` writes it to stdout.
"""

from __future__ import annotations

import sys

from mail_cal.formatting import format_date, format_time
from mail_cal.pipeline import FailedMessage, MessageOutcome, PassResult

_BANNER_WIDTH = 60
_SEPARATOR = "=" * _BANNER_WIDTH


def format_pass_result(result: PassResult) -> str:
    """Render a :class:`PassResult` for the console.

    Args:
        result: The pass result to format.

    Returns:
        A multi-line string ready for console display.
    """
    lines: list[str] = [_SEPARATOR, "  EMAIL-TO-CALENDAR ASSISTANT", _SEPARATOR]

    lines.append("")
    lines.append(f"  Mailbox: {result.target_address}")
    lines.append(f"  Unread messages: {result.messages_found}")
    if result.dry_run:
        lines.append("  Mode: dry run (no replies sent)")

    if result.outcomes:
        lines.append("")
        lines.append("--- Invites ---")
        for outcome in result.outcomes:
            _append_outcome(lines, outcome, result.dry_run)

    if result.failures:
        lines.append("")
        lines.append("--- Failures ---")
        for failure in result.failures:
            _append_failure(lines, failure)

    lines.append("")
    lines.append("--- Summary ---")
    lines.append(
        f"  {len(result.outcomes)} processed, {result.replies_sent} replied, "
        f"{len(result.failures)} failed"
    )
    lines.append(f"  Duration: {result.duration_seconds:.1f}s")
    lines.append(_SEPARATOR)
    return "\n".join(lines)


def print_pass_result(result: PassResult) -> None:
    """Format and print a :class:`PassResult` to stdout."""
    sys.stdout.write(format_pass_result(result) + "\n")


def _append_outcome(lines: list[str], outcome: MessageOutcome, dry_run: bool) -> None:
    processed = outcome.processed
    event = processed.event
    lines.append("")
    lines.append(f"  From: {processed.email.sender_address}")
    lines.append(f"  Subject: {processed.email.subject}")
    lines.append(f"    Event: {event.title}")
    lines.append(
        f"    When: {format_date(event.start_timestamp)} {format_time(event.start_timestamp)}"
        f" -> {format_date(event.end_timestamp)} {format_time(event.end_timestamp)}"
    )
    if event.location:
        lines.append(f"    Where: {event.location}")
    if dry_run:
        marker = "[DRY RUN] would reply"
    elif outcome.reply_sent:
        marker = "[SENT] reply"
    else:
        marker = "[SKIPPED] reply"
    line = f"    {marker} with {processed.invite.filename}"
    if outcome.reply_sent and not outcome.marked_read:
        line += " (message left unread)"
    lines.append(line)


def _append_failure(lines: list[str], failure: FailedMessage) -> None:
    lines.append(
        f"  [FAILED] {failure.email.sender_address} {failure.email.subject!r}: "
        f"{failure.error_type}: {failure.error}"
    )
