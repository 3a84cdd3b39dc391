"""Command-line interface for Label Recovery.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime

import structlog

from label_recovery import __version__
from label_recovery.config import Settings, get_settings
from label_recovery.exceptions import LabelRecoveryError, ScanFailure
from label_recovery.gmail.client import GmailClient
from label_recovery.log import configure_logging
from label_recovery.models import WINDOW_PRESETS, EnrichedMessage, GmailLabel, TimeWindow
from label_recovery.timeline import LabelTimelineResolver, flatten_member_ids, sort_for_display

logger = structlog.get_logger()


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {parsed}")
    return parsed


def _parse_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO date/time: {value!r}") from exc
    if parsed.tzinfo is None:
        # Naive input is local time, as typed into a date picker.
        parsed = parsed.astimezone()
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="label-recovery",
        description="Find messages a filter moved into a label and restore them to the inbox",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("labels", help="List mailbox labels")

    scan_parser = subparsers.add_parser(
        "scan",
        help="Show when a label was applied to its messages",
    )
    scan_parser.add_argument("label", help="Label id or display name")
    scan_parser.add_argument(
        "--window",
        choices=WINDOW_PRESETS,
        default="all",
        help="Preset time window (ignored when --after/--before are given)",
    )
    scan_parser.add_argument(
        "--after",
        type=_parse_datetime,
        default=None,
        help="Custom window start (ISO 8601, local time if no offset)",
    )
    scan_parser.add_argument(
        "--before",
        type=_parse_datetime,
        default=None,
        help="Custom window end (ISO 8601, local time if no offset)",
    )
    scan_parser.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Maximum number of messages (default: settings default_result_limit)",
    )
    scan_parser.add_argument(
        "--restore",
        action="store_true",
        help="Move every conversation found back to the inbox",
    )

    restore_parser = subparsers.add_parser("restore", help="Restore message ids to the inbox")
    restore_parser.add_argument("label_id", help="Label id to remove from the messages")
    restore_parser.add_argument("message_ids", nargs="+", help="Message ids to restore")

    return parser


def _find_label(labels: list[GmailLabel], key: str) -> GmailLabel | None:
    for label in labels:
        if label.id == key:
            return label
    lowered = key.lower()
    for label in labels:
        if label.name.lower() == lowered:
            return label
    return None


def _format_card(message: EnrichedMessage, estimated: bool) -> str:
    if message.label_applied_at is not None:
        applied = message.label_applied_at.astimezone().strftime("%Y-%m-%d %H:%M")
        applied = f"~{applied}" if estimated else applied
    else:
        applied = "(unknown)"
    members = len(message.member_message_ids)
    return f"{applied}\t{message.display_date}\t{message.sender}\t{message.subject}\t[{members}]"


async def _cmd_labels(settings: Settings) -> int:
    async with GmailClient(settings) as gmail:
        labels = await gmail.list_labels()

    for label in labels:
        print(f"{label.id}\t{label.type}\t{label.name}")
    return 0


async def _cmd_scan(args: argparse.Namespace, settings: Settings) -> int:
    try:
        if args.after is not None or args.before is not None:
            window = TimeWindow(after=args.after, before=args.before)
        else:
            window = TimeWindow.preset(args.window)
    except ValueError as exc:
        print(f"Invalid time window: {exc}", file=sys.stderr)
        return 2

    async with GmailClient(settings) as gmail:
        label = _find_label(await gmail.list_labels(), args.label)
        if label is None:
            print(f"Label not found: {args.label}", file=sys.stderr)
            return 1

        resolver = LabelTimelineResolver(gmail, settings)
        report = await resolver.scan(label.id, label.name, window, args.limit)
        messages = sort_for_display(report.messages)

        for message in messages:
            print(_format_card(message, report.estimated))

        if report.source == "fallback":
            print(
                f"Change log unavailable ({report.skip_reason}); "
                f"showing {len(messages)} conversations from label search.",
                file=sys.stderr,
            )
        else:
            print(f"Found {len(messages)} conversations via change log.", file=sys.stderr)

        if args.restore and messages:
            for message in messages:
                message.selected = True
            restored = await resolver.restore(flatten_member_ids(messages), label.id)
            print(f"Restored {restored} messages to the inbox.", file=sys.stderr)

    return 0


async def _cmd_restore(args: argparse.Namespace, settings: Settings) -> int:
    async with GmailClient(settings) as gmail:
        resolver = LabelTimelineResolver(gmail, settings)
        restored = await resolver.restore(args.message_ids, args.label_id)

    print(f"Restored {restored} messages to the inbox.")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Label Recovery CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()
    configure_logging(settings)

    logger.info("label_recovery_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        if parsed.command == "labels":
            return asyncio.run(_cmd_labels(settings))
        if parsed.command == "scan":
            return asyncio.run(_cmd_scan(parsed, settings))
        if parsed.command == "restore":
            return asyncio.run(_cmd_restore(parsed, settings))
    except ScanFailure as exc:
        logger.error("scan_failed", stage=exc.stage.value, error=str(exc.cause))
        print(f"Scan failed during {exc.stage.value}: {exc.cause}", file=sys.stderr)
        return 1
    except LabelRecoveryError as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
