"""Command-line interface for the Tax Intake Engine."""

import argparse
import json
import sys
from datetime import timedelta
from pathlib import Path
from uuid import UUID

from intake_engine import __version__
from intake_engine.config import Settings, get_settings
from intake_engine.container import Container
from intake_engine.domain.packets import PacketRequestStatus
from intake_engine.exceptions import IntakeEngineError
from intake_engine.logging_config import configure_logging
from intake_engine.pii import generate_key
from intake_engine.repositories.sqlite import SQLiteDatabase


def load_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "database", None):
        settings = settings.model_copy(update={"sqlite_path": Path(args.database)})
    return settings


def parse_uuid(value: str, label: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        print(f"Error: Invalid {label}: {value}")
        return None


def cmd_init(args: argparse.Namespace) -> int:
    """Create the database schema."""
    settings = load_settings(args)
    db = SQLiteDatabase(str(settings.sqlite_path))
    db.initialize()
    db.close()
    print(f"Initialized database at {settings.sqlite_path}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"Tax Intake Engine v{__version__}")
    return 0


def cmd_generate_key(args: argparse.Namespace) -> int:
    """Print a fresh data encryption key."""
    print(generate_key())
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    """Evaluate an intake for completeness."""
    intake_id = parse_uuid(args.intake_id, "intake ID")
    if intake_id is None:
        return 1

    with Container(load_settings(args)) as container:
        result = container.evaluator.evaluate(intake_id)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print(f"Intake: {intake_id}")
    print(f"Valid: {'yes' if result.valid else 'no'}")
    if result.missing_fields:
        print(f"Missing fields ({len(result.missing_fields)}):")
        for item in result.missing_fields:
            print(f"  - [{item.section}] {item.field}: {item.description}")
    if result.missing_docs:
        print(f"Missing documents ({len(result.missing_docs)}):")
        for item in result.missing_docs:
            print(f"  - [{item.section}] {item.field}: {item.description}")
    if result.warnings:
        print("Warnings:")
        for warning in result.warnings:
            print(f"  - {warning}")
    return 0


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Sync the checklist with a fresh evaluation."""
    intake_id = parse_uuid(args.intake_id, "intake ID")
    if intake_id is None:
        return 1

    with Container(load_settings(args)) as container:
        summary = container.reconciler.reconcile(intake_id)

    print(f"Checklist reconciled for {intake_id}")
    print(f"  Created: {summary.created}")
    print(f"  Reopened: {summary.reopened}")
    print(f"  Updated: {summary.updated}")
    print(f"  Resolved: {summary.resolved}")
    print(f"  Unchanged: {summary.unchanged}")
    return 0


def cmd_checklist(args: argparse.Namespace) -> int:
    """List checklist items for an intake."""
    intake_id = parse_uuid(args.intake_id, "intake ID")
    if intake_id is None:
        return 1

    with Container(load_settings(args)) as container:
        items = container.checklist_service.list_items(
            intake_id, include_resolved=not args.open
        )

    if not items:
        print("No checklist items.")
        return 0

    print(f"{'Status':<10} {'Type':<22} {'Field':<40} Description")
    print("-" * 100)
    for item in items:
        status = "resolved" if item.is_resolved else "open"
        print(
            f"{status:<10} {item.item_type.value:<22} {item.field_name or '-':<40} "
            f"{item.description}"
        )
    return 0


def cmd_packet_request(args: argparse.Namespace) -> int:
    """Generate a preparer packet and wait for it to finish."""
    intake_id = parse_uuid(args.intake_id, "intake ID")
    actor_id = parse_uuid(args.actor, "actor ID")
    if intake_id is None or actor_id is None:
        return 1

    with Container(load_settings(args)) as container:
        request_id = container.packet_service.enqueue_packet(intake_id, actor_id)
        print(f"Packet request created: {request_id}")
        container.packet_dispatcher.shutdown(wait=True)
        request = container.packet_service.get_packet_status(request_id)

    print(f"  Status: {request.status.value}")
    if request.packet_location:
        print(f"  Location: {request.packet_location}")
    if request.error_message:
        print(f"  Error: {request.error_message}")
    return 0 if request.status == PacketRequestStatus.COMPLETED else 1


def cmd_packet_status(args: argparse.Namespace) -> int:
    """Show the state of a packet request."""
    request_id = parse_uuid(args.request_id, "request ID")
    if request_id is None:
        return 1

    with Container(load_settings(args)) as container:
        request = container.packet_service.get_packet_status(request_id)

    print(f"Packet request: {request.id}")
    print(f"  Intake: {request.intake_id}")
    print(f"  Status: {request.status.value}")
    print(f"  Created: {request.created_at.isoformat()}")
    if request.completed_at:
        print(f"  Completed: {request.completed_at.isoformat()}")
    if request.packet_location:
        print(f"  Location: {request.packet_location}")
    if request.error_message:
        print(f"  Error: {request.error_message}")
    return 0


def cmd_packet_orphans(args: argparse.Namespace) -> int:
    """List packet requests stuck in processing."""
    with Container(load_settings(args)) as container:
        orphans = container.packet_service.find_orphaned(
            timedelta(minutes=args.minutes)
        )

    if not orphans:
        print("No orphaned packet requests.")
        return 0

    for request in orphans:
        print(f"{request.id}  intake={request.intake_id}  created={request.created_at.isoformat()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="intake",
        description="Tax Intake Engine - completeness checks, checklists and preparer packets",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file (overrides INTAKE_SQLITE_PATH)",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init", help="Create the database schema")
    init_parser.set_defaults(func=cmd_init)

    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    key_parser = subparsers.add_parser(
        "generate-key", help="Print a new 64-character hex encryption key"
    )
    key_parser.set_defaults(func=cmd_generate_key)

    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Evaluate an intake for completeness"
    )
    evaluate_parser.add_argument("intake_id", help="Intake ID")
    evaluate_parser.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )
    evaluate_parser.set_defaults(func=cmd_evaluate)

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Sync the checklist with a fresh evaluation"
    )
    reconcile_parser.add_argument("intake_id", help="Intake ID")
    reconcile_parser.set_defaults(func=cmd_reconcile)

    checklist_parser = subparsers.add_parser(
        "checklist", help="List checklist items for an intake"
    )
    checklist_parser.add_argument("intake_id", help="Intake ID")
    checklist_parser.add_argument(
        "--open", action="store_true", help="Only show unresolved items"
    )
    checklist_parser.set_defaults(func=cmd_checklist)

    packet_parser = subparsers.add_parser("packet", help="Preparer packet commands")
    packet_subparsers = packet_parser.add_subparsers(
        dest="packet_command", help="Packet commands"
    )

    packet_request_parser = packet_subparsers.add_parser(
        "request", help="Generate a preparer packet"
    )
    packet_request_parser.add_argument("intake_id", help="Intake ID")
    packet_request_parser.add_argument(
        "--actor", required=True, help="ID of the staff member requesting the packet"
    )
    packet_request_parser.set_defaults(func=cmd_packet_request)

    packet_status_parser = packet_subparsers.add_parser(
        "status", help="Show a packet request"
    )
    packet_status_parser.add_argument("request_id", help="Packet request ID")
    packet_status_parser.set_defaults(func=cmd_packet_status)

    packet_orphans_parser = packet_subparsers.add_parser(
        "orphans", help="List requests stuck in processing"
    )
    packet_orphans_parser.add_argument(
        "--minutes",
        type=int,
        default=30,
        help="Minimum age in minutes (default: 30)",
    )
    packet_orphans_parser.set_defaults(func=cmd_packet_orphans)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "packet" and (
        not hasattr(args, "packet_command") or args.packet_command is None
    ):
        packet_parser.print_help()
        return 0

    configure_logging(load_settings(args))

    try:
        result: int = args.func(args)
    except IntakeEngineError as e:
        print(f"Error: {e.message}")
        return 1
    return result


if __name__ == "__main__":
    sys.exit(main())
