#!/usr/bin/env python3
"""
Command-line entry point for the CARF approval workflow.

Runs one maker or approver action against the configured database and
prints the outcome.  Configuration comes from get_active_config(): the
bundled defaults, an optional --config file, then CARF_* variables.

Usage:
    python3 scripts/carf_cli.py [--config FILE] <command> [options]

Examples:
    # Create the tables
    python3 scripts/carf_cli.py init-db

    # Maker submits request 42 (attachments checked by the caller)
    python3 scripts/carf_cli.py submit 42 --actor maker01 --attachments

    # Approver acts on request 42
    python3 scripts/carf_cli.py approve 42 --actor approver01
    python3 scripts/carf_cli.py return 42 --actor approver01 --remarks "Missing TIN"

    # Show the approval timeline
    python3 scripts/carf_cli.py timeline 42
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from carf_config import get_active_config  # noqa: E402
from carf_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from carf_kernel.exceptions import CarfKernelError  # noqa: E402
from carf_kernel.logging_config import configure_logging  # noqa: E402
from carf_kernel.selectors.request_selector import RequestSelector  # noqa: E402
from carf_services.timeline_service import timeline_for  # noqa: E402
from carf_services.wiring import build_workflow  # noqa: E402
from carf_services.workflow_orchestrator import WorkflowOutcome  # noqa: E402


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="CARF customer request approval workflow.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML override file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables")

    submit = sub.add_parser("submit", help="Maker submits a request for approval")
    submit.add_argument("row_ref", type=int)
    submit.add_argument("--actor", required=True)
    submit.add_argument(
        "--attachments",
        action="store_true",
        help="Confirm the required attachments are present",
    )

    for name, help_text in (
        ("approve", "Approve a pending request"),
        ("cancel", "Cancel a pending request"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("row_ref", type=int)
        p.add_argument("--actor", required=True)

    for name, help_text in (
        ("return", "Return a pending request to its maker"),
        ("return-to-maker", "Return a pending request to its maker (final-approval notice)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("row_ref", type=int)
        p.add_argument("--actor", required=True)
        p.add_argument("--remarks", required=True)

    timeline = sub.add_parser("timeline", help="Show the approval timeline of a request")
    timeline.add_argument("row_ref", type=int)

    pending = sub.add_parser("pending", help="List requests waiting on an approver")
    pending.add_argument("--actor", required=True)

    return parser.parse_args(argv)


def _init_database(config) -> None:
    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )


def _print_outcome(outcome: WorkflowOutcome) -> None:
    request = outcome.request
    print(f"Request #{request.row_ref}: {request.status.label} ({request.status.value})")
    if request.next_approver:
        print(f"  Next approver(s): {', '.join(request.next_approver)}")
    if outcome.notification is not None:
        print(
            f"  Notified: {', '.join(outcome.notification.delivered) or '-'}"
            f"  failed: {len(outcome.notification.failed)}"
        )
    if outcome.submitted:
        print(f"  Submitted downstream: {outcome.submission.reference or 'ok'}")
    for warning in outcome.warnings:
        print(f"  WARNING: {warning}")


def _run_action(args: argparse.Namespace, config) -> int:
    workflow = build_workflow(config)
    if args.command == "submit":
        outcome = workflow.submit_for_approval(args.row_ref, args.actor, args.attachments)
    elif args.command == "approve":
        outcome = workflow.approve(args.row_ref, args.actor)
    elif args.command == "cancel":
        outcome = workflow.cancel(args.row_ref, args.actor)
    elif args.command == "return":
        outcome = workflow.return_request(args.row_ref, args.actor, args.remarks)
    else:
        outcome = workflow.return_to_maker(args.row_ref, args.actor, args.remarks)
    _print_outcome(outcome)
    return 2 if outcome.partial_success else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "init-db":
            _init_database(config)
            create_tables()
            print("Tables created.")
            return 0

        if args.command == "timeline":
            _init_database(config)
            with session_scope(get_session_factory()) as session:
                view = timeline_for(session, args.row_ref)
            print(f"Request #{view.row_ref}: {view.status_label}")
            for step in view.steps:
                when = step.date.strftime("%Y-%m-%d %H:%M") if step.date else "-"
                print(f"  [{step.state.value:<9}] {step.role:<14} {step.person:<24} {when}")
            return 0

        if args.command == "pending":
            _init_database(config)
            with session_scope(get_session_factory()) as session:
                waiting = RequestSelector(session).pending_for(args.actor)
            for request in waiting:
                print(f"#{request.row_ref}  {request.request_type:<12} {request.company:<10} maker={request.maker}")
            if not waiting:
                print("Nothing pending.")
            return 0

        return _run_action(args, config)
    except CarfKernelError as exc:
        print(f"ERROR: {exc.code}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
