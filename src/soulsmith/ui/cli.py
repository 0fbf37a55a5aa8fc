from __future__ import annotations

import argparse
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from soulsmith.app import Application, build_application
from soulsmith.config import configure_logging
from soulsmith.domain.errors import DomainError
from soulsmith.domain.model import Category, FragmentStatus
from soulsmith.domain.tasks import InlineTaskRunner

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Operate the Soulsmith curation pipeline")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    soul = subparsers.add_parser("soul", help="Soul registration commands")
    soul_sub = soul.add_subparsers(dest="soul_command", required=True)
    soul_register = soul_sub.add_parser("register", help="Reserve a handle")
    soul_register.add_argument("handle", type=str)
    soul_register.add_argument("--owner", type=str, required=True, help="Owner wallet address")
    soul_register.add_argument("--display-name", type=str, default="")
    soul_register.add_argument("--seed-summary", type=str, default="")
    soul_register.add_argument("--followers", type=int, default=0)
    soul_register.add_argument(
        "--activate",
        action="store_true",
        help="Skip the pending stage (for registrations already confirmed elsewhere)",
    )
    soul_confirm = soul_sub.add_parser("confirm", help="Confirm a pending reservation")
    soul_confirm.add_argument("handle", type=str)
    soul_confirm.add_argument("--owner", type=str, required=True)
    soul_confirm.add_argument("--tx", type=str, required=True, help="Registration transaction")
    soul_confirm.add_argument("--agent-id", type=int, help="Ledger agent id, when known")
    soul_cancel = soul_sub.add_parser("cancel", help="Cancel a pending reservation")
    soul_cancel.add_argument("handle", type=str)
    soul_cancel.add_argument("--owner", type=str, required=True)
    soul_show = soul_sub.add_parser("show", help="Show a soul and its history")
    soul_show.add_argument("handle", type=str)

    submitter = subparsers.add_parser("submitter", help="Submitter management commands")
    submitter_sub = submitter.add_subparsers(dest="submitter_command", required=True)
    submitter_create = submitter_sub.add_parser("create", help="Register a submitter")
    submitter_create.add_argument("name", type=str)
    submitter_create.add_argument("--wallet", type=str, help="Custody wallet used for feedback")
    submitter_verify = submitter_sub.add_parser("verify", help="Mark a submitter as verified")
    submitter_verify.add_argument("submitter_id", type=str)

    fragment = subparsers.add_parser("fragment", help="Fragment commands")
    fragment_sub = fragment.add_subparsers(dest="fragment_command", required=True)
    fragment_submit = fragment_sub.add_parser("submit", help="Submit and review a fragment")
    fragment_submit.add_argument("handle", type=str)
    fragment_submit.add_argument(
        "--category", type=str, required=True, choices=[c.value for c in Category]
    )
    fragment_submit.add_argument("--content", type=str, required=True)
    fragment_submit.add_argument("--submitter-id", type=str, required=True)
    fragment_list = fragment_sub.add_parser("list", help="List fragments for a soul")
    fragment_list.add_argument("handle", type=str)
    fragment_list.add_argument("--status", type=str, choices=[s.value for s in FragmentStatus])
    fragment_list.add_argument("--category", type=str, choices=[c.value for c in Category])
    fragment_list.add_argument("--page", type=int, default=1)
    fragment_list.add_argument("--limit", type=int, default=20)

    review = subparsers.add_parser("review-batch", help="Review pending fragments in one call")
    review.add_argument("handle", type=str)
    review.add_argument("--limit", type=int, default=20)

    condense = subparsers.add_parser("condense", help="Force a condensation for a soul")
    condense.add_argument("handle", type=str)

    subparsers.add_parser("tasks", help="Show under-covered categories")
    subparsers.add_parser("backfill", help="Derive missing ledger agent ids once")
    subparsers.add_parser("cleanup", help="Purge expired pending reservations once")
    dispatch = subparsers.add_parser("dispatch", help="Deliver pending ledger events once")
    dispatch.add_argument("--limit", type=int, default=50)
    subparsers.add_parser("worker", help="Run the background workers until interrupted")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _run_soul(app: Application, args: argparse.Namespace) -> None:
    if args.soul_command == "register":
        soul = app.souls.register_soul(
            args.handle,
            owner_address=args.owner,
            display_name=args.display_name,
            seed_summary=args.seed_summary,
            follower_count=args.followers,
            await_confirmation=not args.activate,
        )
        log.info("Soul @%s registered as %s (stage=%s)", soul.handle, soul.id, soul.stage.value)
    elif args.soul_command == "confirm":
        soul = app.souls.confirm_registration(
            args.handle,
            owner_address=args.owner,
            registration_tx=args.tx,
            ledger_agent_id=args.agent_id,
        )
        log.info("Soul @%s confirmed (stage=%s)", soul.handle, soul.stage.value)
    elif args.soul_command == "cancel":
        app.souls.cancel_registration(args.handle, owner_address=args.owner)
    elif args.soul_command == "show":
        soul = app.souls.get_soul(args.handle)
        log.info(
            "@%s v%d stage=%s accepted=%d/%d contributors=%d",
            soul.handle,
            soul.profile_version,
            soul.stage.value,
            soul.accepted_fragments,
            soul.total_fragments,
            soul.contributor_count,
        )
        for category in Category:
            log.info("  %-12s %3d", category.value, soul.score_for(category).score)
        for entry in app.souls.get_history(args.handle):
            log.info(
                "  v%d -> v%d: %d fragments, %s",
                entry.version_from,
                entry.version_to,
                entry.fragments_merged,
                entry.summary_diff,
            )


def _run_submitter(app: Application, args: argparse.Namespace) -> None:
    if args.submitter_command == "create":
        submitter, api_key = app.submitters.register_submitter(
            args.name, wallet_address=args.wallet
        )
        log.info("Submitter %s created as %s", submitter.name, submitter.id)
        log.info("API key (shown once): %s", api_key)
    elif args.submitter_command == "verify":
        submitter = app.submitters.verify_submitter(_parse_uuid(args.submitter_id))
        log.info("Submitter %s verified", submitter.name)


def _run_fragment(app: Application, args: argparse.Namespace) -> None:
    if args.fragment_command == "submit":
        fragment = app.submissions.submit_fragment(
            args.handle, args.category, args.content, _parse_uuid(args.submitter_id)
        )
        reviewed = app.submissions.get_fragment(fragment.id)
        log.info(
            "Fragment %s is %s (confidence=%s)",
            reviewed.id,
            reviewed.status.value,
            reviewed.confidence,
        )
    elif args.fragment_command == "list":
        page = app.submissions.list_fragments(
            args.handle,
            status=args.status,
            category=args.category,
            page=args.page,
            limit=args.limit,
        )
        log.info("%d fragments (page %d, limit %d)", page.total, page.page, page.limit)
        for item in page.items:
            log.info(
                "  %s [%s] %s: %s", item.id, item.category.value, item.status.value, item.content
            )


def _run_worker(app: Application) -> None:
    stop = threading.Event()
    app.start_workers()
    try:
        stop.wait()
    finally:
        app.stop_workers()


def _dispatch(app: Application, args: argparse.Namespace) -> None:  # noqa: C901
    if args.command == "soul":
        _run_soul(app, args)
    elif args.command == "submitter":
        _run_submitter(app, args)
    elif args.command == "fragment":
        _run_fragment(app, args)
    elif args.command == "review-batch":
        fragment_ids = app.submissions.pending_fragment_ids(args.handle, limit=args.limit)
        decisions = app.curator.review_batch(fragment_ids)
        accepted = sum(1 for decision in decisions if decision.accepted)
        log.info("Reviewed %d fragments: %d accepted", len(decisions), accepted)
    elif args.command == "condense":
        soul = app.souls.get_soul(args.handle)
        condensation = app.condenser.condense(soul.id)
        log.info("Condensed @%s: %s", soul.handle, condensation.summary_diff)
    elif args.command == "tasks":
        for task in app.souls.get_task_board():
            log.info("[%s] %s", task.priority.value, task.message)
    elif args.command == "backfill":
        log.info("Backfilled %d ledger agent ids", app.backfill.run_once())
    elif args.command == "cleanup":
        log.info("Purged %d expired reservations", app.cleanup.run_once())
    elif args.command == "dispatch":
        report = app.ledger_sync.dispatch_pending(limit=args.limit)
        log.info(
            "Dispatch finished: done=%d retried=%d dead=%d skipped=%d",
            report.done,
            report.retried,
            report.dead,
            report.skipped,
        )
    elif args.command == "worker":
        _run_worker(app)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=getattr(logging, parsed_args.log_level.upper(), logging.INFO))

    try:
        # reviews run on the calling thread so a command sees its own outcome
        runner = None if parsed_args.command == "worker" else InlineTaskRunner()
        app = build_application(runner=runner)
        _dispatch(app, parsed_args)
    except (DomainError, ValueError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
