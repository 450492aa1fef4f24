# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv

from grubstars.app import (
    budget_snapshot,
    build_job_service,
    build_worker,
    get_job,
    reindex_restaurant,
    request_index,
)
from grubstars.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from grubstars.domain.model import BudgetState, Job

log = logging.getLogger(__name__)

_shutdown = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index restaurants across rating providers")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index = subparsers.add_parser("index", help="Request an index run for a location")
    index.add_argument("location", type=str, help="Free-text location, e.g. 'Austin, TX'")
    index.add_argument(
        "--category",
        type=str,
        help="Optional category filter such as 'pizza'",
    )
    index.add_argument(
        "--force",
        action="store_true",
        help="Queue a new run even if a fresh result exists",
    )
    index.add_argument(
        "--wait",
        action="store_true",
        help="Run the job in this process and wait for it to finish",
    )

    job = subparsers.add_parser("job", help="Show the status of an index job")
    job.add_argument("job_id", type=str, help="Job id returned by 'index'")

    reindex = subparsers.add_parser(
        "reindex", help="Refresh one restaurant from the providers that list it"
    )
    reindex.add_argument("restaurant_id", type=str, help="Id of a stored restaurant")

    subparsers.add_parser("budget", help="Show request budgets per provider")

    worker = subparsers.add_parser("worker", help="Run the background worker until Ctrl+C")
    worker.add_argument(
        "--once",
        action="store_true",
        help="Run at most one pending job and exit",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {label}: {value}") from exc


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _budget_payload(state: BudgetState) -> dict[str, Any]:
    return {
        "provider": state.provider,
        "request_count": state.request_count,
        "request_limit": state.request_limit,
        "remaining": state.remaining,
        "window_started_at": state.window_started_at.isoformat(),
    }


def _wait_for(job: Job) -> Job:
    worker = build_worker()
    jobs = build_job_service()
    current = job
    while not current.is_terminal and not _shutdown.is_set():
        if not worker.run_once():
            _shutdown.wait(0.5)
        current = jobs.require_job(job.id)
    return current


def _run_worker(*, once: bool) -> None:
    worker = build_worker()
    if once:
        ran = worker.run_once()
        log.info("Worker ran %s job", "one" if ran else "no")
        return
    worker.start()
    log.info("Worker running, press Ctrl+C to stop")
    _shutdown.wait()
    worker.stop()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        job_id = _parse_uuid(parsed_args.job_id, "job id") if parsed_args.command == "job" else None
        restaurant_id = (
            _parse_uuid(parsed_args.restaurant_id, "restaurant id")
            if parsed_args.command == "reindex"
            else None
        )
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "index":
            job = request_index(
                parsed_args.location,
                parsed_args.category,
                force=parsed_args.force,
            )
            if parsed_args.wait:
                job = _wait_for(job)
            _print_json(job.as_dict())
        elif parsed_args.command == "job" and job_id is not None:
            _print_json(get_job(job_id).as_dict())
        elif parsed_args.command == "reindex" and restaurant_id is not None:
            _print_json(reindex_restaurant(restaurant_id).as_dict())
        elif parsed_args.command == "budget":
            _print_json([_budget_payload(state) for state in budget_snapshot()])
        elif parsed_args.command == "worker":
            _run_worker(once=parsed_args.once)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    if _shutdown.is_set():
        sys.exit(130)
    log.info("Closed by user (Ctrl+C), finishing current job")
    _shutdown.set()


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
