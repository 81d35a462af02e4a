import argparse
import json
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import Settings, load_env
from .errors import UnknownJobKindError
from .handlers import Waker, parse_job_kind, run_worker
from .models import FetchPagePayload, JobKind
from .queues import SqlJobQueue
from .services import build_logger, create_local_services, create_services


def _open_queue(settings: Settings) -> SqlJobQueue:
    return SqlJobQueue(
        JobKind.FETCH_THEMES.value,
        db_path=settings.db_path,
        visibility_timeout=settings.visibility_timeout,
        retry_base_delay=settings.retry_base_delay,
        retry_max_delay=settings.retry_max_delay,
        logger=build_logger(settings),
    )


def cmd_seed(args: argparse.Namespace, settings: Settings) -> None:
    if args.page < 1:
        raise SystemExit("--page must be >= 1")
    queue = _open_queue(settings)
    job_id = queue.create(FetchPagePayload(page=args.page).to_dict())
    print(f"Queued fetchThemes job {job_id} for page {args.page}")


def cmd_run(args: argparse.Namespace, settings: Settings) -> None:
    try:
        kind = parse_job_kind(args.job or settings.job)
    except UnknownJobKindError as e:
        raise SystemExit(str(e))

    waker = Waker()
    local = args.local or settings.queue_backend == "memory"
    if local:
        services = create_local_services(settings, seed_page=args.page)
    else:
        services = create_services(settings, on_notify=waker)

    logger = services.logger
    try:
        invocations = run_worker(
            kind,
            services,
            max_invocations=args.max_invocations,
            poll_interval=args.poll_interval,
            drain=args.drain or local,
            waker=waker,
        )
    except KeyboardInterrupt:
        logger.info("Worker interrupted")
        return
    except Exception as e:
        logger.critical("Worker stopped on unexpected error", error=f"{type(e).__name__}: {e}")
        logger.log_metrics_summary()
        raise SystemExit(1)
    logger.info(f"Worker finished after {invocations} invocations")
    logger.log_metrics_summary()


def cmd_status(args: argparse.Namespace, settings: Settings) -> None:
    counts = _open_queue(settings).counts()
    print(f"Queue '{JobKind.FETCH_THEMES.value}' in {settings.db_path}:")
    for status, count in counts.items():
        print(f"  {status}: {count}")


def cmd_dead_letters(args: argparse.Namespace, settings: Settings) -> None:
    jobs = _open_queue(settings).dead_letters()
    if not jobs:
        print("No dead-lettered jobs.")
        return
    print(f"Found {len(jobs)} dead-lettered jobs:\n")
    for job in jobs:
        print(f"ID: {job['id']}")
        print(f"  Payload: {json.dumps(job['payload'])}")
        print(f"  Attempts: {job['attempts']}")
        print(f"  Error: {job['last_error']}")
        print(f"  Updated: {job['updated_at']}")
        print()


def cmd_redrive(args: argparse.Namespace, settings: Settings) -> None:
    if _open_queue(settings).redrive(args.id):
        print(f"Job {args.id} moved back to pending")
    else:
        raise SystemExit(f"No dead-lettered job with id {args.id}")


def main(argv=None):
    # Load .env if present (CRAWLER_DB_PATH, CATALOG_URL, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="themecrawler", description="Crawl the VS Code Marketplace theme listing through a job queue")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to the queue database (or set CRAWLER_DB_PATH)")

    subparsers = parser.add_subparsers(dest="command")
    sd = subparsers.add_parser("seed", help="Queue a fetchThemes job to start a crawl")
    sd.add_argument("--page", type=int, default=1, help="Page to start from (default: 1)")
    sd.set_defaults(func=cmd_seed)

    rn = subparsers.add_parser("run", help="Run a worker that processes queued jobs")
    rn.add_argument("--job", help="Job kind to process (or set CRAWLER_JOB, default: fetchThemes)")
    rn.add_argument("--drain", action="store_true", help="Stop once the queue has no available job")
    rn.add_argument("--max-invocations", type=int, help="Stop after this many handler invocations")
    rn.add_argument("--poll-interval", type=float, default=5.0, help="Seconds to wait between polls of an empty queue")
    rn.add_argument("--local", action="store_true", help="Use an in-memory queue seeded with --page instead of the database")
    rn.add_argument("--page", type=int, default=1, help="Seed page for --local (default: 1)")
    rn.set_defaults(func=cmd_run)

    st = subparsers.add_parser("status", help="Show job counts per status")
    st.set_defaults(func=cmd_status)

    dl = subparsers.add_parser("dead-letters", help="List dead-lettered jobs")
    dl.set_defaults(func=cmd_dead_letters)

    rd = subparsers.add_parser("redrive", help="Move a dead-lettered job back to pending")
    rd.add_argument("--id", type=int, required=True, help="Job id from 'dead-letters'")
    rd.set_defaults(func=cmd_redrive)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(str(e))
    if args.db:
        settings = replace(settings, db_path=Path(args.db))

    if hasattr(args, "func"):
        args.func(args, settings)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
