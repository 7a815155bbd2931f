import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

from newsdesk.adapters.sqlite.migrator import MigrationError, SQLiteMigrator
from newsdesk.adapters.time_zone import FrozenTimeAdapter
from newsdesk.adapters.worker import JobWorker
from newsdesk.app_shell.config import (
    ConfigurationError,
    db_path,
    migrations_dir,
    rules_path,
    validate_ops_rules,
)
from newsdesk.app_shell.context import EngineContext
from newsdesk.rules.loader import load_rules
from newsdesk.rules.models import Rules

logger = logging.getLogger("newsdesk.cli")


def get_rules(args: argparse.Namespace) -> Rules:
    path = Path(args.rules)
    try:
        return load_rules(path)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Rules load failed: %s", e)
        sys.exit(1)


def get_context(args: argparse.Namespace) -> EngineContext:
    rules = get_rules(args)
    try:
        validate_ops_rules(rules, Path(args.db).parent)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)

    time_port = None
    if getattr(args, "at", None):
        at = datetime.fromisoformat(args.at)
        time_port = FrozenTimeAdapter(
            at if at.tzinfo else at.replace(tzinfo=UTC), rules.publishing.timezone
        )
    return EngineContext.create(args.db, rules, time_port)


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    try:
        applied = SQLiteMigrator(args.db, str(args.migrations)).run_migrations()
    except MigrationError as e:
        logger.error("%s", e)
        sys.exit(1)
    if applied:
        print(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
    else:
        print("Database is up to date.")


def handle_process_due(ctx: EngineContext, args: argparse.Namespace) -> None:
    result = ctx.engine.process_due(args.worker_id, args.max_jobs)
    print(
        f"Claimed {result.claimed} job(s): {result.completed} completed, "
        f"{result.retrying} retrying, {result.failed} failed "
        f"({result.requeued} stale requeued)."
    )
    for r in result.results:
        line = f" - job {r.job_id} content {r.content_id} v{r.version_no}: {r.status}"
        if r.error:
            line += f" ({r.error})"
        print(line)


def handle_worker(ctx: EngineContext, args: argparse.Namespace) -> None:
    scheduler_rules = ctx.rules.scheduler
    worker = JobWorker(
        ctx.engine,
        poll_interval_seconds=args.interval or scheduler_rules.poll_interval_seconds,
        batch_size=scheduler_rules.batch_size,
        worker_id=args.worker_id,
    )
    try:
        worker.run_forever()
    except KeyboardInterrupt:
        worker.stop()
        print("Worker stopped.")


def handle_stats(ctx: EngineContext, args: argparse.Namespace) -> None:
    platforms = [args.platform] if args.platform else list(ctx.engine.get_policy().platforms)
    for platform in platforms:
        stats = ctx.engine.get_schedule_stats(platform)
        limit = str(stats.limit) if stats.limit else "unlimited"
        last = stats.last_published_at.isoformat() if stats.last_published_at else "-"
        print(f"{platform:<10} {stats.date}  {stats.count}/{limit}  last: {last}")


def handle_emergency_queue(ctx: EngineContext, args: argparse.Namespace) -> None:
    queue = ctx.engine.emergency
    if args.publish:
        out = ctx.engine.publish_emergency(args.publish)
        if not out.success:
            for e in out.errors:
                logger.error("%s: %s", e.code, e.message)
            sys.exit(1)
        print(f"Published emergency item {args.publish} as job {out.job_id}.")
        return
    if args.cancel:
        cancelled = queue.cancel(args.cancel)
        if not cancelled.success:
            for e in cancelled.errors:
                logger.error("%s: %s", e.code, e.message)
            sys.exit(1)
        print(f"Cancelled emergency item {args.cancel}.")
        return

    items = queue.list_pending(args.limit)
    if not items:
        print("Emergency queue is empty.")
        return
    for item in items:
        keywords = ", ".join(item.matched_keywords) or "-"
        print(
            f"{item.id}  p={item.priority:<3} content={item.content_id} "
            f"detected={item.detected_at.isoformat()} keywords={keywords}"
        )


def handle_seed_rules(ctx: EngineContext, args: argparse.Namespace) -> None:
    existing = {r.name for r in ctx.rule_repo.list_all()}
    added = 0
    for rule in ctx.rules.triage.build_rules():
        if rule.name in existing:
            continue
        ctx.rule_repo.save(rule)
        added += 1
    print(f"Seeded {added} rule(s); {len(existing)} already present.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Newsdesk publishing engine CLI")
    parser.add_argument("--db", default=str(db_path()), help="SQLite database path")
    parser.add_argument("--rules", default=str(rules_path()), help="rules.yaml path")
    parser.add_argument(
        "--migrations", default=str(migrations_dir()), help="Migrations directory"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending database migrations")

    due = subparsers.add_parser("process-due", help="Claim and dispatch due jobs once")
    due.add_argument("--worker-id", default="cli", help="Worker id stored on claimed jobs")
    due.add_argument("--max-jobs", type=int, default=None, help="Claim limit")
    due.add_argument("--at", help="Run as if the time were this ISO-8601 instant")

    worker = subparsers.add_parser("worker", help="Poll for due jobs until interrupted")
    worker.add_argument("--worker-id", default=None, help="Worker id (random if omitted)")
    worker.add_argument("--interval", type=float, default=None, help="Poll interval seconds")

    stats = subparsers.add_parser("stats", help="Show today's publish counts per platform")
    stats.add_argument("--platform", help="Only this platform")

    emergency = subparsers.add_parser("emergency-queue", help="List or act on the emergency queue")
    emergency.add_argument("--limit", type=int, default=20)
    emergency.add_argument("--publish", type=UUID, metavar="ITEM_ID")
    emergency.add_argument("--cancel", type=UUID, metavar="ITEM_ID")

    subparsers.add_parser("seed-rules", help="Insert the rules.yaml triage rules")
    return parser


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    args = build_parser().parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return

    ctx = get_context(args)

    if args.command == "process-due":
        handle_process_due(ctx, args)
    elif args.command == "worker":
        handle_worker(ctx, args)
    elif args.command == "stats":
        handle_stats(ctx, args)
    elif args.command == "emergency-queue":
        handle_emergency_queue(ctx, args)
    elif args.command == "seed-rules":
        handle_seed_rules(ctx, args)


if __name__ == "__main__":
    main()
