import argparse
import logging
import os
import sys

import uvicorn

from chartserver.adapters.clock import SystemClock
from chartserver.adapters.sqlite.migrator import SQLiteMigrator
from chartserver.adapters.sqlite.repos import SQLiteTemplateRepo
from chartserver.api.deps import get_rules, get_settings
from chartserver.components.templates import TemplateService
from chartserver.domain.errors import PersistenceFailure

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("cli")


def handle_serve(args: argparse.Namespace) -> None:
    uvicorn.run(
        "chartserver.api.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        timeout_keep_alive=args.timeout,
    )


def handle_migrate(args: argparse.Namespace) -> None:
    settings = get_settings()
    applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    print(f"Applied {len(applied)} migrations to {settings.db_path}.")


def handle_sweep(args: argparse.Namespace) -> None:
    settings = get_settings()
    rules = get_rules()
    service = TemplateService(
        repo=SQLiteTemplateRepo(settings.db_path),
        clock=SystemClock(),
        expiry_days=rules.templates.expiry_days,
    )
    try:
        deleted = service.delete_expired()
    except PersistenceFailure as e:
        logger.error("Sweep failed: %s", e)
        sys.exit(1)
    print(f"Deleted {deleted} expired charts.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Chart server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 3400)))
    serve_parser.add_argument("--workers", type=int, default=1)
    serve_parser.add_argument(
        "--timeout",
        type=int,
        default=int(os.environ.get("REQUEST_TIMEOUT_MS", 5000)) // 1000,
        help="Keep-alive timeout in seconds",
    )

    subparsers.add_parser("migrate", help="Apply pending database migrations")
    subparsers.add_parser("sweep", help="Delete expired chart templates now")

    args = parser.parse_args()
    handlers = {"serve": handle_serve, "migrate": handle_migrate, "sweep": handle_sweep}
    handlers[args.command](args)


if __name__ == "__main__":
    main()
