import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chartserver import __version__
from chartserver.adapters.sqlite.migrator import SQLiteMigrator
from chartserver.adapters.sqlite.repos import SQLiteTemplateRepo
from chartserver.adapters.sweeper import ExpirySweeper
from chartserver.api.deps import get_clock, get_rules, get_settings
from chartserver.components.templates import TemplateService

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules()
        logger.info("Rules loaded from %s", settings.rules_path)
    except (OSError, ValueError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()

    templates = TemplateService(
        repo=SQLiteTemplateRepo(settings.db_path),
        clock=get_clock(),
        expiry_days=rules.templates.expiry_days,
    )
    sweeper = ExpirySweeper(
        templates.delete_expired,
        interval_seconds=rules.templates.sweep_interval_hours * 3600,
    )
    sweeper.start()
    app.state.sweeper = sweeper
    logger.info("Environment: %s", settings.env)
    if rules.http.rate_limit.per_minute is not None:
        logger.info("Enabling rate limit: %d per minute", rules.http.rate_limit.per_minute)

    yield

    sweeper.stop()


app = FastAPI(
    title="Chart Server",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from chartserver.api.routes import chart, health, qr, templates  # noqa: E402

app.include_router(health.router, tags=["Health"])
app.include_router(chart.router, tags=["Charts"])
app.include_router(templates.router, tags=["Templates"])
app.include_router(qr.router, tags=["QR"])
