import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, HTTPException, Request, status

from chartserver.adapters.clock import SystemClock
from chartserver.adapters.graphviz_renderer import GraphvizRenderer
from chartserver.adapters.pdf import MatplotlibPdfWriter
from chartserver.adapters.qr import QrCodeEncoder
from chartserver.adapters.render.mpl_renderer import MatplotlibChartRenderer
from chartserver.adapters.sqlite.repos import SQLiteTemplateRepo
from chartserver.app_shell.rate_limit import RATE_LIMIT_MESSAGE, RateLimiter
from chartserver.components.output import OutputEncoder
from chartserver.components.renderers import RendererRegistry
from chartserver.components.templates import TemplateService
from chartserver.core.services.charts import ChartService
from chartserver.rules.loader import load_rules
from chartserver.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[2]


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        data_dir = os.environ.get("CHART_DATA_DIR", "./data")
        self.db_path = os.environ.get("CHART_DB_PATH", f"{data_dir}/charts.db")
        self.rules_path = Path(os.environ.get("CHART_RULES_PATH", PROJECT_ROOT / "rules.yaml"))
        self.migrations_dir = Path(
            os.environ.get("CHART_MIGRATIONS_DIR", PROJECT_ROOT / "migrations")
        )
        self.env = os.environ.get("CHART_ENV", "production")

    @property
    def is_dev(self) -> bool:
        return self.env in ("development", "test")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Adapters ---
@lru_cache
def get_clock() -> SystemClock:
    return SystemClock()


def get_template_repo(settings: Settings = Depends(get_settings)) -> SQLiteTemplateRepo:
    return SQLiteTemplateRepo(settings.db_path)


# --- Components ---
@lru_cache
def get_renderer_registry() -> RendererRegistry:
    rules = get_rules()
    return RendererRegistry(
        MatplotlibChartRenderer,
        max_width=rules.limits.max_width,
        max_height=rules.limits.max_height,
        cache_size=rules.renderer.cache_size,
    )


@lru_cache
def get_chart_service() -> ChartService:
    rules = get_rules()
    return ChartService(
        registry=get_renderer_registry(),
        encoder=OutputEncoder(MatplotlibPdfWriter()),
        graph_renderer=GraphvizRenderer(),
        qr_encoder=QrCodeEncoder(),
        default_width=rules.limits.default_width,
        default_height=rules.limits.default_height,
        default_version=rules.renderer.default_version,
        default_device_pixel_ratio=rules.renderer.default_device_pixel_ratio,
    )


def get_template_service(
    repo: SQLiteTemplateRepo = Depends(get_template_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> TemplateService:
    return TemplateService(repo=repo, clock=clock, expiry_days=rules.templates.expiry_days)


# --- Rate limiting ---
@lru_cache
def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_rules().http.rate_limit)


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(
    request: Request, limiter: RateLimiter = Depends(get_rate_limiter)
) -> None:
    if not limiter.check_chart(client_key(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMIT_MESSAGE
        )


def reset_dependencies() -> None:
    """Drop cached singletons so the next request rebuilds them from the environment."""
    for provider in (
        get_settings,
        get_rules,
        get_clock,
        get_renderer_registry,
        get_chart_service,
        get_rate_limiter,
    ):
        provider.cache_clear()
