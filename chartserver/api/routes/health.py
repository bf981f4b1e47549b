"""Service banner and health checks."""

import random
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from chartserver import __version__
from chartserver.api.schemas import HealthResponse

router = APIRouter()

BANNER = "Chart server is running!"


@router.get("/", response_class=HTMLResponse)
def banner() -> str:
    return BANNER


@router.get("/healthcheck", response_model=HealthResponse)
def healthcheck() -> HealthResponse:
    """Lightweight liveness check."""
    return HealthResponse(success=True, version=__version__)


@router.get("/healthcheck/chart")
def healthcheck_chart() -> RedirectResponse:
    """Redirect to a chart with random data so the full render path is exercised."""
    labels = ",".join(str(random.random()) for _ in range(5))
    data = ",".join(str(random.random()) for _ in range(5))
    chart = f"{{type:'bar',data:{{labels:[{labels}],datasets:[{{data:[{data}]}}]}}}}"
    return RedirectResponse(url=f"/chart?c={quote(chart)}", status_code=302)
