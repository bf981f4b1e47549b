import struct
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from chartserver.adapters.sqlite.migrator import SQLiteMigrator
from chartserver.adapters.sqlite.repos import SQLiteTemplateRepo
from chartserver.api.deps import reset_dependencies

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime | None = None) -> None:
        self.current = now or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def png_size() -> Callable[[bytes], tuple[int, int]]:
    """Read width and height from a PNG's IHDR chunk."""

    def read(data: bytes) -> tuple[int, int]:
        assert data[:8] == PNG_SIGNATURE
        width, height = struct.unpack(">II", data[16:24])
        return width, height

    return read


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def migrations_dir() -> Path:
    return MIGRATIONS_DIR


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Fresh, fully migrated SQLite database."""
    path = str(tmp_path / "charts.db")
    SQLiteMigrator(path, str(MIGRATIONS_DIR)).run_migrations()
    return path


@pytest.fixture
def template_repo(db_path: str) -> SQLiteTemplateRepo:
    return SQLiteTemplateRepo(db_path)


@pytest.fixture
def app_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Point the app at a temporary database and the repository's rules."""
    monkeypatch.setenv("CHART_DB_PATH", str(tmp_path / "api" / "charts.db"))
    monkeypatch.setenv("CHART_ENV", "test")
    monkeypatch.setenv("CHART_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
    monkeypatch.setenv("CHART_MIGRATIONS_DIR", str(MIGRATIONS_DIR))
    for var in ("CHART_MAX_WIDTH", "CHART_MAX_HEIGHT", "RATE_LIMIT_PER_MIN"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def make_client(app_env: pytest.MonkeyPatch) -> Iterator[Callable[..., TestClient]]:
    """
    Build a started TestClient after applying extra environment variables.

    Cached dependencies are rebuilt per client so environment changes apply.
    """
    from chartserver.api.main import app

    clients: list[TestClient] = []

    def build(**env: str) -> TestClient:
        for key, value in env.items():
            app_env.setenv(key, value)
        reset_dependencies()
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield build

    for client in clients:
        client.__exit__(None, None, None)
    reset_dependencies()


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
