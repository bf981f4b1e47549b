import json
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from chartserver.domain.entities import Template
from chartserver.domain.errors import PersistenceFailure


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _ts(value: datetime) -> str:
    # Fixed width so stored timestamps compare correctly as text.
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class SQLiteTemplateRepo:
    """
    Stored chart templates.

    Every operation is a single statement, so SQLite's statement atomicity is
    the only concurrency control. sqlite3 errors surface as PersistenceFailure.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _map_row(self, row: dict[str, Any]) -> Template:
        created_at = _parse_ts(row["created_at"])
        return Template(
            id=UUID(row["id"]),
            config=json.loads(row["config"]),
            created_at=created_at if created_at is not None else datetime.now(UTC),
            expires_at=_parse_ts(row["expires_at"]),
        )

    def save(self, template: Template) -> Template:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        try:
            conn.execute(
                "INSERT INTO charts (id, config, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (
                    str(template.id),
                    json.dumps(template.config),
                    _ts(template.created_at),
                    _ts(template.expires_at) if template.expires_at else None,
                ),
            )
            conn.commit()
            return template
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        finally:
            conn.close()

    def get_by_id(self, template_id: UUID) -> Template | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Error reading from db: {e}") from e
        try:
            row = conn.execute(
                "SELECT * FROM charts WHERE id = ?", (str(template_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceFailure(f"Error reading from db: {e}") from e
        finally:
            conn.close()

    def delete(self, template_id: UUID) -> bool:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        try:
            cursor = conn.execute("DELETE FROM charts WHERE id = ?", (str(template_id),))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        finally:
            conn.close()

    def delete_expired(self, now: datetime) -> int:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        try:
            cursor = conn.execute(
                "DELETE FROM charts WHERE expires_at IS NOT NULL AND expires_at < ?",
                (_ts(now),),
            )
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceFailure(f"Error writing to db: {e}") from e
        finally:
            conn.close()
