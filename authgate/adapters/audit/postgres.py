"""
PostgreSQL security log store - Implements SecurityLogStore protocol.

Rows are only ever inserted. Queries order by the BIGSERIAL ``seq`` column,
which preserves insertion order even when timestamps collide.
"""

from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from authgate.domain.models import SecurityLogEntry, Severity

_COLUMNS = "id, action, account_id, email, success, error, metadata, severity, created_at"


def _row_to_entry(row: dict[str, Any]) -> SecurityLogEntry:
    return SecurityLogEntry(
        id=row["id"],
        action=row["action"],
        success=row["success"],
        timestamp=row["created_at"],
        account_id=row["account_id"],
        email=row["email"],
        error=row["error"],
        metadata=row["metadata"] or {},
        severity=Severity(row["severity"]),
    )


class PostgresSecurityLogStore:
    """
    Implements SecurityLogStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def append(self, entry: SecurityLogEntry) -> None:
        query = f"""
            INSERT INTO security_log ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            entry.id,
            entry.action,
            entry.account_id,
            entry.email,
            entry.success,
            entry.error,
            Jsonb(entry.metadata),
            entry.severity.value,
            entry.timestamp,
        )
        with self._pool.connection() as conn:
            conn.execute(query, params)

    def by_account(self, account_id: str, limit: int) -> list[SecurityLogEntry]:
        query = f"""
            SELECT {_COLUMNS} FROM security_log
            WHERE account_id = %s
            ORDER BY seq DESC
            LIMIT %s
        """
        return self._fetch(query, (account_id, limit))

    def by_action(self, action: str, limit: int) -> list[SecurityLogEntry]:
        query = f"""
            SELECT {_COLUMNS} FROM security_log
            WHERE action = %s
            ORDER BY seq DESC
            LIMIT %s
        """
        return self._fetch(query, (action, limit))

    def _fetch(self, query: str, params: tuple) -> list[SecurityLogEntry]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [_row_to_entry(row) for row in rows]
