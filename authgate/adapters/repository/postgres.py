"""
PostgreSQL account store - Implements AccountStore protocol.

This module provides the PostgreSQL implementation of the domain's account
store port using psycopg3 with raw SQL.

Security Design
---------------

1. **UNIQUE(email)** plus ``INSERT ... ON CONFLICT DO NOTHING``: the
   existence check and the insert are one atomic statement, so concurrent
   registrations for the same email cannot both succeed.

2. **bcrypt at the store boundary**: ``create`` hashes and ``verify`` compares
   through ``PasswordHasher``; plaintext passwords are never written.

3. **Timing equalization**: ``verify`` runs bcrypt against a dummy hash when
   the email is unknown, so response time does not reveal account existence.

4. **Profile upsert**: ``INSERT ... ON CONFLICT (account_id) DO UPDATE`` only
   touches the columns supplied, which gives shallow-merge semantics without a
   read-modify-write round trip. Column names come from a fixed allow-list.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from authgate.domain.exceptions import AccountNotFound, DuplicateEmail
from authgate.domain.models import PROFILE_FIELDS, Account, Profile
from authgate.domain.passwords import PasswordHasher

from .memory import new_account_id

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = "id, name, email, password_hash, created_at"
_PROFILE_COLUMNS = "account_id, created_at, updated_at, " + ", ".join(PROFILE_FIELDS)


def _row_to_account(row: dict[str, Any]) -> Account:
    return Account(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=row["created_at"],
    )


def _row_to_profile(row: dict[str, Any]) -> Profile:
    return Profile(**row)


class PostgresAccountStore:
    """
    Implements AccountStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, hasher: PasswordHasher | None = None) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            hasher: bcrypt hasher shared with the rest of the process
        """
        self._pool = pool
        self._hasher = hasher or PasswordHasher()

    def find_by_email(self, email: str) -> Account | None:
        query = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (email,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: str) -> Account | None:
        query = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (account_id,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def create(self, name: str, email: str, password: str) -> Account:
        """
        Atomically create an account.

        Uses INSERT ... ON CONFLICT (email) DO NOTHING RETURNING; no row back
        means another account already holds the email.

        Raises:
            DuplicateEmail: If the email is already registered
        """
        query = f"""
            INSERT INTO accounts (id, name, email, password_hash, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (email) DO NOTHING
            RETURNING {_ACCOUNT_COLUMNS}
        """
        password_hash = self._hasher.hash(password)

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (new_account_id(), name, email, password_hash))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise DuplicateEmail(email)
        return _row_to_account(row)

    def verify(self, email: str, password: str) -> Account | None:
        """Check credentials; always runs one bcrypt comparison."""
        account = self.find_by_email(email)
        stored_hash = account.password_hash if account is not None else None
        if not self._hasher.check(password, stored_hash):
            return None
        return account

    def write_profile(self, account_id: str, fields: Mapping[str, Any]) -> Profile:
        """
        Upsert the account's profile, touching only the supplied columns.

        Raises:
            AccountNotFound: If the account does not exist
        """
        updates = {key: value for key, value in fields.items() if key in PROFILE_FIELDS}
        columns = list(updates)

        insert_columns = sql.SQL(", ").join(
            sql.Identifier(name) for name in ["account_id", *columns]
        )
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in range(len(columns) + 1))
        assignments = sql.SQL(", ").join(
            [
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(name))
                for name in columns
            ]
            + [sql.SQL("updated_at = NOW()")]
        )
        query = sql.SQL(
            """
            INSERT INTO profiles ({insert_columns}, created_at, updated_at)
            SELECT {placeholders}, NOW(), NOW()
            WHERE EXISTS (SELECT 1 FROM accounts WHERE id = %s)
            ON CONFLICT (account_id) DO UPDATE SET {assignments}
            RETURNING {returning}
            """
        ).format(
            insert_columns=insert_columns,
            placeholders=placeholders,
            assignments=assignments,
            returning=sql.SQL(_PROFILE_COLUMNS),
        )
        params = [account_id, *updates.values(), account_id]

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise AccountNotFound(account_id)
        return _row_to_profile(row)

    def get_profile(self, account_id: str) -> Profile | None:
        query = f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE account_id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (account_id,))
            row = cursor.fetchone()
        return _row_to_profile(row) if row is not None else None

    def delete(self, account_id: str) -> bool:
        """Delete the account; its profile goes with it (ON DELETE CASCADE)."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM accounts WHERE id = %s", (account_id,))
            conn.commit()
            deleted = cursor.rowcount == 1
        if deleted:
            logger.info("Account deleted: %s", account_id)
        return deleted


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: authgate/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
