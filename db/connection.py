"""
db/connection.py
----------------
Data-access handle used by the model layer.
Wraps psycopg2's SimpleConnectionPool and executes parameterized statements
written with `:name` placeholders.

A Database is constructed once at process start, opened, bound to the models
(`Model.bind(db)`) and closed on shutdown:

    db = Database()
    db.open()
    Model.bind(db)
    ...
    db.close()
"""

import re
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

import psycopg2
from psycopg2 import pool, extras

from config import DATABASE_URL, DB_POOL_MIN, DB_POOL_MAX
from utils.logger import get_logger

logger = get_logger(__name__)

# `:name` but not the second half of a `::type` cast or a `12:30` literal.
_PLACEHOLDER_RE = re.compile(r"(?<![:\w]):([A-Za-z_][A-Za-z0-9_]*)")


def to_pyformat(sql: str, params: Optional[Mapping[str, Any]] = None) -> tuple[str, Optional[dict]]:
    """
    Translate a `:name` statement and its parameter map into psycopg2's
    `%(name)s` form.

    Args:
        sql: Statement text with `:name` placeholders.
        params: Mapping of placeholder -> value. Keys may keep the ':' prefix.

    Returns:
        (statement, params) ready for ``cursor.execute``. Without params the
        statement is passed through untouched.
    """
    if not params:
        return sql, None
    query = _PLACEHOLDER_RE.sub(r"%(\1)s", sql.replace("%", "%%"))
    args = {key.lstrip(":"): value for key, value in params.items()}
    return query, args


class Database:
    """Pooled PostgreSQL handle exposing the four execute operations."""

    def __init__(
        self,
        dsn: str = DATABASE_URL,
        min_conn: int = DB_POOL_MIN,
        max_conn: int = DB_POOL_MAX,
    ):
        self.dsn = dsn
        self.min_conn = min_conn
        self.max_conn = max_conn
        self._pool: pool.SimpleConnectionPool | None = None
        self._local = threading.local()

    # ── Lifecycle ─────────────────────────────────────────

    def open(self) -> "Database":
        """
        Initialize the connection pool. Calling it twice is a no-op.

        Raises:
            psycopg2.OperationalError: If the database is unreachable.
        """
        if self._pool is not None:
            return self
        try:
            self._pool = pool.SimpleConnectionPool(self.min_conn, self.max_conn, self.dsn)
            logger.info("Database connection pool initialized successfully.")
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise
        return self

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("Database connection pool closed.")

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _acquire(self):
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call open() first.")
        return self._pool.getconn()

    # ── Execution ─────────────────────────────────────────

    def _execute(self, sql: str, params: Optional[Mapping[str, Any]], collect: Callable):
        """
        Run one statement and hand the cursor to `collect` for the result.

        Outside a transaction the statement gets its own pooled connection and
        is committed immediately; inside one it reuses the transaction's
        connection and leaves commit/rollback to `transaction()`.
        """
        query, args = to_pyformat(sql, params)
        tx_conn = getattr(self._local, "conn", None)
        conn = tx_conn if tx_conn is not None else self._acquire()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(query, args)
                result = collect(cur)
            if tx_conn is None:
                conn.commit()
            return result
        except Exception as e:
            if tx_conn is None:
                conn.rollback()
            logger.error(f"Failed to execute query [{sql}]: {e}")
            raise
        finally:
            if tx_conn is None:
                self._pool.putconn(conn)

    def execute_select(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> list[dict]:
        """
        Execute a SELECT statement.

        Returns:
            List of rows, each a dict keyed by column name.
        """
        return self._execute(sql, params, lambda cur: [dict(row) for row in cur.fetchall()])

    def execute_insert(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Execute an INSERT statement.

        Returns:
            The generated primary key (value of ``lastval()`` in the session).
        """
        def _last_id(cur):
            cur.execute("SELECT lastval() AS last_id")
            return cur.fetchone()["last_id"]

        return self._execute(sql, params, _last_id)

    def execute_update(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute an UPDATE (or other non-returning) statement; returns affected rows."""
        return self._execute(sql, params, lambda cur: cur.rowcount)

    def execute_delete(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a DELETE statement; returns affected rows."""
        return self._execute(sql, params, lambda cur: cur.rowcount)

    # ── Transactions ──────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """
        Run every execute inside the block on one connection.
        Commits when the block finishes, rolls back and re-raises on error.
        A nested block joins the outer transaction.

        Usage:
            with db.transaction():
                User.store({"name": "Ana"})
                Role.where("name", "guest").destroy()
        """
        if getattr(self._local, "conn", None) is not None:
            yield self
            return

        conn = self._acquire()
        self._local.conn = conn
        try:
            yield self
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise
        finally:
            self._local.conn = None
            self._pool.putconn(conn)
