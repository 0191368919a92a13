"""
database.py - PostgreSQL Gateway

Tables (created and migrated outside this service):
  users         - id, login (unique), password (bcrypt hash)
  categories    - id, user_id, name
  transactions  - user_id, category_id, amount, date, description,
                  created_at, updated_at

All SQL issued by the API lives in this module. Values are always bound as
positional parameters; psycopg sends the %s placeholders to the server as
$1..$n.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from finance_common.models import Category, Transaction, User

logger = logging.getLogger(__name__)

PLACEHOLDER = "%s"


# ─────────────────────────────────────────────
# QUERY BUILDER
# ─────────────────────────────────────────────
class QueryBuilder:
    """
    Accumulates SQL fragments together with their bound values.

    Every predicate passed to where() carries exactly one "{}" slot which is
    replaced by the driver placeholder, so the number of placeholders in the
    emitted SQL always equals the number of params.
    """

    def __init__(self, base: str):
        self.fragments: List[str] = [base]
        self.params: List[object] = []
        self._has_where = False

    def where(self, predicate: str, value) -> "QueryBuilder":
        keyword = "AND" if self._has_where else "WHERE"
        self.fragments.append(f"{keyword} {predicate.format(PLACEHOLDER)}")
        self.params.append(value)
        self._has_where = True
        return self

    def order_by(self, clause: str) -> "QueryBuilder":
        self.fragments.append(f"ORDER BY {clause}")
        return self

    def build(self) -> Tuple[str, tuple]:
        return " ".join(self.fragments), tuple(self.params)


def transactions_query(user_id, category_id: Optional[int] = None,
                       since: Optional[datetime] = None) -> Tuple[str, tuple]:
    query = QueryBuilder(
        "SELECT user_id, category_id, amount, date, description FROM transactions"
    )
    query.where("user_id = {}", user_id)
    if category_id is not None:
        query.where("category_id = {}", category_id)
    if since is not None:
        query.where("date >= {}::timestamp", since)
    query.order_by("category_id, date DESC")
    return query.build()


# ─────────────────────────────────────────────
# CONNECTION POOL
# ─────────────────────────────────────────────
class Database:

    def __init__(self, settings):
        self.pool = ConnectionPool(
            conninfo="",
            kwargs={
                "user": settings.pg_user,
                "host": settings.pg_host,
                "dbname": settings.pg_database,
                "password": settings.pg_password,
                "port": settings.pg_port,
                "options": f"-c statement_timeout={settings.statement_timeout_ms}",
                "row_factory": dict_row,
            },
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=False,
            name="finance-api",
        )
        self._open_lock = threading.Lock()
        self._opened = False

    def _ensure_open(self):
        if self._opened:
            return
        with self._open_lock:
            if not self._opened:
                self.pool.open()
                self._opened = True
                logger.info("Connection pool opened.")

    @contextmanager
    def connection(self) -> Iterator:
        """Borrow a connection; it is committed (or rolled back) and released on exit."""
        self._ensure_open()
        with self.pool.connection() as conn:
            yield conn

    def query(self, sql: str, params: Sequence = ()) -> List[dict]:
        with self.connection() as conn:
            cur = conn.execute(sql, params)
            if cur.description is None:
                return []
            return cur.fetchall()

    def close(self):
        if self._opened:
            self.pool.close()
            self._opened = False
            logger.info("Connection pool closed.")

    # ─────────────────────────────────────────
    # USER OPERATIONS
    # ─────────────────────────────────────────
    def create_user(self, login: str, password_hash: str) -> User:
        rows = self.query(
            "INSERT INTO users (login, password) VALUES (%s, %s) RETURNING id, login",
            (login, password_hash),
        )
        return User.from_row(rows[0])

    def find_user_by_login(self, login: str) -> Optional[User]:
        rows = self.query(
            "SELECT id, login, password FROM users WHERE login = %s", (login,)
        )
        return User.from_row(rows[0]) if rows else None

    def get_user_id(self, login: str) -> Optional[int]:
        rows = self.query("SELECT id FROM users WHERE login = %s", (login,))
        return rows[0]["id"] if rows else None

    # ─────────────────────────────────────────
    # CATEGORY OPERATIONS
    # ─────────────────────────────────────────
    def list_categories(self, user_id) -> List[Category]:
        rows = self.query(
            "SELECT id, name FROM categories WHERE user_id = %s ORDER BY id",
            (user_id,),
        )
        return [Category.from_row(r) for r in rows]

    def get_category_name(self, category_id: int, user_id) -> Optional[str]:
        rows = self.query(
            "SELECT name FROM categories WHERE id = %s AND user_id = %s",
            (category_id, user_id),
        )
        return rows[0]["name"] if rows else None

    # ─────────────────────────────────────────
    # TRANSACTION OPERATIONS
    # ─────────────────────────────────────────
    def find_transactions(self, user_id, category_id: Optional[int] = None,
                          since: Optional[datetime] = None) -> List[Transaction]:
        sql, params = transactions_query(user_id, category_id, since)
        return [Transaction.from_row(r) for r in self.query(sql, params)]

    # ─────────────────────────────────────────
    # LIVENESS
    # ─────────────────────────────────────────
    def now(self) -> datetime:
        with self.connection() as conn:
            row = conn.execute("SELECT NOW() AS now").fetchone()
        return row["now"]
