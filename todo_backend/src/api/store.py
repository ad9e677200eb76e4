from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, List, Sequence

from .errors import StoreError

logger = logging.getLogger(__name__)

Params = Sequence[Any]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS "user" (
        id TEXT PRIMARY KEY,
        name TEXT NULL,
        email TEXT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES "user"(id) ON DELETE CASCADE,
        expires_at TEXT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS folder (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        user_id TEXT NOT NULL,
        color TEXT NOT NULL DEFAULT 'blue-500',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todo (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        is_completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        user_id TEXT NOT NULL,
        folder_id TEXT NULL,
        priority TEXT NOT NULL DEFAULT 'medium',
        due_date TEXT NULL,
        "order" REAL NOT NULL DEFAULT 0,
        is_recurring INTEGER NOT NULL DEFAULT 0,
        recurrence_pattern TEXT NULL,
        recurrence_interval INTEGER NOT NULL DEFAULT 1,
        tags TEXT NOT NULL DEFAULT '[]',
        deleted_at TEXT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sub_todo (
        id TEXT PRIMARY KEY,
        todo_id TEXT NOT NULL REFERENCES todo(id) ON DELETE CASCADE,
        content TEXT NOT NULL,
        is_completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        "order" REAL NOT NULL DEFAULT 0,
        image_url TEXT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id TEXT PRIMARY KEY,
        push_enabled INTEGER NOT NULL DEFAULT 0,
        morning_time TEXT NOT NULL DEFAULT '08:00',
        evening_time TEXT NOT NULL DEFAULT '22:00',
        weekend_dnd INTEGER NOT NULL DEFAULT 1,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_todo_user_id ON todo(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_todo_deleted_at ON todo(deleted_at)",
    "CREATE INDEX IF NOT EXISTS idx_sub_todo_todo_id ON sub_todo(todo_id)",
    "CREATE INDEX IF NOT EXISTS idx_folder_user_id ON folder(user_id)",
)


class Transaction:
    """
    Query/execute pair bound to a single connection.

    Every sqlite3 error is logged and re-raised as StoreError; the SQL text
    stays in the log and never reaches callers.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def query(self, sql: str, params: Params = ()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            logger.exception("store query failed: %s", " ".join(sql.split()))
            raise StoreError("Store query failed", detail=str(exc)) from exc

    def execute(self, sql: str, params: Params = ()) -> int:
        try:
            return self._conn.execute(sql, tuple(params)).rowcount
        except sqlite3.Error as exc:
            logger.exception("store statement failed: %s", " ".join(sql.split()))
            raise StoreError("Store statement failed", detail=str(exc)) from exc


# PUBLIC_INTERFACE
class Store:
    """
    Relational store adapter over SQLite.

    Single calls run in their own connection and commit immediately;
    `transaction()` groups several statements so they commit or roll back together.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            logger.exception("failed to open store at %s", self._db_path)
            raise StoreError("Store unavailable", detail=str(exc)) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def query(self, sql: str, params: Params = ()) -> List[sqlite3.Row]:
        """Run a parameterized read and return all rows."""
        with self._conn() as conn:
            return Transaction(conn).query(sql, params)

    def execute(self, sql: str, params: Params = ()) -> int:
        """Run a parameterized write and return the affected row count."""
        with self._conn() as conn:
            return Transaction(conn).execute(sql, params)

    @contextmanager
    def transaction(self) -> Generator[Transaction, None, None]:
        """Yield a Transaction whose statements commit together or not at all."""
        with self._conn() as conn:
            yield Transaction(conn)
