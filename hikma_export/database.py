from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional

from hikma_export.core.models import Category, EnterpriseSetting, Transaction
from hikma_export.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """User-scoped access to the relational store.

    Each ``replace_*`` call is one atomic unit: the user's existing rows in
    that collection are swapped for ``records`` completely or not at all.
    """

    @abstractmethod
    def list_transactions(self, user_id: str) -> List[Transaction]:
        pass

    @abstractmethod
    def list_categories(self, user_id: str) -> List[Category]:
        pass

    @abstractmethod
    def get_enterprise_setting(self, user_id: str) -> Optional[EnterpriseSetting]:
        pass

    @abstractmethod
    def replace_transactions(self, user_id: str, records: Iterable[Transaction]) -> None:
        pass

    @abstractmethod
    def replace_categories(self, user_id: str, records: Iterable[Category]) -> None:
        pass

    @abstractmethod
    def upsert_enterprise_setting(self, setting: EnterpriseSetting) -> None:
        pass


def _init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            date TEXT NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
            category TEXT NOT NULL,
            client TEXT,
            description TEXT NOT NULL DEFAULT '',
            amount TEXT NOT NULL,
            PRIMARY KEY (user_id, id)
        );
        CREATE TABLE IF NOT EXISTS categories (
            id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
            color TEXT,
            PRIMARY KEY (user_id, id)
        );
        CREATE TABLE IF NOT EXISTS enterprise_settings (
            user_id TEXT PRIMARY KEY,
            name TEXT NOT NULL
        );
        """
    )


class SQLiteRecordStore(RecordStore):
    """RecordStore backed by a SQLite database file.

    Every operation opens its own connection. Replacements run inside
    ``BEGIN IMMEDIATE`` so concurrent writers on the same database are
    serialized and readers never observe the gap between delete and insert.
    """

    def __init__(self, db_path: str | Path, timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        _init_db(conn)
        return conn

    def _select(self, query: str, params: tuple) -> list:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not open record store: {exc}") from exc
        try:
            return conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Query failed: {exc}") from exc
        finally:
            conn.close()

    def list_transactions(self, user_id: str) -> List[Transaction]:
        rows = self._select(
            """
            SELECT id, user_id, date, type, category, client, description, amount
            FROM transactions WHERE user_id = ? ORDER BY rowid
            """,
            (user_id,),
        )
        return [
            Transaction(
                id=r[0],
                user_id=r[1],
                date=date.fromisoformat(r[2]),
                type=r[3],
                category=r[4],
                client=r[5],
                description=r[6],
                amount=Decimal(r[7]),
            )
            for r in rows
        ]

    def list_categories(self, user_id: str) -> List[Category]:
        rows = self._select(
            "SELECT id, user_id, name, type, color FROM categories WHERE user_id = ? ORDER BY rowid",
            (user_id,),
        )
        return [
            Category(id=r[0], user_id=r[1], name=r[2], type=r[3], color=r[4])
            for r in rows
        ]

    def get_enterprise_setting(self, user_id: str) -> Optional[EnterpriseSetting]:
        rows = self._select(
            "SELECT user_id, name FROM enterprise_settings WHERE user_id = ?",
            (user_id,),
        )
        if not rows:
            return None
        return EnterpriseSetting(user_id=rows[0][0], name=rows[0][1])

    def replace_transactions(self, user_id: str, records: Iterable[Transaction]) -> None:
        rows = [
            (
                tx.id,
                user_id,
                tx.date.isoformat(),
                tx.type,
                tx.category,
                tx.client,
                tx.description,
                str(tx.amount),
            )
            for tx in records
        ]
        self._replace_all(
            "transactions",
            user_id,
            """
            INSERT INTO transactions
            (id, user_id, date, type, category, client, description, amount)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            rows,
        )

    def replace_categories(self, user_id: str, records: Iterable[Category]) -> None:
        rows = [(cat.id, user_id, cat.name, cat.type, cat.color) for cat in records]
        self._replace_all(
            "categories",
            user_id,
            "INSERT INTO categories (id, user_id, name, type, color) VALUES (?, ?, ?, ?, ?)",
            rows,
        )

    def _replace_all(self, table: str, user_id: str, insert_sql: str, rows: list) -> None:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not open record store: {exc}") from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
                conn.executemany(insert_sql, rows)
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Replacing {table} failed: {exc}") from exc
        finally:
            conn.close()
        logger.debug("Replaced %s for %s with %d row(s)", table, user_id, len(rows))

    def upsert_enterprise_setting(self, setting: EnterpriseSetting) -> None:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not open record store: {exc}") from exc
        try:
            conn.execute(
                """
                INSERT INTO enterprise_settings (user_id, name) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET name = excluded.name
                """,
                (setting.user_id, setting.name),
            )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Saving enterprise settings failed: {exc}") from exc
        finally:
            conn.close()
