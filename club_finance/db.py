"""SQLite-backed store for the club ledger, roster, dues, budgets and reminders.

:class:`ClubStore` is constructed explicitly with a database path and
handed to whoever needs it; nothing in this module keeps a global
connection.  Every read validates rows into the typed records from
:mod:`club_finance.models` before returning them.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

try:
    from .models import (
        Budget,
        INCOME,
        Member,
        MemberPayment,
        RecordError,
        Reminder,
        Transaction,
    )
except ImportError:
    from models import (  # type: ignore
        Budget,
        INCOME,
        Member,
        MemberPayment,
        RecordError,
        Reminder,
        Transaction,
    )

logger = logging.getLogger(__name__)

R = TypeVar('R')

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    amount REAL NOT NULL CHECK (amount >= 0),
    description TEXT NOT NULL,
    date TEXT NOT NULL,
    category TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category);

CREATE TABLE IF NOT EXISTS members (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    class TEXT NOT NULL,
    phone TEXT,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive')),
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS member_payments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    member_id INTEGER NOT NULL REFERENCES members (id) ON DELETE CASCADE,
    amount REAL NOT NULL,
    month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
    year INTEGER NOT NULL,
    payment_date TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_payment_member_period
ON member_payments (member_id, month, year);

CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL,
    monthly_limit REAL NOT NULL,
    year INTEGER NOT NULL,
    month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_budget_period ON budgets (year, month);

CREATE TABLE IF NOT EXISTS payment_reminders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    member_id INTEGER NOT NULL REFERENCES members (id) ON DELETE CASCADE,
    month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
    year INTEGER NOT NULL,
    reminder_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'sent', 'paid')),
    message TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (member_id, month, year)
);
"""

_PAYMENT_SELECT = (
    "SELECT p.id, p.member_id, p.amount, p.month, p.year, p.payment_date, p.notes, "
    "m.name AS member_name, m.class AS member_class "
    "FROM member_payments p LEFT JOIN members m ON m.id = p.member_id"
)

_REMINDER_SELECT = (
    "SELECT r.id, r.member_id, r.month, r.year, r.reminder_date, r.status, r.message, "
    "m.name AS member_name, m.class AS member_class, m.phone AS member_phone "
    "FROM payment_reminders r LEFT JOIN members m ON m.id = r.member_id"
)


class StoreError(RuntimeError):
    """Raised when the database cannot be reached or a query fails."""


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


def _iso(value: Union[date, str, None]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class ClubStore:
    """Gateway over the club finance SQLite database."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------
    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection, translating sqlite failures into StoreError.

        The block runs as one transaction: it commits on success and
        rolls back if anything raises.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
        except (sqlite3.Error, OSError) as exc:
            logger.error("Could not open database %s: %s", self.db_path, exc)
            raise StoreError(f"Could not open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Database operation failed on %s: %s", self.db_path, exc)
            raise StoreError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
        logger.info("Database ready at %s", self.db_path)

    def _fetch(self, sql: str, params: Sequence[Any], factory: Callable[[dict], R]) -> List[R]:
        with self.connect() as conn:
            rows = conn.execute(sql, list(params)).fetchall()
        records: List[R] = []
        for row in rows:
            data = dict(row)
            try:
                records.append(factory(data))
            except RecordError as exc:
                logger.warning("Skipping malformed row %s: %s", data.get('id'), exc)
        return records

    def _execute(self, sql: str, params: Sequence[Any]) -> int:
        with self.connect() as conn:
            cur = conn.execute(sql, list(params))
            return cur.lastrowid if sql.lstrip().upper().startswith('INSERT') else cur.rowcount

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def fetch_transactions(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        txn_type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        """Fetch ledger rows in ``[start, end)``, newest first."""
        where: List[str] = []
        params: List[Any] = []
        if start:
            where.append("date >= ?")
            params.append(_iso(start))
        if end:
            where.append("date < ?")
            params.append(_iso(end))
        if txn_type:
            where.append("type = ?")
            params.append(txn_type)
        if category:
            where.append("category = ?")
            params.append(category)

        sql = "SELECT id, type, amount, description, date, category, created_at FROM transactions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY date DESC, id DESC"
        return self._fetch(sql, params, Transaction.from_row)

    def insert_transaction(
        self,
        txn_type: str,
        amount: float,
        description: str,
        txn_date: date,
        category: Optional[str] = None,
    ) -> int:
        with self.connect() as conn:
            return self._insert_transaction(conn, txn_type, amount, description, txn_date, category)

    def _insert_transaction(
        self,
        conn: sqlite3.Connection,
        txn_type: str,
        amount: float,
        description: str,
        txn_date: date,
        category: Optional[str],
    ) -> int:
        cur = conn.execute(
            "INSERT INTO transactions (type, amount, description, date, category, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (txn_type, float(amount), description, _iso(txn_date), category or None, _now()),
        )
        return cur.lastrowid

    def delete_transaction(self, transaction_id: int) -> bool:
        return self._execute("DELETE FROM transactions WHERE id = ?", (transaction_id,)) > 0

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------
    def fetch_members(self, status: Optional[str] = None) -> List[Member]:
        sql = "SELECT id, name, class, phone, status FROM members"
        params: List[Any] = []
        if status:
            sql += " WHERE status = ?"
            params.append(status)
        sql += " ORDER BY name COLLATE NOCASE, id"
        return self._fetch(sql, params, Member.from_row)

    def insert_member(self, name: str, member_class: str, phone: Optional[str], status: str) -> int:
        return self._execute(
            "INSERT INTO members (name, class, phone, status, created_at) VALUES (?, ?, ?, ?, ?)",
            (name, member_class, phone or None, status, _now()),
        )

    def update_member(
        self,
        member_id: int,
        name: str,
        member_class: str,
        phone: Optional[str],
        status: str,
    ) -> bool:
        return self._execute(
            "UPDATE members SET name = ?, class = ?, phone = ?, status = ?, updated_at = ? WHERE id = ?",
            (name, member_class, phone or None, status, _now(), member_id),
        ) > 0

    def delete_member(self, member_id: int) -> bool:
        return self._execute("DELETE FROM members WHERE id = ?", (member_id,)) > 0

    # ------------------------------------------------------------------
    # Member payments
    # ------------------------------------------------------------------
    def fetch_payments(self, month: Optional[int] = None, year: Optional[int] = None) -> List[MemberPayment]:
        where: List[str] = []
        params: List[Any] = []
        if month is not None:
            where.append("p.month = ?")
            params.append(month)
        if year is not None:
            where.append("p.year = ?")
            params.append(year)
        sql = _PAYMENT_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY p.payment_date DESC, p.id DESC"
        return self._fetch(sql, params, MemberPayment.from_row)

    def find_payment(self, member_id: int, month: int, year: int) -> Optional[MemberPayment]:
        found = self._fetch(
            _PAYMENT_SELECT + " WHERE p.member_id = ? AND p.month = ? AND p.year = ?",
            (member_id, month, year),
            MemberPayment.from_row,
        )
        return found[0] if found else None

    def record_payment_with_income(
        self,
        member_id: int,
        amount: float,
        month: int,
        year: int,
        payment_date: date,
        notes: str,
        description: str,
        category: Optional[str],
    ) -> Tuple[int, int]:
        """Insert a dues payment and its income transaction atomically.

        Returns (payment_id, transaction_id).  Either both rows are
        written or neither is.
        """
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT INTO member_payments (member_id, amount, month, year, payment_date, notes, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (member_id, float(amount), month, year, _iso(payment_date), notes or None, _now()),
            )
            payment_id = cur.lastrowid
            transaction_id = self._insert_transaction(
                conn, INCOME, amount, description, payment_date, category
            )
        return payment_id, transaction_id

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------
    def fetch_budgets(self, year: Optional[int] = None, month: Optional[int] = None) -> List[Budget]:
        where: List[str] = []
        params: List[Any] = []
        if year is not None:
            where.append("year = ?")
            params.append(year)
        if month is not None:
            where.append("month = ?")
            params.append(month)
        sql = "SELECT id, category, monthly_limit, year, month, description FROM budgets"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY category, month, id"
        return self._fetch(sql, params, Budget.from_row)

    def insert_budget(self, category: str, monthly_limit: float, year: int, month: int, description: str) -> int:
        return self._execute(
            "INSERT INTO budgets (category, monthly_limit, year, month, description, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (category, float(monthly_limit), year, month, description or None, _now()),
        )

    def update_budget(
        self,
        budget_id: int,
        category: str,
        monthly_limit: float,
        year: int,
        month: int,
        description: str,
    ) -> bool:
        return self._execute(
            "UPDATE budgets SET category = ?, monthly_limit = ?, year = ?, month = ?, description = ?, "
            "updated_at = ? WHERE id = ?",
            (category, float(monthly_limit), year, month, description or None, _now(), budget_id),
        ) > 0

    def delete_budget(self, budget_id: int) -> bool:
        return self._execute("DELETE FROM budgets WHERE id = ?", (budget_id,)) > 0

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------
    def fetch_reminders(self, month: Optional[int] = None, year: Optional[int] = None) -> List[Reminder]:
        where: List[str] = []
        params: List[Any] = []
        if month is not None:
            where.append("r.month = ?")
            params.append(month)
        if year is not None:
            where.append("r.year = ?")
            params.append(year)
        sql = _REMINDER_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY r.reminder_date ASC, r.id ASC"
        return self._fetch(sql, params, Reminder.from_row)

    def upsert_reminders(self, reminders: Sequence[dict]) -> int:
        """Insert reminders, replacing any existing one for the same member and period."""
        if not reminders:
            return 0
        created_at = _now()
        records = [
            (
                r['member_id'],
                r['month'],
                r['year'],
                _iso(r['reminder_date']),
                r.get('status', 'pending'),
                r.get('message', ''),
                created_at,
            )
            for r in reminders
        ]
        with self.connect() as conn:
            conn.executemany(
                "INSERT INTO payment_reminders (member_id, month, year, reminder_date, status, message, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (member_id, month, year) DO UPDATE SET "
                "reminder_date = excluded.reminder_date, status = excluded.status, message = excluded.message",
                records,
            )
        return len(records)

    def update_reminder_status(self, reminder_id: int, status: str) -> bool:
        return self._execute(
            "UPDATE payment_reminders SET status = ? WHERE id = ?", (status, reminder_id)
        ) > 0

    def delete_reminder(self, reminder_id: int) -> bool:
        return self._execute("DELETE FROM payment_reminders WHERE id = ?", (reminder_id,)) > 0
