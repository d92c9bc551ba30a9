"""Persistence for ledger entries."""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import ZERO, InvestmentEntry


class LedgerStore(ABC):
    """Insert / aggregate-query contract the Ledger relies on.

    Stores never update or delete rows.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Create the schema if needed."""

    @abstractmethod
    def insert(
        self,
        owner_id: str,
        cash_amount: Decimal,
        unit_price: Decimal,
        quantity: Decimal,
        created_at: datetime,
    ) -> InvestmentEntry:
        """Persist one entry atomically and return it with its assigned id."""

    @abstractmethod
    def entries(self, owner_id: str | None = None) -> list[InvestmentEntry]:
        """Entries for ``owner_id`` (all owners if None), newest first."""

    @abstractmethod
    def totals(self, owner_id: str) -> tuple[Decimal, Decimal, int]:
        """(sum of cash_amount, sum of quantity, entry count) for ``owner_id``."""


class SQLiteLedgerStore(LedgerStore):
    """LedgerStore backed by a SQLite file.

    Amounts are stored as decimal strings so that the quantity written is
    exactly the quantity read back. One short-lived connection per call;
    SQLite serializes concurrent writers.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        if self.db_path.parent:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:  # commit on success, roll back on error
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS investments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id TEXT NOT NULL,
                    cash_amount TEXT NOT NULL,
                    unit_price TEXT NOT NULL,
                    quantity TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_investments_owner
                ON investments(owner_id, created_at)
                """
            )

    def insert(
        self,
        owner_id: str,
        cash_amount: Decimal,
        unit_price: Decimal,
        quantity: Decimal,
        created_at: datetime,
    ) -> InvestmentEntry:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO investments (
                    owner_id, cash_amount, unit_price, quantity, created_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    owner_id,
                    str(cash_amount),
                    str(unit_price),
                    str(quantity),
                    created_at.isoformat(),
                ),
            )
            entry_id = cursor.lastrowid
        return InvestmentEntry(
            id=entry_id,
            owner_id=owner_id,
            cash_amount=cash_amount,
            unit_price=unit_price,
            quantity=quantity,
            created_at=created_at,
        )

    def entries(self, owner_id: str | None = None) -> list[InvestmentEntry]:
        sql = [
            "SELECT id, owner_id, cash_amount, unit_price, quantity, created_at",
            "FROM investments",
        ]
        params: list[str] = []
        if owner_id is not None:
            sql.append("WHERE owner_id = ?")
            params.append(owner_id)
        sql.append("ORDER BY created_at DESC, id DESC")
        with self._connect() as conn:
            rows = conn.execute(" ".join(sql), params).fetchall()
        return [_row_to_entry(row) for row in rows]

    def totals(self, owner_id: str) -> tuple[Decimal, Decimal, int]:
        # SUM() in SQLite is floating point; add the decimal strings here instead.
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT cash_amount, quantity FROM investments WHERE owner_id = ?",
                (owner_id,),
            ).fetchall()
        invested = sum((Decimal(row["cash_amount"]) for row in rows), ZERO)
        quantity = sum((Decimal(row["quantity"]) for row in rows), ZERO)
        return invested, quantity, len(rows)


def _row_to_entry(row: sqlite3.Row) -> InvestmentEntry:
    return InvestmentEntry(
        id=row["id"],
        owner_id=row["owner_id"],
        cash_amount=Decimal(row["cash_amount"]),
        unit_price=Decimal(row["unit_price"]),
        quantity=Decimal(row["quantity"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
