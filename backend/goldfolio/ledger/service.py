"""Append-only investment ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ..errors import ValidationError
from .models import InvestmentEntry, PortfolioSummary
from .store import LedgerStore

logger = logging.getLogger(__name__)

# Bounds for cash amounts and unit prices; keeps quantities and totals
# representable as JSON numbers.
MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")


class Ledger:
    """Records gold purchases and answers aggregate queries over them.

    Every write validates its inputs and derives ``quantity`` exactly once.
    Reads recompute from stored rows each time, so there is no cached view
    to go stale. There is deliberately no update or delete.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def record(self, owner_id: str, cash_amount: Any, unit_price: Any) -> InvestmentEntry:
        """Validate, compute ``quantity = cash_amount / unit_price`` and persist.

        Raises ValidationError for missing, non-numeric, non-finite, zero,
        negative or out-of-range amounts; nothing is written in that case.
        """
        if not owner_id:
            raise ValidationError("owner_id is required", field="owner_id")
        cash = _positive_decimal("cash_amount", cash_amount)
        price = _positive_decimal("unit_price", unit_price)
        try:
            quantity = cash / price
        except ArithmeticError:
            raise ValidationError("cash_amount / unit_price is not representable") from None

        entry = self._store.insert(
            owner_id=owner_id,
            cash_amount=cash,
            unit_price=price,
            quantity=quantity,
            created_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Recorded investment %s for owner %s: $%s at $%s/oz -> %s oz",
            entry.id,
            owner_id,
            cash,
            price,
            quantity,
        )
        return entry

    def summarize(self, owner_id: str) -> PortfolioSummary:
        """Totals for one owner. An owner with no entries gets a zeroed summary."""
        invested, quantity, count = self._store.totals(owner_id)
        return PortfolioSummary(
            total_invested=invested,
            total_quantity=quantity,
            entry_count=count,
        )

    def list_entries(self, owner_id: str) -> list[InvestmentEntry]:
        """Full history for one owner, newest first."""
        return self._store.entries(owner_id)

    def list_all(self) -> list[InvestmentEntry]:
        """Every owner's entries, newest first. For admin tooling."""
        return self._store.entries(None)


def _positive_decimal(field: str, value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal > 0 or raise ValidationError."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{field} must be a positive number", field=field)

    if isinstance(value, Decimal):
        amount = value
    else:
        # str() first so that 0.1 becomes Decimal("0.1"), not its binary expansion
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a positive number", field=field) from None

    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be a positive number", field=field)
    if not MIN_AMOUNT <= amount <= MAX_AMOUNT:
        raise ValidationError(
            f"{field} must be between {MIN_AMOUNT} and {MAX_AMOUNT}", field=field
        )
    return amount
