"""Ledger records and derived portfolio figures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

ZERO = Decimal(0)


@dataclass(frozen=True, slots=True)
class InvestmentEntry:
    """One cash-for-gold purchase. Written once, never modified.

    ``quantity`` is ``cash_amount / unit_price`` as computed when the entry
    was recorded; it is stored, not re-derived.
    """

    id: int
    owner_id: str
    cash_amount: Decimal  # USD
    unit_price: Decimal  # USD per troy ounce
    quantity: Decimal  # troy ounces
    created_at: datetime

    def to_dict(self) -> dict:
        """Serialize for JSON responses."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "investment_amount": float(self.cash_amount),
            "price_per_oz": float(self.unit_price),
            "gold_amount": float(self.quantity),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Valuation:
    """Portfolio marked to a specific spot price."""

    price: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_percent: Decimal


@dataclass(frozen=True, slots=True)
class PortfolioSummary:
    """Aggregate over one owner's entries."""

    total_invested: Decimal = ZERO
    total_quantity: Decimal = ZERO
    entry_count: int = 0

    @property
    def average_unit_price(self) -> Decimal:
        """Volume-weighted cost per ounce; 0 when nothing is held."""
        if self.total_quantity == 0:
            return ZERO
        return self.total_invested / self.total_quantity

    def valuation(self, price: float | Decimal) -> Valuation:
        """Mark the holding to ``price``."""
        spot = Decimal(str(price)) if isinstance(price, float) else Decimal(price)
        current_value = self.total_quantity * spot
        profit_loss = current_value - self.total_invested
        if self.total_invested == 0:
            percent = ZERO
        else:
            percent = profit_loss / self.total_invested * 100
        return Valuation(
            price=spot,
            current_value=current_value,
            profit_loss=profit_loss,
            profit_loss_percent=percent,
        )

    def to_dict(self) -> dict:
        return {
            "totalInvestedUSD": float(self.total_invested),
            "totalGoldOz": float(self.total_quantity),
            "averagePrice": float(self.average_unit_price),
        }
