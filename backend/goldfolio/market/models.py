"""Data models for market data."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any

from ..errors import PriceFetchError


@dataclass(frozen=True, slots=True)
class PriceSample:
    """Immutable gold spot quote (USD per troy ounce) at a point in time."""

    value: float
    observed_at: float = field(default_factory=time.time)  # Unix seconds

    def __post_init__(self) -> None:
        if not math.isfinite(self.value) or self.value <= 0:
            raise ValueError(f"price must be a positive finite number, got {self.value!r}")

    def to_dict(self) -> dict:
        """Serialize for JSON transmission."""
        return {"price": self.value, "observedAt": self.observed_at}


def parse_price(payload: Any) -> float:
    """Extract a strictly positive price from a ``{"price": <number>}`` payload.

    Numeric strings are accepted, matching what the feed occasionally returns.
    Anything else raises PriceFetchError.
    """
    if not isinstance(payload, dict) or "price" not in payload:
        raise PriceFetchError(f"Price fetch failed: response has no price field: {payload!r}")

    raw = payload["price"]
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise PriceFetchError(f"Price fetch failed: invalid price in response: {raw!r}")
    try:
        price = float(raw)
    except (ValueError, OverflowError):
        raise PriceFetchError(f"Price fetch failed: invalid price in response: {raw!r}") from None

    if not math.isfinite(price) or price <= 0:
        raise PriceFetchError(f"Price fetch failed: invalid price in response: {raw!r}")
    return price
