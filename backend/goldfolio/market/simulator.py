"""GBM-based gold price simulator."""

from __future__ import annotations

import logging
import math

import numpy as np

from .interface import PriceSource

logger = logging.getLogger(__name__)

# Rough XAU/USD level and annualized parameters for spot gold
SEED_PRICE = 2350.00
DEFAULT_SIGMA = 0.15
DEFAULT_MU = 0.04


class GBMPriceSource(PriceSource):
    """Offline PriceSource that walks a Geometric Brownian Motion.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Where:
        S(t)   = current price
        mu     = annualized drift (expected return)
        sigma  = annualized volatility
        dt     = time step as fraction of a year
        Z      = standard normal random variable

    Gold trades around the clock, so a year is 365 * 24h rather than a
    stock-market trading year. Each ``fetch_price()`` call advances one step.
    Prices are rounded to cents, which means consecutive fetches sometimes
    return the same value; the broadcaster suppresses those.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600

    def __init__(
        self,
        step_seconds: float = 10.0,
        seed_price: float = SEED_PRICE,
        sigma: float = DEFAULT_SIGMA,
        mu: float = DEFAULT_MU,
        event_probability: float = 0.001,
        seed: int | None = None,
    ) -> None:
        if seed_price <= 0:
            raise ValueError("seed_price must be positive")
        self._dt = step_seconds / self.SECONDS_PER_YEAR
        self._price = seed_price
        self._sigma = sigma
        self._mu = mu
        self._event_prob = event_probability
        self._rng = np.random.default_rng(seed)

    @property
    def dt(self) -> float:
        return self._dt

    def fetch_price(self) -> float:
        z = self._rng.standard_normal()
        drift = (self._mu - 0.5 * self._sigma**2) * self._dt
        diffusion = self._sigma * math.sqrt(self._dt) * z
        self._price *= math.exp(drift + diffusion)

        # Occasional macro shock: 0.5-1.5% jump either way
        if self._rng.random() < self._event_prob:
            shock = self._rng.uniform(0.005, 0.015) * self._rng.choice([-1, 1])
            self._price *= 1 + shock
            logger.debug("Simulated gold shock: %.2f%%", shock * 100)

        return round(self._price, 2)
