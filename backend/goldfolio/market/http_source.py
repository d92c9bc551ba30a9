"""HTTP client for the live gold spot-price feed."""

from __future__ import annotations

import logging

import httpx

from ..config import DEFAULT_PRICE_URL
from ..errors import PriceFetchError
from .interface import PriceSource
from .models import parse_price

logger = logging.getLogger(__name__)


class GoldApiPriceSource(PriceSource):
    """PriceSource backed by a JSON quote endpoint.

    Issues GET <url> and expects ``{"price": <number>}``. The gold-api.com
    XAU endpoint is free and unauthenticated; at the default 10s cadence it
    stays well inside its rate limits.
    """

    def __init__(
        self,
        url: str = DEFAULT_PRICE_URL,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client: httpx.Client | None = client or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    @property
    def url(self) -> str:
        return self._url

    def fetch_price(self) -> float:
        if self._client is None:
            raise PriceFetchError("Price fetch failed: source is closed")

        try:
            response = self._client.get(self._url)
        except httpx.HTTPError as e:
            raise PriceFetchError(f"Price fetch failed: {e}") from e

        if not response.is_success:
            raise PriceFetchError(f"Price fetch failed: HTTP status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise PriceFetchError(f"Price fetch failed: response is not JSON ({e})") from e

        price = parse_price(payload)
        logger.debug("Fetched gold price %.2f from %s", price, self._url)
        return price

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
        self._client = None
