"""Factory for creating price sources."""

from __future__ import annotations

import logging

from ..config import Settings
from .interface import PriceSource

logger = logging.getLogger(__name__)


def create_price_source(settings: Settings) -> PriceSource:
    """Create the price source selected by ``settings.price_source``.

    - ``http``      → GoldApiPriceSource against ``settings.price_url``
    - ``simulator`` → GBMPriceSource stepping once per poll interval

    The source does nothing until a PriceBroadcaster starts polling it.
    """
    if settings.price_source == "simulator":
        from .simulator import GBMPriceSource

        logger.info("Price source: GBM simulator")
        return GBMPriceSource(step_seconds=settings.poll_interval)

    from .http_source import GoldApiPriceSource

    logger.info("Price source: %s", settings.price_url)
    return GoldApiPriceSource(url=settings.price_url, timeout=settings.price_timeout)
