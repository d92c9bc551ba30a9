"""Market data subsystem for Goldfolio.

Public API:
    PriceSample          - Immutable gold quote dataclass
    PriceSource          - Abstract interface for price providers
    PriceBroadcaster     - Poll loop, latest-price cache and subscriber fan-out
    Subscription         - Cancellable broadcaster registration
    StreamSession        - Per-connection SSE adapter
    create_price_source  - Factory that selects the live feed or the simulator
    create_stream_router - FastAPI router factory for the SSE endpoint
"""

from .broadcaster import PriceBroadcaster, Subscription
from .factory import create_price_source
from .interface import PriceSource
from .models import PriceSample
from .stream import StreamSession, create_stream_router

__all__ = [
    "PriceSample",
    "PriceSource",
    "PriceBroadcaster",
    "Subscription",
    "StreamSession",
    "create_price_source",
    "create_stream_router",
]
