from .client import PolymarketClient, create_polymarket_client
from .config import PolymarketClientConfig
from .exceptions import (
    PolymarketAPIError,
    PolymarketNotFoundError,
    PolymarketRateLimitError,
)
from .models import GammaEvent, GammaMarket, MarketState, event_url
from .retry import NO_RETRY, RetryPolicy

__all__ = [
    "PolymarketClient",
    "create_polymarket_client",
    "PolymarketClientConfig",
    "PolymarketAPIError",
    "PolymarketNotFoundError",
    "PolymarketRateLimitError",
    "GammaEvent",
    "GammaMarket",
    "MarketState",
    "event_url",
    "RetryPolicy",
    "NO_RETRY",
]
