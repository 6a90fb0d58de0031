class PolymarketAPIError(Exception):
    """Base exception for Polymarket Gamma API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PolymarketRateLimitError(PolymarketAPIError):
    """Rate limit still exceeded after all retry attempts."""

    pass


class PolymarketNotFoundError(PolymarketAPIError):
    """Event or market not found."""

    pass
