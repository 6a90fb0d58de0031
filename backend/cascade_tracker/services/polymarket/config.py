from pydantic import BaseModel


class PolymarketClientConfig(BaseModel):
    """Configuration for the Polymarket Gamma API client."""

    base_url: str = "https://gamma-api.polymarket.com"
    timeout_seconds: float = 10.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    default_page_size: int = 30
