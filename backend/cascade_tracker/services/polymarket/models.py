from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

EVENT_URL_TEMPLATE = "https://polymarket.com/event/{slug}"


def event_url(slug: str) -> str:
    """Canonical public reference for an event slug."""
    return EVENT_URL_TEMPLATE.format(slug=slug)


def _parse_json_list(v: Any) -> list[Any]:
    # Gamma encodes outcomes and prices as JSON strings
    if v is None or v == "":
        return []
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except (json.JSONDecodeError, TypeError):
            return []
    return list(v) if isinstance(v, (list, tuple)) else []


def _parse_datetime(v: Any) -> datetime | None:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    try:
        return datetime.fromisoformat(str(v).replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


class GammaMarket(BaseModel):
    id: str = ""
    slug: str = ""
    question: str = ""
    active: bool = True
    closed: bool = False
    outcomes: list[str] = Field(default_factory=list)
    outcome_prices: list[float] = Field(default_factory=list)
    resolved_outcome: str | None = None
    volume: float = 0.0
    end_date: datetime | None = None

    @field_validator("outcomes", mode="before")
    @classmethod
    def parse_outcomes(cls, v: Any) -> list[str]:
        return [str(o) for o in _parse_json_list(v)]

    @field_validator("outcome_prices", mode="before")
    @classmethod
    def parse_prices(cls, v: Any) -> list[float]:
        prices = []
        for p in _parse_json_list(v):
            try:
                prices.append(float(p))
            except (TypeError, ValueError):
                continue
        return prices

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, v: Any) -> datetime | None:
        return _parse_datetime(v)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GammaMarket:
        return cls(
            id=str(data.get("id", "")),
            slug=data.get("slug", ""),
            question=data.get("question", data.get("title", "")),
            active=data.get("active", True) is not False,
            closed=bool(data.get("closed", False)),
            outcomes=data.get("outcomes"),
            outcome_prices=data.get("outcomePrices"),
            resolved_outcome=data.get("resolvedOutcome"),
            volume=float(data.get("volumeNum", data.get("volume", 0)) or 0),
            end_date=data.get("endDate"),
        )


class GammaEvent(BaseModel):
    id: str = ""
    slug: str
    title: str = ""
    volume: float = 0.0
    liquidity: float = 0.0
    markets_count: int = 0
    active: bool = True
    closed: bool = False
    end_date: datetime | None = None
    markets: list[GammaMarket] = Field(default_factory=list)

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, v: Any) -> datetime | None:
        return _parse_datetime(v)

    @property
    def url(self) -> str:
        return event_url(self.slug)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GammaEvent:
        markets = [GammaMarket.from_api(m) for m in data.get("markets") or []]
        return cls(
            id=str(data.get("id", "")),
            slug=data.get("slug", ""),
            title=data.get("title", ""),
            volume=float(data.get("volume", 0) or 0),
            liquidity=float(data.get("liquidity", 0) or 0),
            markets_count=int(data.get("markets_count") or len(markets)),
            active=data.get("active", True) is not False,
            closed=bool(data.get("closed", False)),
            end_date=data.get("endDate"),
            markets=markets,
        )


class MarketState(BaseModel):
    """Current closed/active state of an event and, once closed, its final pricing."""

    event_id: str = ""
    slug: str
    closed: bool
    resolved_outcome: str | None = None
    outcomes: list[str] = Field(default_factory=list)
    outcome_prices: list[float] = Field(default_factory=list)
    end_date: datetime | None = None

    @classmethod
    def from_event(cls, event: GammaEvent) -> MarketState:
        # Binary events carry their pricing on the first market
        market = event.markets[0] if event.markets else None
        closed = event.closed or not event.active
        if market is not None and len(event.markets) == 1:
            closed = closed or market.closed or not market.active
        return cls(
            event_id=event.id,
            slug=event.slug,
            closed=closed,
            resolved_outcome=market.resolved_outcome if market else None,
            outcomes=market.outcomes if market else [],
            outcome_prices=market.outcome_prices if market else [],
            end_date=event.end_date or (market.end_date if market else None),
        )
