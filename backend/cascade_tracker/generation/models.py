"""Pydantic models for cascade generation: events, candidates, drafts and cascades."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from cascade_tracker.services.polymarket.models import GammaEvent, event_url


class Domain(StrEnum):
    """Coarse topic domains. Declaration order is the classifier tie-break order."""

    POLITICAL = "POLITICAL"
    ECONOMIC = "ECONOMIC"
    CRYPTO = "CRYPTO"
    TECHNOLOGY = "TECHNOLOGY"
    SPORTS = "SPORTS"
    ENTERTAINMENT = "ENTERTAINMENT"
    GEOPOLITICAL = "GEOPOLITICAL"
    CLIMATE = "CLIMATE"
    HEALTH = "HEALTH"
    SOCIAL = "SOCIAL"


DEFAULT_DOMAIN = Domain.SOCIAL

DOMAIN_ALIASES = {
    "TECH": Domain.TECHNOLOGY,
    "ECONOMY": Domain.ECONOMIC,
    "POLITICS": Domain.POLITICAL,
}

CascadeStatus = Literal["LIVE", "RESOLVED"]


def parse_domain(value: Any) -> Domain:
    """Parse a domain tag, accepting the short aliases the generator tends to emit."""
    if isinstance(value, Domain):
        return value
    key = str(value).strip().upper()
    if key in DOMAIN_ALIASES:
        return DOMAIN_ALIASES[key]
    return Domain(key)


# ============================================================================
# Events and candidates
# ============================================================================


class Event(BaseModel):
    """Market event as seen by the generation pipeline. Keyed by slug."""

    id: str = ""
    slug: str
    title: str
    volume: float = 0.0
    liquidity: float = 0.0
    markets_count: int = 0
    closed: bool = False

    @property
    def url(self) -> str:
        return event_url(self.slug)

    @classmethod
    def from_gamma(cls, event: GammaEvent) -> Event:
        return cls(
            id=event.id,
            slug=event.slug,
            title=event.title,
            volume=event.volume,
            liquidity=event.liquidity,
            markets_count=event.markets_count,
            closed=event.closed,
        )


class EventAnalysis(BaseModel):
    event: Event
    domain: Domain
    keywords: list[str] = Field(default_factory=list)


class ScoredCandidate(BaseModel):
    event: Event
    score: float
    domain: Domain

    @property
    def slug(self) -> str:
        return self.event.slug


# ============================================================================
# Generated structure
# ============================================================================


class Effect(BaseModel):
    market_id: str = ""
    market_name: str = ""
    market_url: str = ""
    direction: Literal["UP", "DOWN"]
    magnitude_percent: float = Field(default=0.0, ge=0, le=100)
    timing: str = ""
    confidence: float = Field(ge=0, le=1)
    reason: str = ""
    cascade_level: int = Field(default=1, ge=1, le=3)
    triggered_by: str | None = None

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("market_id", "market_name", "market_url", "timing", "reason", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class Relationship(BaseModel):
    source_market: str
    target_market: str
    relationship_type: str = ""
    mechanism: str | None = None
    time_delay: str = ""
    strength: float = Field(ge=0, le=1)
    confidence: float | None = Field(default=None, ge=0, le=1)

    @property
    def has_mechanism(self) -> bool:
        return bool(self.mechanism and self.mechanism.strip() and self.mechanism != "undefined")


class CascadeDraft(BaseModel):
    """Parsed generator output, not yet validated."""

    name: str
    description: str = ""
    category: Domain
    severity: int = Field(ge=1, le=10)
    event_headline: str = ""
    impact_thesis: str = ""
    cascade_chains: list[dict[str, Any]] = Field(default_factory=list)
    primary_effects: list[Effect] = Field(default_factory=list)
    secondary_effects: list[Effect] = Field(default_factory=list)
    tertiary_effects: list[Effect] = Field(default_factory=list)
    market_relationships: list[Relationship] = Field(default_factory=list)
    key_risks: list[str] = Field(default_factory=list)
    educational_takeaway: str = ""
    cascade_metadata: dict[str, Any] | None = None

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> Domain:
        return parse_domain(v)

    @model_validator(mode="after")
    def assign_levels(self) -> CascadeDraft:
        # Level follows the list an effect was placed in
        for level, effects in enumerate(
            (self.primary_effects, self.secondary_effects, self.tertiary_effects), start=1
        ):
            for effect in effects:
                effect.cascade_level = level
        return self

    @property
    def all_effects(self) -> list[Effect]:
        return [*self.primary_effects, *self.secondary_effects, *self.tertiary_effects]


class TriggerReference(BaseModel):
    event_id: str = ""
    slug: str
    title: str
    url: str


class Cascade(BaseModel):
    """Validated, persisted cascade. Only status and resolved_at change after creation."""

    id: str
    name: str
    description: str = ""
    domain: Domain
    severity: int = Field(ge=1, le=10)
    status: CascadeStatus = "LIVE"
    trigger: TriggerReference
    event_headline: str = ""
    impact_thesis: str = ""
    cascade_chains: list[dict[str, Any]] = Field(default_factory=list)
    primary_effects: list[Effect] = Field(default_factory=list)
    secondary_effects: list[Effect] = Field(default_factory=list)
    tertiary_effects: list[Effect] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    key_risks: list[str] = Field(default_factory=list)
    educational_takeaway: str = ""
    generator: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: datetime | None = None

    @property
    def all_effects(self) -> list[Effect]:
        return [*self.primary_effects, *self.secondary_effects, *self.tertiary_effects]

    def event_slugs(self) -> list[str]:
        """Trigger slug followed by every distinct effect slug, in cascade order."""
        slugs = [self.trigger.slug]
        for effect in self.all_effects:
            if effect.market_id and effect.market_id not in slugs:
                slugs.append(effect.market_id)
        return slugs

    @classmethod
    def from_draft(
        cls,
        draft: CascadeDraft,
        trigger: Event,
        cascade_id: str,
        generator: str = "",
    ) -> Cascade:
        return cls(
            id=cascade_id,
            name=draft.name,
            description=draft.description,
            domain=draft.category,
            severity=draft.severity,
            trigger=TriggerReference(
                event_id=trigger.id,
                slug=trigger.slug,
                title=trigger.title,
                url=trigger.url,
            ),
            event_headline=draft.event_headline,
            impact_thesis=draft.impact_thesis,
            cascade_chains=draft.cascade_chains,
            primary_effects=draft.primary_effects,
            secondary_effects=draft.secondary_effects,
            tertiary_effects=draft.tertiary_effects,
            relationships=draft.market_relationships,
            key_risks=draft.key_risks,
            educational_takeaway=draft.educational_takeaway,
            generator=generator,
        )


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    failed_categories: list[str] = Field(default_factory=list)
