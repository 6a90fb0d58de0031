"""Rule tables for relevance scoring and cascade validation.

Both rule sets are plain data so the scorer and validator can be built with
alternative tables in tests or from configuration.
"""

from pydantic import BaseModel, ConfigDict, Field

from cascade_tracker.services.polymarket.models import EVENT_URL_TEMPLATE

from .models import Domain

D = Domain

# Asymmetric on purpose: most domain pairs have no relationship.
RELATED_DOMAINS: dict[Domain, frozenset[Domain]] = {
    D.ECONOMIC: frozenset({D.CRYPTO, D.GEOPOLITICAL}),
    D.CRYPTO: frozenset({D.ECONOMIC, D.TECHNOLOGY}),
    D.POLITICAL: frozenset({D.ECONOMIC, D.GEOPOLITICAL}),
    D.TECHNOLOGY: frozenset({D.HEALTH, D.CLIMATE}),
    D.SPORTS: frozenset({D.HEALTH}),
    D.ENTERTAINMENT: frozenset({D.TECHNOLOGY}),
    D.GEOPOLITICAL: frozenset({D.POLITICAL, D.ECONOMIC}),
    D.CLIMATE: frozenset({D.TECHNOLOGY}),
    D.HEALTH: frozenset({D.TECHNOLOGY, D.SPORTS}),
}

UNDERREPRESENTED_DOMAINS = frozenset(
    {D.SPORTS, D.ENTERTAINMENT, D.CLIMATE, D.TECHNOLOGY, D.HEALTH}
)

OVERREPRESENTED_DOMAINS = frozenset({D.POLITICAL, D.CRYPTO})

FORBIDDEN_MECHANISMS: tuple[str, ...] = (
    # Sentiment and psychology
    "sentiment",
    "sentiment shock",
    "regional sentiment",
    "fan sentiment",
    "general psychology",
    "market psychology",
    "zeitgeist",
    "complacency",
    # Non-specific transfer
    "spillover",
    "liquidity spillover",
    "general engagement",
    "user engagement alone",
    "attention reallocation",
    # Unmeasurable speculation
    "uncertainty premium",
    "compensation-seeking",
    "bettor behavior alone",
    # Virality
    "goes viral",
    "viral spread",
    "trending alone",
    "media cycles alone",
    # Tenuous crypto links
    "payment rails",
    "in-game economies",
    "gpu compute",
    "decentralized compute",
    "blockchain adoption",
)

FORBIDDEN_CROSSOVERS: dict[Domain, frozenset[Domain]] = {
    D.SPORTS: frozenset({D.POLITICAL, D.CRYPTO, D.ECONOMIC, D.ENTERTAINMENT, D.GEOPOLITICAL}),
    D.POLITICAL: frozenset({D.SPORTS, D.ENTERTAINMENT, D.HEALTH, D.CLIMATE}),
    D.ENTERTAINMENT: frozenset({D.CRYPTO, D.POLITICAL, D.GEOPOLITICAL, D.CLIMATE}),
    D.CLIMATE: frozenset({D.POLITICAL, D.SPORTS, D.ENTERTAINMENT}),
    D.HEALTH: frozenset({D.POLITICAL, D.CRYPTO, D.ENTERTAINMENT}),
    D.GEOPOLITICAL: frozenset({D.SPORTS, D.ENTERTAINMENT, D.HEALTH}),
    D.ECONOMIC: frozenset({D.SPORTS, D.ENTERTAINMENT, D.HEALTH}),
    D.TECHNOLOGY: frozenset({D.SPORTS, D.POLITICAL}),
}


class RelevanceRules(BaseModel):
    """Weights and domain tables for the relevance scorer."""

    model_config = ConfigDict(frozen=True)

    same_domain_bonus: float = 40.0
    related_domain_bonus: float = 20.0
    exact_keyword_bonus: float = 25.0
    partial_keyword_bonus: float = 12.0
    partial_keyword_cap: float = 36.0
    # (volume threshold, bonus) pairs; every threshold exceeded adds its bonus
    volume_bonuses: tuple[tuple[float, float], ...] = ((1_000_000, 0.6), (10_000_000, 0.9))
    underrepresented_bonus: float = 15.0
    overrepresented_penalty: float = 5.0
    freshness_penalty_per_use: float = 10.0

    related_domains: dict[Domain, frozenset[Domain]] = Field(
        default_factory=lambda: dict(RELATED_DOMAINS)
    )
    underrepresented_domains: frozenset[Domain] = UNDERREPRESENTED_DOMAINS
    overrepresented_domains: frozenset[Domain] = OVERREPRESENTED_DOMAINS

    def is_related(self, trigger_domain: Domain, candidate_domain: Domain) -> bool:
        return candidate_domain in self.related_domains.get(trigger_domain, frozenset())


class ValidationRules(BaseModel):
    """Hard rules every generated cascade must satisfy."""

    model_config = ConfigDict(frozen=True)

    # Minimum confidence keyed by cascade level (1=primary, 2=secondary, 3=tertiary)
    confidence_floors: dict[int, float] = Field(
        default_factory=lambda: {1: 0.75, 2: 0.65, 3: 0.60}
    )
    min_relationship_strength: float = 0.6
    forbidden_mechanisms: tuple[str, ...] = FORBIDDEN_MECHANISMS
    forbidden_crossovers: dict[Domain, frozenset[Domain]] = Field(
        default_factory=lambda: dict(FORBIDDEN_CROSSOVERS)
    )
    url_template: str = EVENT_URL_TEMPLATE

    def is_forbidden_crossover(self, source: Domain, target: Domain) -> bool:
        return target in self.forbidden_crossovers.get(source, frozenset())

    def forbidden_phrases_in(self, text: str) -> list[str]:
        lowered = text.lower()
        return [phrase for phrase in self.forbidden_mechanisms if phrase in lowered]

    def expected_url(self, slug: str) -> str:
        return self.url_template.format(slug=slug)


DEFAULT_RELEVANCE_RULES = RelevanceRules()
DEFAULT_VALIDATION_RULES = ValidationRules()
