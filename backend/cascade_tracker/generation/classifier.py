"""Domain classification and keyword extraction for event titles."""

import re
import string
from collections.abc import Mapping, Sequence
from functools import lru_cache

from .models import DEFAULT_DOMAIN, Domain, Event, EventAnalysis

DOMAIN_KEYWORDS: dict[Domain, tuple[str, ...]] = {
    Domain.POLITICAL: (
        "president", "election", "senate", "congress", "cabinet", "governor",
        "vote", "nominee", "campaign", "political", "policy", "bill",
    ),
    Domain.ECONOMIC: (
        "fed", "rate", "inflation", "gdp", "jobs", "unemployment", "recession",
        "economy", "market", "stock", "trading", "finance", "dollar", "treasury",
        "bond", "yield", "fomc", "powell",
    ),
    Domain.CRYPTO: (
        "bitcoin", "btc", "ethereum", "eth", "crypto", "blockchain", "defi", "token",
    ),
    Domain.TECHNOLOGY: (
        "ai", "artificial intelligence", "machine learning", "ml", "apple",
        "google", "meta", "tesla", "tech", "software", "hardware", "app",
        "iphone", "android", "openai", "chatgpt", "gpt", "microsoft", "amazon",
        "nvidia", "chip", "semiconductor", "processor", "quantum", "robot",
        "automation", "cloud", "data", "algorithm", "startup", "ipo", "biotech",
        "crispr", "gene", "dna", "pharma",
    ),
    Domain.SPORTS: (
        "super bowl", "nfl", "nba", "mlb", "nhl", "champion", "championship",
        "playoffs", "world series", "world cup", "olympics", "football",
        "basketball", "baseball", "soccer", "hockey", "tennis", "golf", "racing",
        "ufc", "boxing", "finals", "mvp", "team", "player", "athlete", "game",
        "match", "tournament",
    ),
    Domain.ENTERTAINMENT: (
        "movie", "film", "oscar", "academy award", "box office", "netflix",
        "disney", "hbo", "streaming", "album", "music", "grammy", "billboard",
        "concert", "tour", "actor", "actress", "celebrity", "gta", "release",
        "grossing", "opening", "weekend", "show", "series", "season", "episode",
        "premiere", "viral", "trending",
    ),
    Domain.GEOPOLITICAL: (
        "war", "ukraine", "russia", "china", "nato", "military", "sanction",
        "peace", "treaty", "conflict", "invasion", "attack", "defense", "israel",
        "gaza", "iran", "korea", "taiwan", "nuclear",
    ),
    Domain.CLIMATE: (
        "climate", "temperature", "weather", "hurricane", "tornado", "earthquake",
        "wildfire", "flood", "drought", "emission", "carbon", "co2", "global",
        "warming", "degrees", "celsius", "fahrenheit", "renewable", "solar",
        "wind", "energy", "sustainability", "green", "epa",
    ),
    Domain.HEALTH: (
        "health", "healthcare", "medical", "hospital", "doctor", "nurse",
        "pandemic", "epidemic", "disease", "virus", "covid", "vaccine", "fda",
        "drug", "treatment", "cure", "medicine", "clinical", "trial", "patient",
        "cancer", "alzheimer",
    ),
}

STOPWORDS = frozenset(
    {"will", "what", "when", "where", "which", "before", "after", "than"}
)

MIN_KEYWORD_LENGTH = 4

_STRIP_CHARS = string.punctuation + "“”‘’"


@lru_cache(maxsize=1024)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Match ``keyword`` where a word starts, not anywhere in the title.

    This intentionally departs from plain substring matching: "war" no longer
    counts inside "award", nor "ai" inside "bahrain". Prefixes still match
    ("war" matches "warming").
    """
    return re.compile(r"\b" + re.escape(keyword))


def count_domain_matches(
    title: str,
    keywords: Mapping[Domain, Sequence[str]] = DOMAIN_KEYWORDS,
) -> dict[Domain, int]:
    lowered = title.lower()
    return {
        domain: sum(1 for kw in domain_keywords if _keyword_pattern(kw).search(lowered))
        for domain, domain_keywords in keywords.items()
    }


def classify_domain(
    title: str,
    keywords: Mapping[Domain, Sequence[str]] = DOMAIN_KEYWORDS,
) -> Domain:
    """Pick the domain with the most keyword matches.

    Ties go to the domain declared first in ``Domain``; titles with no
    matches (including empty ones) fall back to ``SOCIAL``.
    """
    if not title or not title.strip():
        return DEFAULT_DOMAIN

    counts = count_domain_matches(title, keywords)
    best = DEFAULT_DOMAIN
    best_count = 0
    for domain in Domain:
        count = counts.get(domain, 0)
        if count > best_count:
            best, best_count = domain, count
    return best


def extract_keywords(title: str) -> list[str]:
    """Lower-cased title tokens longer than three characters, minus stopwords."""
    keywords: list[str] = []
    for raw in title.lower().split():
        token = raw.strip(_STRIP_CHARS)
        if len(token) < MIN_KEYWORD_LENGTH or token in STOPWORDS:
            continue
        if token not in keywords:
            keywords.append(token)
    return keywords


def analyze_event(event: Event) -> EventAnalysis:
    return EventAnalysis(
        event=event,
        domain=classify_domain(event.title),
        keywords=extract_keywords(event.title),
    )
