"""Prompt construction for the cascade text generator."""

import json

from .models import Domain, Event, EventAnalysis, ScoredCandidate
from .rules import DEFAULT_VALIDATION_RULES, ValidationRules

TRIGGER_RELEVANCE_SCORE = 100

_EFFECT_RULES = """CASCADE RULES:

1. RELEVANCE-BASED SELECTION:
   - Events are pre-sorted by relevance_score (higher = stronger connection to the trigger)
   - Primary effects: only events with relevance_score > 50
   - Secondary effects: events with relevance_score > 30
   - Tertiary effects: events with relevance_score > 15, only with a genuine causal chain

2. CONFIDENCE FLOORS (cascades below these are rejected automatically):
   - Primary effects: confidence >= {primary_floor}
   - Secondary effects: confidence >= {secondary_floor}
   - Tertiary effects: confidence >= {tertiary_floor}
   - Every market relationship: strength >= {min_strength}

3. SPECIFIC MECHANISMS ONLY:
   - Every effect "reason" and every relationship "mechanism" must name a concrete
     mechanism (supply/demand, policy change, consumer behavior, capital flows)
   - Every relationship MUST have a non-empty "mechanism"
   - These phrases cause automatic rejection: {forbidden}

4. EXACT EVENT MATCHING:
   - market_id MUST be an "event_slug" from the events list
   - market_name MUST be the "event_title" copied character-for-character
   - market_url MUST be the "event_url" exactly
   - triggered_by MUST be the trigger slug or the market_id of another effect
   - Relationship endpoints MUST be the trigger slug or effect market_ids

5. QUALITY OVER QUANTITY:
   - Fewer strong effects beat many weak ones; use fewer effects if needed
"""

_OUTPUT_SCHEMA = {
    "name": "Specific cascade title",
    "description": "1-2 sentences",
    "category": "One of: " + ", ".join(d.value for d in Domain),
    "severity": 7,
    "event_headline": "One sentence on what happens with the trigger event",
    "impact_thesis": "1-2 sentences on how the cascade unfolds",
    "cascade_chains": [
        {"chain": "Trigger -> Market B -> Market C", "rationale": "One sentence", "timeline_estimate": "Hours"}
    ],
    "primary_effects": [
        {
            "market_id": "event-slug-from-list",
            "market_name": "Exact event_title",
            "market_url": "Exact event_url",
            "direction": "UP",
            "magnitude_percent": 15,
            "timing": "0-15 min",
            "confidence": 0.8,
            "reason": "Specific mechanism in one sentence",
            "cascade_level": 1,
        }
    ],
    "secondary_effects": [
        {
            "market_id": "another-event-slug",
            "market_name": "Exact event_title",
            "market_url": "Exact event_url",
            "direction": "DOWN",
            "magnitude_percent": 8,
            "timing": "15min-2hrs",
            "confidence": 0.7,
            "reason": "Specific mechanism in one sentence",
            "cascade_level": 2,
            "triggered_by": "event-slug-from-list",
        }
    ],
    "tertiary_effects": [],
    "market_relationships": [
        {
            "source_market": "event-slug-from-list",
            "target_market": "another-event-slug",
            "relationship_type": "causes",
            "mechanism": "Specific mechanism in one sentence",
            "time_delay": "15-30min",
            "strength": 0.7,
            "confidence": 0.7,
        }
    ],
    "key_risks": ["Risk that could break the cascade"],
    "educational_takeaway": "One lesson about cascade effects",
}


def _event_payload(event: Event, score: float) -> dict:
    return {
        "event_title": event.title,
        "event_slug": event.slug,
        "event_url": event.url,
        "volume": event.volume,
        "liquidity": event.liquidity,
        "markets_count": event.markets_count,
        "relevance_score": round(score, 1),
    }


def build_cascade_prompt(
    trigger: EventAnalysis,
    candidates: list[ScoredCandidate],
    effect_count: int,
    pool_cap: int = 75,
    recent_domains: list[Domain] | None = None,
    rules: ValidationRules = DEFAULT_VALIDATION_RULES,
) -> str:
    """Build the generation prompt for one cascade seeded by ``trigger``.

    The candidate list is truncated to ``pool_cap`` entries to bound prompt size.
    """
    events = [_event_payload(trigger.event, TRIGGER_RELEVANCE_SCORE)]
    events.extend(_event_payload(c.event, c.score) for c in candidates[:pool_cap])

    trigger_block = json.dumps(
        {
            "event_title": trigger.event.title,
            "event_slug": trigger.event.slug,
            "event_url": trigger.event.url,
            "domain": trigger.domain.value,
            "volume": trigger.event.volume,
            "liquidity": trigger.event.liquidity,
            "markets_count": trigger.event.markets_count,
        },
        indent=2,
    )

    diversity_context = ""
    if recent_domains:
        diversity_context = (
            "\nRECENT CASCADE DOMAINS (prefer different domains where possible): "
            + ", ".join(d.value for d in recent_domains)
            + "\n"
        )

    effect_rules = _EFFECT_RULES.format(
        primary_floor=rules.confidence_floors.get(1, 0.0),
        secondary_floor=rules.confidence_floors.get(2, 0.0),
        tertiary_floor=rules.confidence_floors.get(3, 0.0),
        min_strength=rules.min_relationship_strength,
        forbidden=", ".join(f'"{p}"' for p in rules.forbidden_mechanisms),
    )

    return f"""You are a prediction market analyst. Generate 1 cascade scenario seeded by the PRIMARY TRIGGER EVENT, using only the REAL Polymarket events listed below.

PRIMARY TRIGGER EVENT:
{trigger_block}

EVENTS (sorted by relevance_score):
{json.dumps(events, indent=2)}

DOMAIN: {trigger.domain.value}
KEY TOPICS: {', '.join(trigger.keywords[:8])}
{diversity_context}
Use at most {effect_count} effects in total across primary (0-15 min), secondary (15min-2hrs) and tertiary (2-24hrs) levels.

{effect_rules}
Keep every text field to one short sentence.

Return ONLY a JSON object (no markdown, no commentary) matching this shape:
{json.dumps(_OUTPUT_SCHEMA, indent=2)}
"""
