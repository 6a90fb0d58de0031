"""Relevance scoring between a trigger event and candidate events."""

import logging
from collections.abc import Iterable

from .classifier import analyze_event
from .diversity import DiversityTracker
from .models import Event, EventAnalysis, ScoredCandidate
from .rules import DEFAULT_RELEVANCE_RULES, RelevanceRules

logger = logging.getLogger(__name__)


class RelevanceScorer:
    """Sums independent topical, diversity and freshness contributions.

    Deterministic for a fixed trigger, candidate and tracker history.
    """

    def __init__(
        self,
        rules: RelevanceRules = DEFAULT_RELEVANCE_RULES,
        tracker: DiversityTracker | None = None,
    ):
        self.rules = rules
        self.tracker = tracker

    def score(self, trigger: EventAnalysis, candidate: Event | EventAnalysis) -> float:
        analysis = candidate if isinstance(candidate, EventAnalysis) else analyze_event(candidate)
        rules = self.rules
        score = 0.0

        if analysis.domain == trigger.domain:
            score += rules.same_domain_bonus

        if rules.is_related(trigger.domain, analysis.domain):
            score += rules.related_domain_bonus

        trigger_keywords = set(trigger.keywords)
        candidate_keywords = set(analysis.keywords)
        score += len(trigger_keywords & candidate_keywords) * rules.exact_keyword_bonus

        # Exact matches count as substring overlaps too
        partial = sum(
            1
            for t in trigger_keywords
            for c in candidate_keywords
            if t in c or c in t
        )
        score += min(partial * rules.partial_keyword_bonus, rules.partial_keyword_cap)

        for threshold, bonus in rules.volume_bonuses:
            if analysis.event.volume > threshold:
                score += bonus

        if analysis.domain in rules.underrepresented_domains:
            score += rules.underrepresented_bonus
        if analysis.domain in rules.overrepresented_domains:
            score -= rules.overrepresented_penalty

        if self.tracker is not None:
            score += self.tracker.freshness_penalty(
                analysis.event.slug, per_use=rules.freshness_penalty_per_use
            )

        return score

    def rank(self, trigger: EventAnalysis, pool: Iterable[Event]) -> list[ScoredCandidate]:
        """Score every pool event except the trigger, best first.

        Duplicate slugs keep their first occurrence; ties keep pool order.
        """
        seen = {trigger.event.slug}
        scored: list[ScoredCandidate] = []
        for event in pool:
            if event.slug in seen:
                continue
            seen.add(event.slug)
            analysis = analyze_event(event)
            scored.append(
                ScoredCandidate(
                    event=event,
                    score=self.score(trigger, analysis),
                    domain=analysis.domain,
                )
            )
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored
