"""Hard-rule validation of generated cascade drafts.

Categories run in a fixed order: confidence floors, mechanism quality,
domain crossover, referential integrity, then the diversity gate. Any
violation rejects the whole cascade.
"""

import logging
from collections.abc import Callable, Iterable

from .classifier import classify_domain
from .diversity import DiversityTracker
from .models import CascadeDraft, Event, ScoredCandidate, ValidationResult
from .rules import DEFAULT_VALIDATION_RULES, ValidationRules

logger = logging.getLogger(__name__)

_LEVEL_NAMES = {1: "Primary", 2: "Secondary", 3: "Tertiary"}


class CascadeValidator:
    def __init__(
        self,
        rules: ValidationRules = DEFAULT_VALIDATION_RULES,
        tracker: DiversityTracker | None = None,
        fail_fast: bool = True,
    ):
        self.rules = rules
        self.tracker = tracker
        self.fail_fast = fail_fast

    def validate(
        self,
        draft: CascadeDraft,
        events: Iterable[Event | ScoredCandidate],
        trigger_slug: str | None = None,
    ) -> ValidationResult:
        """Check ``draft`` against the events its prompt was built from.

        ``trigger_slug`` defaults to the first supplied event.
        """
        event_list = [e.event if isinstance(e, ScoredCandidate) else e for e in events]
        events_by_slug: dict[str, Event] = {}
        for event in event_list:
            events_by_slug.setdefault(event.slug, event)
        if trigger_slug is None and event_list:
            trigger_slug = event_list[0].slug

        checks: list[tuple[str, Callable[[], list[str]]]] = [
            ("confidence", lambda: self.check_confidence(draft)),
            ("mechanism", lambda: self.check_mechanisms(draft)),
            ("crossover", lambda: self.check_crossovers(draft, events_by_slug)),
            ("integrity", lambda: self.check_integrity(draft, events_by_slug, trigger_slug)),
            ("diversity", lambda: self.check_diversity(draft)),
        ]

        errors: list[str] = []
        failed: list[str] = []
        for category, check in checks:
            category_errors = check()
            if not category_errors:
                continue
            failed.append(category)
            errors.extend(category_errors)
            logger.warning(f"Cascade '{draft.name}' failed {category} rules:")
            for err in category_errors:
                logger.warning(f"   {err}")
            if self.fail_fast:
                break

        return ValidationResult(valid=not errors, errors=errors, failed_categories=failed)

    def check_confidence(self, draft: CascadeDraft) -> list[str]:
        errors = []
        for level, effects in (
            (1, draft.primary_effects),
            (2, draft.secondary_effects),
            (3, draft.tertiary_effects),
        ):
            floor = self.rules.confidence_floors.get(level, 0.0)
            for i, effect in enumerate(effects, start=1):
                if effect.confidence < floor:
                    errors.append(
                        f"{_LEVEL_NAMES[level]} effect {i}: confidence {effect.confidence} "
                        f"below minimum {floor}"
                    )

        min_strength = self.rules.min_relationship_strength
        for i, rel in enumerate(draft.market_relationships, start=1):
            if rel.strength < min_strength:
                errors.append(
                    f"Relationship {i}: strength {rel.strength} below minimum {min_strength}"
                )
        return errors

    def check_mechanisms(self, draft: CascadeDraft) -> list[str]:
        errors = []
        for effect in draft.all_effects:
            label = effect.market_name or effect.market_id or "(unnamed)"
            if not effect.reason.strip():
                errors.append(f'Effect "{label}": missing mechanism in "reason"')
                continue
            for phrase in self.rules.forbidden_phrases_in(effect.reason):
                errors.append(
                    f'Effect "{label}": uses forbidden weak mechanism "{phrase}"'
                )

        for i, rel in enumerate(draft.market_relationships, start=1):
            if not rel.has_mechanism:
                errors.append(
                    f'Relationship {i}: missing required "mechanism" '
                    "(every relationship must explain how source affects target)"
                )
                continue
            for phrase in self.rules.forbidden_phrases_in(rel.mechanism or ""):
                errors.append(
                    f'Relationship {i}: uses forbidden weak mechanism "{phrase}" in "{rel.mechanism}"'
                )
        return errors

    def check_crossovers(
        self, draft: CascadeDraft, events_by_slug: dict[str, Event]
    ) -> list[str]:
        errors = []
        cascade_domain = draft.category
        for effect in draft.all_effects:
            event = events_by_slug.get(effect.market_id)
            if event is None:
                continue
            effect_domain = classify_domain(event.title)
            if self.rules.is_forbidden_crossover(cascade_domain, effect_domain):
                errors.append(
                    f"Forbidden crossover: {cascade_domain} -> {effect_domain} "
                    f'in effect "{effect.market_name}"'
                )
            if self.rules.is_forbidden_crossover(effect_domain, cascade_domain):
                errors.append(
                    f"Forbidden reverse crossover: {effect_domain} -> {cascade_domain} "
                    f'in effect "{effect.market_name}"'
                )
        return errors

    def check_integrity(
        self,
        draft: CascadeDraft,
        events_by_slug: dict[str, Event],
        trigger_slug: str | None,
    ) -> list[str]:
        errors = []
        level_counters = {1: 0, 2: 0, 3: 0}
        for effect in draft.all_effects:
            level_counters[effect.cascade_level] += 1
            label = f"{_LEVEL_NAMES[effect.cascade_level]} effect {level_counters[effect.cascade_level]}"

            if not effect.market_id or not effect.market_name or not effect.market_url:
                errors.append(
                    f"{label}: missing required fields (market_id, market_name, or market_url)"
                )
                continue

            event = events_by_slug.get(effect.market_id)
            if event is None:
                errors.append(
                    f'{label}: unknown market_id "{effect.market_id}" not in provided events'
                )
                continue

            if effect.market_name != event.title:
                errors.append(
                    f'{label}: market_name "{effect.market_name}" does not match '
                    f'event title "{event.title}" exactly'
                )

            expected_url = self.rules.expected_url(event.slug)
            if effect.market_url != expected_url:
                errors.append(
                    f'{label}: market_url "{effect.market_url}" does not match '
                    f'expected "{expected_url}"'
                )

        effect_ids = {e.market_id for e in draft.all_effects if e.market_id}
        cascade_ids = set(effect_ids)
        if trigger_slug:
            cascade_ids.add(trigger_slug)

        for effect in draft.all_effects:
            if effect.triggered_by is None:
                continue
            allowed = cascade_ids - {effect.market_id}
            if effect.triggered_by not in allowed:
                errors.append(
                    f'Effect "{effect.market_id}": triggered_by "{effect.triggered_by}" '
                    "is neither the trigger nor another effect in this cascade"
                )

        for i, rel in enumerate(draft.market_relationships, start=1):
            for end_name, end in (("source", rel.source_market), ("target", rel.target_market)):
                if end not in cascade_ids:
                    errors.append(
                        f'Relationship {i}: {end_name} "{end}" is not an event in this cascade'
                    )
        return errors

    def check_diversity(self, draft: CascadeDraft) -> list[str]:
        if self.tracker is None or self.tracker.should_allow_domain(draft.category):
            return []
        recent = ", ".join(d.value for d in self.tracker.recent_domains(self.tracker.window))
        return [
            f"Diversity check: {draft.category} already used in the last "
            f"{self.tracker.window} cascades (recent: {recent})"
        ]
