"""Candidate selection and validation engine.

The end-to-end pipeline lives in ``cascade_tracker.generation.main`` and is
imported from there, since it depends on the storage layer.
"""

from .classifier import analyze_event, classify_domain, extract_keywords
from .diversity import DiversityRecord, DiversityTracker
from .exceptions import (
    CascadeRejectedError,
    ClosedEventError,
    EmptyEventPoolError,
    EventNotFoundError,
    GenerationError,
    GenerationTimeoutError,
    MalformedOutputError,
)
from .models import (
    Cascade,
    CascadeDraft,
    Domain,
    Effect,
    Event,
    EventAnalysis,
    Relationship,
    ScoredCandidate,
    ValidationResult,
)
from .orchestrator import GenerationOrchestrator, parse_cascade_output, strip_code_fences
from .relevance import RelevanceScorer
from .rules import DEFAULT_RELEVANCE_RULES, DEFAULT_VALIDATION_RULES, RelevanceRules, ValidationRules
from .validator import CascadeValidator

__all__ = [
    "analyze_event",
    "classify_domain",
    "extract_keywords",
    "DiversityRecord",
    "DiversityTracker",
    "CascadeRejectedError",
    "ClosedEventError",
    "EmptyEventPoolError",
    "EventNotFoundError",
    "GenerationError",
    "GenerationTimeoutError",
    "MalformedOutputError",
    "Cascade",
    "CascadeDraft",
    "Domain",
    "Effect",
    "Event",
    "EventAnalysis",
    "Relationship",
    "ScoredCandidate",
    "ValidationResult",
    "GenerationOrchestrator",
    "parse_cascade_output",
    "strip_code_fences",
    "RelevanceScorer",
    "DEFAULT_RELEVANCE_RULES",
    "DEFAULT_VALIDATION_RULES",
    "RelevanceRules",
    "ValidationRules",
    "CascadeValidator",
]
