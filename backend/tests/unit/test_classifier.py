"""
Unit Tests: Event Classifier

Test cases:
- Domain by keyword count, ties broken by domain order
- Word-start matching
- Keyword extraction (length, punctuation, stopwords, order)
"""

from cascade_tracker.generation.classifier import (
    analyze_event,
    classify_domain,
    count_domain_matches,
    extract_keywords,
)
from cascade_tracker.generation.models import Domain, Event


def test_sports_title_classified_as_sports():
    assert classify_domain("Will the Lakers win the NBA Finals?") == Domain.SPORTS


def test_political_title_classified_as_political():
    assert classify_domain("Who will win the 2028 presidential election?") == Domain.POLITICAL


def test_crypto_and_economic_titles():
    assert classify_domain("Will Bitcoin reach $150k in 2025?") == Domain.CRYPTO
    assert classify_domain("Fed rate cut in December?") == Domain.ECONOMIC


def test_unmatched_or_empty_title_defaults_to_social():
    assert classify_domain("") == Domain.SOCIAL
    assert classify_domain("Will it snow tomorrow") == Domain.SOCIAL


def test_keywords_only_match_at_word_start():
    """'ai' must not match inside 'Bahrain'."""
    assert classify_domain("Bahrain Grand Prix winner") == Domain.SOCIAL


def test_keyword_inside_a_word_is_not_counted_but_prefix_is():
    assert count_domain_matches("Best Picture award")[Domain.GEOPOLITICAL] == 0
    assert count_domain_matches("Global warming record")[Domain.GEOPOLITICAL] == 1


def test_tie_goes_to_first_declared_domain():
    # one POLITICAL hit (nominee) and one ECONOMIC hit (fed)
    assert classify_domain("Fed chair nominee") == Domain.POLITICAL


def test_extract_keywords_filters_short_words_and_stopwords():
    assert extract_keywords("Will the Lakers win the NBA Finals?") == ["lakers", "finals"]


def test_extract_keywords_dedupes_in_order():
    assert extract_keywords("Finals, finals and more FINALS") == ["finals", "more"]


def test_analyze_event_combines_domain_and_keywords():
    event = Event(slug="lebron-mvp", title="Will LeBron James win MVP?")
    analysis = analyze_event(event)

    assert analysis.event == event
    assert analysis.domain == Domain.SPORTS
    assert analysis.keywords == ["lebron", "james"]
