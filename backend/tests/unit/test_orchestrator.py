"""
Unit Tests: Generation Orchestrator

Test cases:
- Code-fence stripping and output parsing
- Generator timeouts and failures
- Prompt candidate cap
- Agent-backed generator built once
"""

import asyncio
from types import SimpleNamespace

import pytest

from cascade_tracker.generation.agent_factory import AgentFactory
from cascade_tracker.generation.classifier import analyze_event
from cascade_tracker.generation.exceptions import (
    GenerationError,
    GenerationTimeoutError,
    MalformedOutputError,
)
from cascade_tracker.generation.models import Domain, Event, ScoredCandidate
from cascade_tracker.generation.orchestrator import (
    AgentTextGenerator,
    GenerationOrchestrator,
    parse_cascade_output,
    strip_code_fences,
)

from factories import MVP, TRIGGER, make_draft_json

TRIGGER_ANALYSIS = analyze_event(TRIGGER)
CANDIDATES = [ScoredCandidate(event=MVP, score=55, domain=Domain.SPORTS)]


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("```\n[]\n```") == "[]"
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_accepts_category_alias_and_assigns_levels():
    draft = parse_cascade_output(make_draft_json(category="tech"))

    assert draft.category == Domain.TECHNOLOGY
    assert [e.cascade_level for e in draft.all_effects] == [1, 2]


def test_parse_rejects_non_object_and_bad_schema():
    with pytest.raises(MalformedOutputError):
        parse_cascade_output("[]")
    with pytest.raises(MalformedOutputError):
        parse_cascade_output(make_draft_json(severity=11))
    with pytest.raises(MalformedOutputError):
        parse_cascade_output("")


def test_generate_parses_fenced_output():
    captured = {}

    async def generator(prompt: str, max_tokens: int) -> str:
        captured["max_tokens"] = max_tokens
        return f"```json\n{make_draft_json()}\n```"

    async def run():
        orchestrator = GenerationOrchestrator(generator=generator, max_output_tokens=2048)
        return await orchestrator.generate(TRIGGER_ANALYSIS, CANDIDATES)

    draft = asyncio.run(run())

    assert draft.name == "Lakers title run"
    assert draft.category == Domain.SPORTS
    assert captured["max_tokens"] == 2048


def test_malformed_output_raises():
    async def generator(prompt: str, max_tokens: int) -> str:
        return "Here is your cascade: not json"

    async def run():
        await GenerationOrchestrator(generator=generator).generate(TRIGGER_ANALYSIS, CANDIDATES)

    with pytest.raises(MalformedOutputError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.raw_output == "Here is your cascade: not json"


def test_slow_generator_times_out():
    async def generator(prompt: str, max_tokens: int) -> str:
        await asyncio.sleep(5)
        return make_draft_json()

    async def run():
        orchestrator = GenerationOrchestrator(generator=generator, timeout_seconds=0.01)
        await orchestrator.generate(TRIGGER_ANALYSIS, CANDIDATES)

    with pytest.raises(GenerationTimeoutError):
        asyncio.run(run())


def test_generator_failure_wrapped():
    async def generator(prompt: str, max_tokens: int) -> str:
        raise RuntimeError("provider unavailable")

    async def run():
        await GenerationOrchestrator(generator=generator).generate(TRIGGER_ANALYSIS, CANDIDATES)

    with pytest.raises(GenerationError, match="provider unavailable"):
        asyncio.run(run())


def test_prompt_lists_at_most_pool_cap_candidates():
    prompts = []
    candidates = [
        ScoredCandidate(
            event=Event(slug=f"cand-{i}", title=f"Candidate {i}"),
            score=50 - i,
            domain=Domain.SOCIAL,
        )
        for i in range(10)
    ]

    async def generator(prompt: str, max_tokens: int) -> str:
        prompts.append(prompt)
        return make_draft_json()

    async def run():
        orchestrator = GenerationOrchestrator(generator=generator, pool_cap=3)
        await orchestrator.generate(TRIGGER_ANALYSIS, candidates, recent_domains=[Domain.CRYPTO])

    asyncio.run(run())

    prompt = prompts[0]
    assert prompt.count('"event_slug": "cand-') == 3
    assert TRIGGER.title in prompt
    assert "RECENT CASCADE DOMAINS" in prompt


def test_agent_generator_builds_agent_once():
    built = []
    calls = []

    class StubAgent:
        async def run(self, prompt, model_settings):
            calls.append(model_settings["max_tokens"])
            return SimpleNamespace(output=make_draft_json())

    def create_agent():
        built.append(1)
        return StubAgent()

    generator = AgentTextGenerator(AgentFactory(create_agent))

    async def run():
        first = await generator("prompt", 512)
        await generator("prompt", 256)
        return first

    draft = parse_cascade_output(asyncio.run(run()))

    assert draft.name == "Lakers title run"
    assert built == [1]
    assert calls == [512, 256]
