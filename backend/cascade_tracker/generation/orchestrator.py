"""Generation orchestrator: prompt -> external text generator -> parsed draft."""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable

from pydantic import ValidationError
from pydantic_ai import Agent

from cascade_tracker.config import Settings, get_settings
from cascade_tracker.llm_providers import get_model_string

from .agent_factory import AgentFactory
from .exceptions import GenerationError, GenerationTimeoutError, MalformedOutputError
from .models import CascadeDraft, Domain, EventAnalysis, ScoredCandidate
from .prompts import build_cascade_prompt
from .rules import DEFAULT_VALIDATION_RULES, ValidationRules

logger = logging.getLogger(__name__)

# (prompt, max_output_tokens) -> raw text
TextGenerator = Callable[[str, int], Awaitable[str]]

CASCADE_SYSTEM_PROMPT = (
    "You design causal cascades across real prediction-market events. "
    "You only reference events you are given, copy their titles and URLs "
    "verbatim, and reply with a single JSON object."
)

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def _create_cascade_agent() -> Agent[None, str]:
    """Create the cascade generation agent (called lazily to avoid loading API keys at import time)."""
    settings = get_settings()
    return Agent(
        model=get_model_string(settings.generation.model),
        output_type=str,
        system_prompt=CASCADE_SYSTEM_PROMPT,
    )


_cascade_agent_factory: AgentFactory[None, str] = AgentFactory(_create_cascade_agent)


class AgentTextGenerator:
    """Text generator backed by a pydantic-ai agent."""

    def __init__(self, factory: AgentFactory[None, str] | None = None):
        self.factory = factory or _cascade_agent_factory

    async def __call__(self, prompt: str, max_output_tokens: int) -> str:
        agent = self.factory.get_agent()
        result = await agent.run(prompt, model_settings={"max_tokens": max_output_tokens})
        return result.output


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```/```json fence, if any."""
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def parse_cascade_output(raw: str) -> CascadeDraft:
    """Parse raw generator text into a draft. Any failure is a MalformedOutputError."""
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        raise MalformedOutputError("Generator returned empty output", raw_output=raw)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Generator output is not valid JSON: {e}", raw_output=raw) from e

    if not isinstance(data, dict):
        raise MalformedOutputError(
            f"Expected a JSON object, got {type(data).__name__}", raw_output=raw
        )

    try:
        return CascadeDraft.model_validate(data)
    except ValidationError as e:
        raise MalformedOutputError(
            f"Generator output does not match cascade schema: {e.error_count()} error(s)",
            raw_output=raw,
        ) from e


class GenerationOrchestrator:
    """Builds the prompt, calls the generator once and parses the result.

    Retries are the caller's decision; a failed attempt raises and persists nothing.
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        max_output_tokens: int = 16384,
        timeout_seconds: float | None = 180.0,
        pool_cap: int = 75,
        rules: ValidationRules = DEFAULT_VALIDATION_RULES,
    ):
        self.generator = generator or AgentTextGenerator()
        self.max_output_tokens = max_output_tokens
        self.timeout_seconds = timeout_seconds
        self.pool_cap = pool_cap
        self.rules = rules

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        generator: TextGenerator | None = None,
        rules: ValidationRules = DEFAULT_VALIDATION_RULES,
    ) -> "GenerationOrchestrator":
        config = settings.generation
        return cls(
            generator=generator,
            max_output_tokens=config.max_output_tokens,
            timeout_seconds=config.timeout_seconds,
            pool_cap=config.prompt_pool_cap,
            rules=rules,
        )

    async def generate(
        self,
        trigger: EventAnalysis,
        candidates: list[ScoredCandidate],
        effect_count: int = 5,
        recent_domains: list[Domain] | None = None,
    ) -> CascadeDraft:
        prompt = build_cascade_prompt(
            trigger,
            candidates,
            effect_count=effect_count,
            pool_cap=self.pool_cap,
            recent_domains=recent_domains,
            rules=self.rules,
        )
        logger.info(
            f"Requesting cascade for '{trigger.event.title}' "
            f"({min(len(candidates), self.pool_cap)} candidates, {len(prompt)} prompt chars)"
        )

        try:
            raw = await asyncio.wait_for(
                self.generator(prompt, self.max_output_tokens),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(
                f"Text generation exceeded {self.timeout_seconds}s"
            ) from e
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Text generation failed: {e}") from e

        try:
            return parse_cascade_output(raw)
        except MalformedOutputError:
            logger.error(f"Malformed generator output: {(raw or '')[:500]}")
            raise
