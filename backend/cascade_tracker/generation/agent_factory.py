"""Lazy construction of the pydantic-ai agent behind cascade text generation."""

import logging
import os
from typing import Callable, Generic, TypeVar

from pydantic_ai import Agent

from cascade_tracker.config import get_settings

logger = logging.getLogger(__name__)

DepsT = TypeVar("DepsT")
OutputT = TypeVar("OutputT")


class AgentFactory(Generic[DepsT, OutputT]):
    """Builds the cascade generator agent on first use and reuses it afterwards.

    Construction is deferred so importing the generation package never needs
    provider credentials.
    """

    def __init__(self, create_fn: Callable[[], Agent[DepsT, OutputT]]):
        """
        Args:
            create_fn: Builds the agent from current settings (model, system prompt)
        """
        self._create_fn = create_fn
        self._agent: Agent[DepsT, OutputT] | None = None

    def get_agent(self) -> Agent[DepsT, OutputT]:
        """Return the generator agent, exporting provider keys before the first build."""
        if self._agent is None:
            self._export_provider_keys()
            self._agent = self._create_fn()
            logger.debug(f"Created cascade generation agent ({get_settings().generation.model})")
        return self._agent

    def _export_provider_keys(self) -> None:
        """pydantic-ai providers read their keys from the environment."""
        settings = get_settings()
        if settings.anthropic_api_key:
            os.environ["ANTHROPIC_API_KEY"] = settings.anthropic_api_key
        if settings.openai_api_key:
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
