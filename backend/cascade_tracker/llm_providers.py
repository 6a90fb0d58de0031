"""LLM model enums for cascade text generation.

Keeps model identifiers in one place so the generator can be switched
between providers from configuration.
"""

from enum import StrEnum


class OpenAIModel(StrEnum):
    """OpenAI models available via API."""

    GPT_5 = "gpt-5"
    GPT_5_MINI = "gpt-5-mini"


class AnthropicModel(StrEnum):
    """Anthropic Claude models available via API."""

    CLAUDE_OPUS_4_5 = "claude-opus-4-5"
    CLAUDE_SONNET_4_5 = "claude-sonnet-4-5"
    CLAUDE_HAIKU_4_5 = "claude-haiku-4-5"


def get_model_string(model: OpenAIModel | AnthropicModel) -> str:
    """Get the pydantic-ai model string for a supported model."""
    if isinstance(model, OpenAIModel):
        return f"openai-responses:{model.value}"
    elif isinstance(model, AnthropicModel):
        return f"anthropic:{model.value}"
    raise ValueError(f"Unknown model type: {type(model)}")
