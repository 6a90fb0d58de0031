"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cascade_tracker.llm_providers import AnthropicModel, OpenAIModel

logger = logging.getLogger(__name__)


class PolymarketConfig(BaseModel):
    """Gamma API connection parameters."""

    gamma_base_url: str = "https://gamma-api.polymarket.com"
    timeout_seconds: float = 10.0
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0


class SchedulerConfig(BaseModel):
    """Job scheduling intervals in minutes."""

    resolution_poll_minutes: int = 15
    generation_minutes: int = 0  # 0 disables scheduled generation
    generation_batch_size: int = 3


class GenerationConfig(BaseModel):
    """Event pool, candidate selection and text generation parameters."""

    model: AnthropicModel | OpenAIModel = AnthropicModel.CLAUDE_SONNET_4_5
    max_output_tokens: int = 16384
    timeout_seconds: float = 180.0
    prompt_pool_cap: int = 75
    effect_count: int = 5

    # Event pool discovery
    high_volume_pool_size: int = 100
    liquidity_pool_size: int = 50
    liquidity_pool_offset: int = 100
    min_markets_per_event: int = 2

    # Candidate selection after ranking
    same_domain_limit: int = 6
    related_limit: int = 8
    related_min_score: float = 25.0
    exploratory_limit: int = 4
    exploratory_min_score: float = 10.0


class DiversityConfig(BaseModel):
    """Recent-cascade history parameters."""

    max_history: int = 10
    window: int = 3
    persist_history: bool = True


class ValidationConfig(BaseModel):
    """Cascade validator behavior."""

    fail_fast: bool = True


class ResolutionConfig(BaseModel):
    """Resolution poller parameters."""

    inter_call_delay_seconds: float = 0.1
    retention_days: int = 7


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    logfire_token: str = ""
    environment: str = "development"

    # Nested configuration sections
    polymarket: PolymarketConfig = Field(default_factory=PolymarketConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    diversity: DiversityConfig = Field(default_factory=DiversityConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m cascade_tracker init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in [
                "polymarket",
                "scheduler",
                "generation",
                "diversity",
                "validation",
                "resolution",
            ]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
