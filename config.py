"""Configuration settings for DocForge."""

# Load .env into os.environ so LiteLLM can pick up provider keys (e.g. OPENAI_API_KEY)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Literal
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for DocForge.

    Settings can be overridden via environment variables with DOCFORGE_ prefix.
    Example: DOCFORGE_CONTEXT_LIMIT=80000
    """

    # Model config
    default_model: str = Field(
        default="gpt-4o-mini",
        description="Default LiteLLM model string for generation calls"
    )
    max_tokens_per_call: int = Field(
        default=4096,
        description="Maximum output tokens per generation call"
    )

    # Context budget
    model_context_window: int = Field(
        default=120_000,
        description="Model's hard context window; context_limit keeps headroom below it"
    )
    context_limit: int = Field(
        default=100_000,
        gt=0,
        description="Token budget below which all content fits a single generation call"
    )
    hierarchical_threshold: int = Field(
        default=250_000,
        gt=0,
        description="Token total above which hierarchical (summarize-then-detail) processing is used"
    )
    chars_per_token: int = Field(
        default=4,
        ge=1,
        description="Characters per token for the estimation heuristic"
    )
    prompt_reserve_tokens: int = Field(
        default=2000,
        ge=0,
        description="Tokens held back in every pass for framing text and model overhead"
    )
    phase1_budget_ratio: float = Field(
        default=1 / 3,
        gt=0.0,
        le=1.0,
        description="Share of context_limit available to the hierarchical grounding pass"
    )
    grounding_summary_tokens: int = Field(
        default=2000,
        ge=100,
        description="Upper bound on the grounding summary carried into detail batches"
    )
    continuity_excerpt_tokens: int = Field(
        default=500,
        ge=0,
        description="Size of the previous-pass excerpt carried into the next sequential pass"
    )
    min_batch_tokens: int = Field(
        default=1000,
        ge=1,
        description="Floor for a pass budget when instructions leave little room"
    )
    merge_strategy: Literal["generate", "concatenate"] = Field(
        default="generate",
        description="How partial outputs are combined into the final document"
    )
    max_parallel_batches: int = Field(
        default=1,
        ge=1,
        description="Worker count for hierarchical detail batches (1 = strictly sequential)"
    )

    # API settings
    api_timeout_seconds: int = Field(
        default=120,
        description="Generation call timeout in seconds"
    )
    api_num_retries: int = Field(
        default=0,
        ge=0,
        description="LiteLLM-level retries; the pipeline itself never retries"
    )

    # Data store (hosted Postgres REST API)
    supabase_url: str = Field(
        default="",
        description="Base URL of the project data store (env: DOCFORGE_SUPABASE_URL)",
    )
    supabase_key: str = Field(
        default="",
        description="Service or anon key for the data store (env: DOCFORGE_SUPABASE_KEY)",
    )
    store_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for data store reads"
    )

    # Paths / logging
    output_dir: str = Field(
        default="./outputs",
        description="Generated documents directory"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for DocForge loggers"
    )

    model_config = {
        "env_prefix": "DOCFORGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def get_output_path(self) -> Path:
        """Get output path as Path object."""
        return Path(self.output_dir)

    def get_context_config(self):
        """Return the validated ContextConfig for these settings.

        Raises:
            PlanningError: If hierarchical_threshold <= context_limit
        """
        from contracts import ContextConfig
        from context.planner import validate_context_config

        config = ContextConfig(
            context_limit=self.context_limit,
            hierarchical_threshold=self.hierarchical_threshold,
        )
        validate_context_config(config)
        return config


# Create singleton instance
settings = Settings()
