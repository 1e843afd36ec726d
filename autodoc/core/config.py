"""Application configuration with validation."""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every value can be overridden by an environment variable of the same
    name (case-insensitive) or by an entry in ``.env``.
    """

    # Confluence (page store)
    confluence_base_url: str = Field(
        default="https://your-domain.atlassian.net",
        description="Base URL of the Confluence instance"
    )
    confluence_email: str = Field(
        default="",
        description="Account email used for basic auth"
    )
    confluence_api_token: str = Field(
        default="",
        description="API token paired with confluence_email"
    )
    confluence_space_id: str = Field(
        default="",
        description="Space where documentation pages live"
    )
    confluence_parent_page_id: str = Field(
        default="",
        description="Parent page for newly created documentation pages (optional)"
    )

    # Git (source reader)
    git_repo_path: str = Field(
        default=".",
        description="Path to the local repository being documented"
    )
    git_main_branch: str = Field(
        default="main",
        description="Branch whose pushes trigger documentation updates"
    )
    supported_extensions: List[str] = Field(
        default=[".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".java", ".rb"],
        description="File extensions considered documentable"
    )
    excluded_dirs: List[str] = Field(
        default=["node_modules", ".git", "dist", "build", ".next", "__pycache__"],
        description="Directories never documented"
    )
    history_limit: int = Field(
        default=15,
        description="Default number of commits inspected by get-history"
    )

    # Reasoning engine
    # LiteLLM model string, e.g. "gpt-4o-mini", "openrouter/openai/gpt-4o"
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="LiteLLM model used for the documentation agent"
    )
    llm_api_key: str = Field(
        default="",
        description="API key for the reasoning engine provider"
    )
    llm_api_base: str = Field(
        default="",
        description="Base URL for the provider (optional, for custom endpoints)"
    )
    llm_temperature: float = Field(
        default=0.1,
        description="Sampling temperature for every engine round"
    )
    llm_timeout: int = Field(
        default=120,
        description="Seconds before a single engine request is abandoned"
    )
    engine_failure_threshold: int = Field(
        default=3,
        description="Consecutive engine failures that open the circuit"
    )
    engine_cooldown_seconds: float = Field(
        default=60.0,
        description="Seconds an open circuit blocks engine requests before one trial request"
    )

    # Orchestration
    max_steps: int = Field(
        default=10,
        description="Total step budget shared by the retrieval, analysis and publish phases"
    )

    # Placeholder values the engine emits instead of real identifiers.
    # Matching is exact (after stripping whitespace); see agent/repair.py.
    placeholder_page_ids: List[str] = Field(
        default=["123", "[Retrieved pageId]"],
        description="Page id stand-ins replaced by argument repair"
    )
    placeholder_titles: List[str] = Field(
        default=["", "[Retrieved title]"],
        description="Title stand-ins replaced by argument repair"
    )
    placeholder_versions: List[str] = Field(
        default=["0", "1", "[Retrieved version]"],
        description="Version stand-ins replaced by argument repair"
    )
    placeholder_commit_ids: List[str] = Field(
        default=["[commit_id]", "test_commit_id", "actual-commit_id", "[example_commit_id]"],
        description="Commit id stand-ins rejected before any git call"
    )

    # Webhook
    # HMAC secret for validating push webhook signatures.
    # Leave empty to skip verification (dev only).
    webhook_secret: str = Field(
        default="",
        description="Webhook secret for HMAC signature verification"
    )
    webhook_max_workers: int = Field(
        default=4,
        description="Concurrent update tasks started for one push event"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('max_steps')
    @classmethod
    def validate_max_steps(cls, v: int) -> int:
        """Analysis receives floor(0.2 * max_steps) rounds, zero below 5."""
        if v < 5:
            raise ValueError("MAX_STEPS must be at least 5")
        return v

    def has_confluence_credentials(self) -> bool:
        return bool(self.confluence_email and self.confluence_api_token)

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Allow reading from environment variables with different case
        case_sensitive = False


# Global settings instance
settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings
