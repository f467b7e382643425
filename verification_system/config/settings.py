"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        gemini_api_key: Google Gemini API key. When unset the scoring oracle
            is treated as unavailable and every verification falls back to
            manual review.
        gemini_model: Gemini model used for verification scoring
        oracle_timeout_seconds: Upper bound on a single oracle round trip
        oracle_max_retries: Attempts per oracle call for transient failures
        oracle_temperature: Sampling temperature for scoring prompts
        entity_store_path: JSON file backing the entity store (CLI use)
        log_store_path: JSON file backing the verification log store (CLI use)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    gemini_api_key: str | None = Field(
        default=None,
        description="Google Gemini API key (unset disables AI verification)"
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model identifier used for scoring"
    )
    oracle_timeout_seconds: float = Field(
        default=20.0,
        ge=1.0,
        le=120.0,
        description="Bounded wait for one oracle round trip"
    )
    oracle_max_retries: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts per oracle call before giving up"
    )
    oracle_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for scoring prompts"
    )
    entity_store_path: str = Field(
        default="data/entities.json",
        description="JSON persistence file for entities"
    )
    log_store_path: str = Field(
        default="data/verification_logs.json",
        description="JSON persistence file for verification logs"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def oracle_configured(self) -> bool:
        """True when an API key is present for the scoring oracle."""
        return bool(self.gemini_api_key)


# Configuration only; the oracle client itself is built by build_oracle()
settings = Settings()
