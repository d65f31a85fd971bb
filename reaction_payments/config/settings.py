"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FAILURE_POLICIES = ("content", "rate", "none")
INJECTION_PHASES = ("before_checks", "after_checks")
BACKOFF_STRATEGIES = ("fixed", "exponential")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ledger policy
    spending_cap: int = Field(default=50, description="Maximum cumulative amount per identity")
    unit_charge: int = Field(default=10, description="Amount charged for a single reaction")

    # Retry policy (caller side)
    max_attempts: int = Field(
        default=4, description="Attempts per charge, including the first one"
    )
    backoff_strategy: str = Field(
        default="exponential", description="Backoff between attempts (fixed/exponential)"
    )
    backoff_initial_delay: float = Field(
        default=1.5, description="Delay before the first retry (seconds)"
    )
    backoff_multiplier: float = Field(
        default=1.5, description="Growth factor for exponential backoff"
    )
    backoff_max_delay: float = Field(
        default=30.0, description="Upper bound for a single backoff delay (seconds)"
    )
    overall_timeout: Optional[float] = Field(
        default=None, description="Wall-clock ceiling across all attempts (seconds)"
    )

    # Failure injection (authority side)
    failure_policy: str = Field(
        default="content", description="Failure injection policy (content/rate/none)"
    )
    failure_marker: str = Field(
        default="X", description="Subject-id suffix that triggers a simulated failure"
    )
    failure_rate_modulo: int = Field(
        default=4, description="Every Nth authorization attempt fails (rate policy)"
    )
    failure_delay: float = Field(
        default=0.0, description="Delay injected before a rate-based failure (seconds)"
    )
    failure_phase: str = Field(
        default="after_checks",
        description="Run failure injection before or after the ledger checks",
    )

    # Payment authority client
    payment_authority_url: str = Field(
        default="http://localhost:6000/api/payments",
        description="Base URL of the payment authority API",
    )
    http_timeout: float = Field(default=5.0, description="HTTP request timeout (seconds)")

    # Application Configuration
    app_name: str = Field(default="reaction-payments", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log renderer (json/console)")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    payments_port: int = Field(default=6000, description="Payment authority API port")
    reactions_port: int = Field(default=5000, description="Reactions API port")

    model_config = SettingsConfigDict(
        env_prefix="REACTION_PAYMENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("spending_cap", "unit_charge", "max_attempts", "failure_rate_modulo")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Counts and amounts must be strictly positive."""
        if v <= 0:
            raise ValueError("Value must be a positive integer")
        return v

    @field_validator("failure_policy")
    @classmethod
    def validate_failure_policy(cls, v: str) -> str:
        """Validate failure injection policy."""
        if v.lower() not in FAILURE_POLICIES:
            raise ValueError(f"Invalid failure policy. Must be one of: {list(FAILURE_POLICIES)}")
        return v.lower()

    @field_validator("failure_phase")
    @classmethod
    def validate_failure_phase(cls, v: str) -> str:
        """Validate failure injection phase."""
        if v.lower() not in INJECTION_PHASES:
            raise ValueError(f"Invalid failure phase. Must be one of: {list(INJECTION_PHASES)}")
        return v.lower()

    @field_validator("backoff_strategy")
    @classmethod
    def validate_backoff_strategy(cls, v: str) -> str:
        """Validate backoff strategy."""
        if v.lower() not in BACKOFF_STRATEGIES:
            raise ValueError(
                f"Invalid backoff strategy. Must be one of: {list(BACKOFF_STRATEGIES)}"
            )
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def max_units_per_identity(self) -> int:
        """Number of unit charges an identity can have accepted."""
        return self.spending_cap // self.unit_charge


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
