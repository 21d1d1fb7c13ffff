"""Pydantic models for workcouncil configuration.

This module defines the configuration schema using Pydantic v2.
All configuration validation happens through these models.

Classes:
    BackendConfig: A single model backend (transport, response mode, model)
    SecurityConfig: Security gateway thresholds and allow-list
    ConsensusSettings: Majority threshold and quorum
    SessionConfig: Timeouts and retry attempts for one evaluation session
    CouncilConfig: Top-level configuration combining all sections
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from workcouncil.observability.logging import LoggingConfig

DEFAULT_ALLOWED_DOMAINS: tuple[str, ...] = (
    "github.com",
    "twitter.com",
    "x.com",
    "youtube.com",
    "youtu.be",
)


class BackendConfig(BaseModel, frozen=True):
    """Configuration for a single model backend.

    Attributes:
        kind: Response mode the backend supports (strict_schema, json_mode, freeform)
        transport: Client used for the outbound call (litellm or anthropic)
        model: Model identifier passed to the transport
        display_name: Human-readable name reported on ballots
        api_key_env: Environment variable holding the API key
        api_base: Optional custom endpoint
        temperature: Sampling temperature
        max_tokens: Maximum tokens per response
    """

    kind: Literal["strict_schema", "json_mode", "freeform"] = "freeform"
    transport: Literal["litellm", "anthropic"] = "litellm"
    model: str = Field(min_length=1)
    display_name: str | None = None
    api_key_env: str | None = None
    api_base: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=1)


class SecurityConfig(BaseModel, frozen=True):
    """Security gateway configuration.

    Attributes:
        allowed_domains: Hosts (and their subdomains) accepted for submission URLs
        max_notes_length: Notes beyond this length are flagged and truncated
        special_char_ratio: Ratio of special characters above which notes are flagged
        base64_min_length: Minimum length of a base64-like run to flag
        max_reasoning_length: Upper bound on accepted evaluator reasoning
        abort_risk_level: Pre-validation risk at or above which a session aborts
    """

    allowed_domains: tuple[str, ...] = DEFAULT_ALLOWED_DOMAINS
    max_notes_length: int = Field(default=2000, ge=1)
    special_char_ratio: float = Field(default=0.3, ge=0.0, le=1.0)
    base64_min_length: int = Field(default=40, ge=4)
    max_reasoning_length: int = Field(default=500, ge=4)
    abort_risk_level: Literal["low", "medium", "high"] = "high"

    @field_validator("allowed_domains")
    @classmethod
    def normalize_domains(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Lower-case domains and drop surrounding dots and whitespace."""
        return tuple(d.strip().strip(".").lower() for d in v if d.strip())


class ConsensusSettings(BaseModel, frozen=True):
    """Consensus configuration.

    Attributes:
        threshold: Approval rate at or above which a submission is approved
        quorum: Minimum number of votes cast for approval (0 disables the check)
    """

    threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    quorum: int = Field(default=0, ge=0)


class SessionConfig(BaseModel, frozen=True):
    """Evaluation session configuration.

    Attributes:
        backend_timeout: Seconds allowed for a single backend invocation
        session_timeout: Seconds allowed for the whole session after validation
        backend_attempts: Attempts per backend invocation (1 disables retry)
    """

    backend_timeout: float = Field(default=60.0, gt=0)
    session_timeout: float = Field(default=180.0, gt=0)
    backend_attempts: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def validate_timeouts(self) -> "SessionConfig":
        """Validate that a single call fits inside the session deadline."""
        if self.backend_timeout > self.session_timeout:
            msg = (
                f"backend_timeout ({self.backend_timeout}) must be <= "
                f"session_timeout ({self.session_timeout})"
            )
            raise ValueError(msg)
        return self


def _default_backends() -> dict[str, BackendConfig]:
    return {
        "openai": BackendConfig(
            kind="strict_schema",
            model="gpt-4o",
            display_name="OpenAI GPT-4o",
            api_key_env="OPENAI_API_KEY",
        ),
        "anthropic": BackendConfig(
            kind="freeform",
            transport="anthropic",
            model="claude-opus-4-20250514",
            display_name="Anthropic Claude Opus 4",
            api_key_env="ANTHROPIC_API_KEY",
            max_tokens=4096,
        ),
        "google": BackendConfig(
            kind="json_mode",
            model="gemini/gemini-2.5-flash",
            display_name="Google Gemini 2.5 Flash",
            api_key_env="GEMINI_API_KEY",
        ),
        "xai": BackendConfig(
            kind="freeform",
            model="xai/grok-2-1212",
            display_name="xAI Grok 2",
            api_key_env="XAI_API_KEY",
            temperature=0.9,
        ),
    }


class CouncilConfig(BaseModel, frozen=True):
    """Top-level workcouncil configuration.

    Validates against config.yaml in ~/.workcouncil/.

    Attributes:
        backends: Model backends keyed by backend id
        security: Security gateway configuration
        consensus: Consensus configuration
        session: Session timeouts and retry
        logging: Logging configuration
    """

    backends: dict[str, BackendConfig] = Field(default_factory=_default_backends)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    consensus: ConsensusSettings = Field(default_factory=ConsensusSettings)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config() -> CouncilConfig:
    """Get the default workcouncil configuration.

    Returns:
        CouncilConfig with all default values populated.
    """
    return CouncilConfig()


def get_config_dir() -> Path:
    """Get the workcouncil configuration directory path.

    Returns:
        Path to ~/.workcouncil/
    """
    return Path.home() / ".workcouncil"
