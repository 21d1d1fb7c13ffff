"""Configuration module for workcouncil.

Configuration is stored in ~/.workcouncil/config.yaml; API keys are read
from the environment (optionally populated from .env files).

Usage:
    from workcouncil.config import load_config_or_default

    config = load_config_or_default()
    threshold = config.consensus.threshold
"""

from workcouncil.config.loader import load_config, load_config_or_default, resolve_api_key
from workcouncil.config.models import (
    DEFAULT_ALLOWED_DOMAINS,
    BackendConfig,
    ConsensusSettings,
    CouncilConfig,
    SecurityConfig,
    SessionConfig,
    get_config_dir,
    get_default_config,
)

__all__ = [
    "DEFAULT_ALLOWED_DOMAINS",
    "BackendConfig",
    "ConsensusSettings",
    "CouncilConfig",
    "SecurityConfig",
    "SessionConfig",
    "get_config_dir",
    "get_default_config",
    "load_config",
    "load_config_or_default",
    "resolve_api_key",
]
