"""workcouncil core module - shared types, errors, and redaction helpers."""

from workcouncil.core.errors import (
    BackendInvocationError,
    ConfigError,
    CouncilError,
    FlowControlDenied,
    OutputValidationError,
    ProviderError,
    SecurityValidationFailed,
    ValidationError,
)
from workcouncil.core.redaction import (
    mask_api_key,
    redact_mapping,
    truncate_snippet,
)
from workcouncil.core.types import RawVerdict, Result

__all__ = [
    # Types
    "Result",
    "RawVerdict",
    # Errors
    "CouncilError",
    "ProviderError",
    "BackendInvocationError",
    "ConfigError",
    "ValidationError",
    "OutputValidationError",
    "FlowControlDenied",
    "SecurityValidationFailed",
    # Redaction
    "mask_api_key",
    "redact_mapping",
    "truncate_snippet",
]
