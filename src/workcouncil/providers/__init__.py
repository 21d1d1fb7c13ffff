"""Model backend adapters for workcouncil.

Transports (LiteLLMAdapter, AnthropicAdapter) make single completion calls
and return Result. Backend strategies wrap a transport, parse its output
into a raw verdict and are reached through BackendRouter.invoke().
"""

from workcouncil.providers.anthropic_adapter import AnthropicAdapter
from workcouncil.providers.backends import (
    COUNCIL_VOTE_SCHEMA,
    BackendRouter,
    BackendSpec,
    FreeformBackend,
    JsonModeBackend,
    ModelBackend,
    ResponseMode,
    StrictSchemaBackend,
    create_backend,
    create_backend_router,
)
from workcouncil.providers.base import (
    CompletionConfig,
    CompletionResponse,
    LLMAdapter,
    Message,
    MessageRole,
    UsageInfo,
)
from workcouncil.providers.litellm_adapter import LiteLLMAdapter
from workcouncil.providers.parsing import extract_json_payload, parse_verdict_response

__all__ = [
    # Transport protocol and models
    "LLMAdapter",
    "Message",
    "MessageRole",
    "CompletionConfig",
    "CompletionResponse",
    "UsageInfo",
    # Transports
    "AnthropicAdapter",
    "LiteLLMAdapter",
    # Backends
    "COUNCIL_VOTE_SCHEMA",
    "BackendRouter",
    "BackendSpec",
    "FreeformBackend",
    "JsonModeBackend",
    "ModelBackend",
    "ResponseMode",
    "StrictSchemaBackend",
    "create_backend",
    "create_backend_router",
    # Parsing
    "extract_json_payload",
    "parse_verdict_response",
]
