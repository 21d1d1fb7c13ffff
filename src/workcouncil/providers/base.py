"""Provider transport contract.

A transport turns a list of chat messages into one completion from one
vendor. Failures a caller should expect (auth, rate limits, outages) come
back as ``Result.err(ProviderError)``. Transports make exactly one outbound
request per call; whether to try again is the orchestrator's decision.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

import structlog

from workcouncil.core.errors import ProviderError
from workcouncil.core.redaction import MAX_LLM_RESPONSE_LENGTH
from workcouncil.core.types import Result

log = structlog.get_logger()


class MessageRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True, slots=True)
class CompletionConfig:
    """Settings for a single completion.

    Attributes:
        model: Vendor model name, optionally routed (``xai/grok-2-1212``).
        temperature: Sampling temperature.
        max_tokens: Generation cap.
        response_format: JSON schema or ``{"type": "json_object"}`` asking
            the vendor for structured output. None means free text.
    """

    model: str
    temperature: float = 0.7
    max_tokens: int = 1024
    response_format: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class UsageInfo:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True, slots=True)
class CompletionResponse:
    content: str
    model: str
    usage: UsageInfo = field(default_factory=lambda: UsageInfo(0, 0, 0))
    finish_reason: str = "stop"


def clip_response(content: str, model: str) -> str:
    """Cap vendor output at MAX_LLM_RESPONSE_LENGTH characters."""
    if len(content) <= MAX_LLM_RESPONSE_LENGTH:
        return content
    log.warning(
        "backend.response.truncated",
        model=model,
        original_length=len(content),
        max_length=MAX_LLM_RESPONSE_LENGTH,
    )
    return content[:MAX_LLM_RESPONSE_LENGTH]


class LLMAdapter(Protocol):
    """Anything that can send one chat completion.

    Example:
        adapter: LLMAdapter = LiteLLMAdapter(api_key=key)
        result = await adapter.complete(messages, CompletionConfig(model="gpt-4o"))
        if result.is_err:
            raise BackendInvocationError(result.error.message)
    """

    async def complete(
        self,
        messages: list[Message],
        config: CompletionConfig,
    ) -> Result[CompletionResponse, ProviderError]:
        """Send the request. Only bugs and cancellation raise."""
        ...
