"""Claude transport built on the Anthropic SDK.

The SDK's retry loop is disabled (``max_retries=0``) so each complete()
call is a single Messages API request.
"""

import os
from typing import Any

import anthropic
import structlog

from workcouncil.core.errors import ProviderError
from workcouncil.core.types import Result
from workcouncil.providers.base import (
    CompletionConfig,
    CompletionResponse,
    Message,
    MessageRole,
    UsageInfo,
    clip_response,
)

log = structlog.get_logger()

_ROUTING_PREFIX = "anthropic/"


class AnthropicAdapter:
    """Transport for Claude models.

    Uses ``api_key`` or ANTHROPIC_API_KEY. Tests and embedders can hand in
    their own AsyncAnthropic-compatible ``client``.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        timeout: float = 60.0,
        client: Any | None = None,
    ) -> None:
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def _request_body(messages: list[Message], config: CompletionConfig) -> dict[str, Any]:
        """Messages API arguments; system turns move to the ``system`` field."""
        system = [m.content for m in messages if m.role == MessageRole.SYSTEM]
        turns = [m.to_dict() for m in messages if m.role != MessageRole.SYSTEM]
        body: dict[str, Any] = {
            "model": config.model.removeprefix(_ROUTING_PREFIX),
            "messages": turns or [{"role": "user", "content": "(empty)"}],
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }
        if system:
            body["system"] = "\n\n".join(system)
        return body

    async def complete(
        self,
        messages: list[Message],
        config: CompletionConfig,
    ) -> Result[CompletionResponse, ProviderError]:
        """Send one Messages API request.

        ``config.response_format`` is not forwarded. Claude backends answer
        in free text and the shared response parser extracts the verdict.
        """
        if self._client is None and not self._api_key:
            return Result.err(
                ProviderError(
                    "ANTHROPIC_API_KEY is not set",
                    provider="anthropic",
                    status_code=401,
                )
            )

        body = self._request_body(messages, config)
        model = body["model"]
        log.debug("backend.request.started", model=model, message_count=len(body["messages"]))

        try:
            response = await self.client.messages.create(**body)
        except Exception as exc:
            return Result.err(self._to_provider_error(exc, model))

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "input_tokens", 0)
        completion_tokens = getattr(usage, "output_tokens", 0)
        return Result.ok(
            CompletionResponse(
                content=clip_response(text, model),
                model=getattr(response, "model", None) or model,
                usage=UsageInfo(
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=prompt_tokens + completion_tokens,
                ),
                finish_reason=getattr(response, "stop_reason", None) or "end_turn",
            )
        )

    @staticmethod
    def _to_provider_error(exc: Exception, model: str) -> ProviderError:
        match exc:
            case anthropic.AuthenticationError():
                kind, error = "auth", ProviderError(
                    "Authentication failed - check ANTHROPIC_API_KEY",
                    provider="anthropic",
                    status_code=401,
                )
            case anthropic.RateLimitError():
                kind, error = "rate_limit", ProviderError(
                    "Rate limit exceeded", provider="anthropic", status_code=429
                )
            case anthropic.APITimeoutError() | anthropic.APIConnectionError():
                kind, error = "connection", ProviderError.from_exception(
                    exc, provider="anthropic"
                )
            case anthropic.APIError():
                kind, error = "api_error", ProviderError(
                    f"API error: {exc}",
                    provider="anthropic",
                    status_code=getattr(exc, "status_code", None),
                )
            case _:
                log.exception("backend.request.failed", model=model, kind="unexpected")
                return ProviderError(
                    f"Unexpected error: {exc}",
                    provider="anthropic",
                    details={"original_exception": type(exc).__name__},
                )

        log.warning("backend.request.failed", model=model, kind=kind, error=str(exc))
        return error
