"""LiteLLM transport used for the OpenAI, Gemini and xAI backends.

One complete() call is one ``litellm.acompletion`` request with LiteLLM's
own retries switched off.
"""

from typing import Any

import litellm
import structlog

from workcouncil.core.errors import ProviderError
from workcouncil.core.types import Result
from workcouncil.providers.base import (
    CompletionConfig,
    CompletionResponse,
    Message,
    UsageInfo,
    clip_response,
)

log = structlog.get_logger()

# Checked in order; first match names the failure in logs
_FAILURE_KINDS: tuple[tuple[type[Exception], str], ...] = (
    (litellm.AuthenticationError, "auth"),
    (litellm.BadRequestError, "bad_request"),
    (litellm.RateLimitError, "transient"),
    (litellm.ServiceUnavailableError, "transient"),
    (litellm.Timeout, "transient"),
    (litellm.APIConnectionError, "transient"),
    (litellm.APIError, "api_error"),
)

_BARE_MODEL_PREFIXES = (
    (("gpt", "o1", "o3"), "openai"),
    (("claude",), "anthropic"),
    (("gemini",), "gemini"),
)


class LiteLLMAdapter:
    """Transport for every vendor LiteLLM routes to.

    Without an explicit ``api_key`` LiteLLM falls back to the vendor's usual
    environment variable, chosen from the model prefix.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._api_base = api_base
        self._timeout = timeout

    def _build_completion_kwargs(
        self,
        messages: list[Message],
        config: CompletionConfig,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": config.model,
            "messages": [message.to_dict() for message in messages],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "timeout": self._timeout,
            "num_retries": 0,
        }
        optional = {
            "response_format": config.response_format,
            "api_key": self._api_key,
            "api_base": self._api_base,
        }
        kwargs.update({key: value for key, value in optional.items() if value})
        return kwargs

    @staticmethod
    def _extract_provider(model: str) -> str:
        """Vendor name for logs and errors: ``xai/grok-2`` gives ``xai``."""
        if "/" in model:
            return model.split("/", 1)[0]
        for prefixes, provider in _BARE_MODEL_PREFIXES:
            if model.startswith(prefixes):
                return provider
        return "unknown"

    async def complete(
        self,
        messages: list[Message],
        config: CompletionConfig,
    ) -> Result[CompletionResponse, ProviderError]:
        provider = self._extract_provider(config.model)
        log.debug(
            "backend.request.started",
            model=config.model,
            message_count=len(messages),
            structured=config.response_format is not None,
        )

        try:
            response = await litellm.acompletion(
                **self._build_completion_kwargs(messages, config)
            )
        except Exception as exc:
            return Result.err(self._to_provider_error(exc, provider, config.model))

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        log.debug("backend.request.completed", model=config.model, finish=choice.finish_reason)
        return Result.ok(
            CompletionResponse(
                content=clip_response(choice.message.content or "", config.model),
                model=response.model or config.model,
                usage=UsageInfo(
                    prompt_tokens=getattr(usage, "prompt_tokens", 0),
                    completion_tokens=getattr(usage, "completion_tokens", 0),
                    total_tokens=getattr(usage, "total_tokens", 0),
                ),
                finish_reason=choice.finish_reason or "stop",
            )
        )

    @staticmethod
    def _to_provider_error(exc: Exception, provider: str, model: str) -> ProviderError:
        kind = next(
            (name for exc_type, name in _FAILURE_KINDS if isinstance(exc, exc_type)),
            None,
        )
        if kind is None:
            log.exception("backend.request.failed", model=model, kind="unexpected")
            return ProviderError(
                f"Unexpected error: {exc!s}",
                provider=provider,
                details={"original_exception": type(exc).__name__},
            )

        log.warning(
            "backend.request.failed",
            model=model,
            kind=kind,
            error_type=type(exc).__name__,
            status_code=getattr(exc, "status_code", None),
        )
        if kind == "auth":
            return ProviderError(
                "Authentication failed - check API key",
                provider=provider,
                status_code=401,
                details={"original_exception": type(exc).__name__},
            )
        return ProviderError.from_exception(exc, provider=provider)
