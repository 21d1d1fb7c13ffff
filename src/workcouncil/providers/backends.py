"""Model backends: one strategy per response mode behind a single invoke().

Backends differ in how much structure they can be asked for:

- StrictSchemaBackend requests a strict JSON schema for ``{vote, reasoning}``
- JsonModeBackend requests a JSON object and sends a single user message
  (the system prompt is folded in)
- FreeformBackend sends a plain chat completion

All three parse with parse_verdict_response, make exactly one transport call
per invocation, and raise BackendInvocationError when the transport fails.
The orchestrator only ever sees BackendRouter.invoke().

Usage:
    router = create_backend_router(config)
    raw = await router.invoke("openai", system_prompt, user_prompt)
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from workcouncil.config.loader import resolve_api_key
from workcouncil.config.models import BackendConfig, CouncilConfig
from workcouncil.core.errors import BackendInvocationError
from workcouncil.core.types import RawVerdict
from workcouncil.observability.logging import get_logger
from workcouncil.providers.anthropic_adapter import AnthropicAdapter
from workcouncil.providers.base import CompletionConfig, LLMAdapter, Message, MessageRole
from workcouncil.providers.litellm_adapter import LiteLLMAdapter
from workcouncil.providers.parsing import parse_verdict_response

log = get_logger(__name__)

COUNCIL_VOTE_SCHEMA: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "council_vote",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "vote": {"type": "boolean"},
                "reasoning": {
                    "type": "string",
                    "description": "Detailed reasoning for the vote in 2-3 sentences",
                },
            },
            "required": ["vote", "reasoning"],
            "additionalProperties": False,
        },
    },
}

JSON_OBJECT_FORMAT: dict[str, Any] = {"type": "json_object"}


class ResponseMode(StrEnum):
    STRICT_SCHEMA = "strict_schema"
    JSON_MODE = "json_mode"
    FREEFORM = "freeform"


@dataclass(frozen=True, slots=True)
class BackendSpec:
    """Static description of one backend.

    Attributes:
        backend_id: Identifier evaluators refer to (e.g. "openai")
        model: Model identifier passed to the transport
        display_name: Name reported on ballots
        temperature: Sampling temperature
        max_tokens: Maximum tokens per response
    """

    backend_id: str
    model: str
    display_name: str
    temperature: float = 0.7
    max_tokens: int = 1024

    def completion_config(self, response_format: dict[str, Any] | None = None) -> CompletionConfig:
        return CompletionConfig(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format=response_format,
        )


class ModelBackend(Protocol):
    """A backend that turns a prompt pair into a raw verdict record."""

    @property
    def spec(self) -> BackendSpec: ...

    async def invoke(self, system_prompt: str, user_prompt: str) -> RawVerdict:
        """Make one call and return the parsed, unvalidated record.

        Raises:
            BackendInvocationError: If the transport call failed.
            OutputValidationError: If no verdict could be parsed.
        """
        ...


class _AdapterBackend:
    """Shared call-and-parse path for the concrete strategies."""

    mode: ResponseMode

    def __init__(self, spec: BackendSpec, adapter: LLMAdapter) -> None:
        self._spec = spec
        self._adapter = adapter

    @property
    def spec(self) -> BackendSpec:
        return self._spec

    def _messages(self, system_prompt: str, user_prompt: str) -> list[Message]:
        return [
            Message(role=MessageRole.SYSTEM, content=system_prompt),
            Message(role=MessageRole.USER, content=user_prompt),
        ]

    def _response_format(self) -> dict[str, Any] | None:
        return None

    async def invoke(self, system_prompt: str, user_prompt: str) -> RawVerdict:
        result = await self._adapter.complete(
            self._messages(system_prompt, user_prompt),
            self._spec.completion_config(self._response_format()),
        )

        if result.is_err:
            error = result.error
            raise BackendInvocationError(
                f"Backend {self._spec.backend_id} failed: {error.message}",
                backend_id=self._spec.backend_id,
                details={"provider": error.provider, "status_code": error.status_code},
            ) from error

        return parse_verdict_response(result.value.content)


class StrictSchemaBackend(_AdapterBackend):
    mode = ResponseMode.STRICT_SCHEMA

    def _response_format(self) -> dict[str, Any] | None:
        return COUNCIL_VOTE_SCHEMA


class JsonModeBackend(_AdapterBackend):
    """Backend for APIs that take a JSON-object flag but no system role."""

    mode = ResponseMode.JSON_MODE

    def _messages(self, system_prompt: str, user_prompt: str) -> list[Message]:
        return [Message(role=MessageRole.USER, content=f"{system_prompt}\n\n{user_prompt}")]

    def _response_format(self) -> dict[str, Any] | None:
        return JSON_OBJECT_FORMAT


class FreeformBackend(_AdapterBackend):
    mode = ResponseMode.FREEFORM


_STRATEGIES: dict[ResponseMode, type[_AdapterBackend]] = {
    ResponseMode.STRICT_SCHEMA: StrictSchemaBackend,
    ResponseMode.JSON_MODE: JsonModeBackend,
    ResponseMode.FREEFORM: FreeformBackend,
}


class BackendRouter:
    """Dispatches invocations to backends by id.

    Example:
        router = BackendRouter({"openai": StrictSchemaBackend(spec, adapter)})
        raw = await router.invoke("openai", system_prompt, user_prompt)
    """

    def __init__(self, backends: Mapping[str, ModelBackend]) -> None:
        self._backends = dict(backends)

    def __contains__(self, backend_id: object) -> bool:
        return backend_id in self._backends

    @property
    def backend_ids(self) -> tuple[str, ...]:
        return tuple(self._backends)

    def display_name(self, backend_id: str) -> str:
        backend = self._backends.get(backend_id)
        return backend.spec.display_name if backend is not None else backend_id

    async def invoke(self, backend_id: str, system_prompt: str, user_prompt: str) -> RawVerdict:
        """Invoke one backend.

        Raises:
            BackendInvocationError: Unknown backend or transport failure.
            OutputValidationError: Response contained no verdict.
        """
        backend = self._backends.get(backend_id)
        if backend is None:
            raise BackendInvocationError(
                f"Unknown backend: {backend_id}",
                backend_id=backend_id,
            )

        log.debug("backend.invoke.started", backend_id=backend_id)
        raw = await backend.invoke(system_prompt, user_prompt)
        log.debug("backend.invoke.completed", backend_id=backend_id)
        return raw


AdapterFactory = Callable[[str, BackendConfig], LLMAdapter]


def default_adapter_factory(timeout: float) -> AdapterFactory:
    """Build transports from configuration, one per backend."""

    def _build(backend_id: str, backend: BackendConfig) -> LLMAdapter:
        api_key = resolve_api_key(backend_id, backend)
        if api_key is None:
            log.warning(
                "backend.credentials.missing",
                backend_id=backend_id,
                env_var=backend.api_key_env,
            )
        if backend.transport == "anthropic":
            return AnthropicAdapter(api_key=api_key, timeout=timeout)
        return LiteLLMAdapter(api_key=api_key, api_base=backend.api_base, timeout=timeout)

    return _build


def create_backend(
    backend_id: str,
    backend: BackendConfig,
    adapter: LLMAdapter,
) -> ModelBackend:
    """Wrap a transport in the strategy matching the backend's response mode."""
    spec = BackendSpec(
        backend_id=backend_id,
        model=backend.model,
        display_name=backend.display_name or backend_id,
        temperature=backend.temperature,
        max_tokens=backend.max_tokens,
    )
    return _STRATEGIES[ResponseMode(backend.kind)](spec, adapter)


def create_backend_router(
    config: CouncilConfig,
    adapter_factory: AdapterFactory | None = None,
) -> BackendRouter:
    """Build a BackendRouter with one strategy per configured backend.

    Args:
        config: Council configuration.
        adapter_factory: Builds the transport for a backend. Defaults to
            LiteLLM or Anthropic according to ``transport``.
    """
    factory = adapter_factory or default_adapter_factory(config.session.backend_timeout)
    return BackendRouter(
        {
            backend_id: create_backend(backend_id, backend, factory(backend_id, backend))
            for backend_id, backend in config.backends.items()
        }
    )
