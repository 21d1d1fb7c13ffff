"""Shared types: the provider Result and raw verdict records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Result[T, E]:
    """Outcome of a provider call: a value or an expected error.

    Transports return Result so that rate limits and API errors are values
    the backend layer inspects, not exceptions it has to anticipate. The
    backend layer turns Err into BackendInvocationError for the orchestrator.

    Usage:
        result = await adapter.complete(messages, config)
        if result.is_err:
            raise BackendInvocationError(result.error.message) from result.error
        text = result.value.content
    """

    _value: T | None
    _error: E | None
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> Result[T, E]:
        return cls(_value=value, _error=None, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> Result[T, E]:
        return cls(_value=None, _error=error, _is_ok=False)

    @property
    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def is_err(self) -> bool:
        return not self._is_ok

    @property
    def value(self) -> T:
        """The success value.

        Raises:
            ValueError: On an Err result.
        """
        if not self._is_ok:
            raise ValueError(f"Result is Err: {self._error!r}")
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> E:
        """The error value.

        Raises:
            ValueError: On an Ok result.
        """
        if self._is_ok:
            raise ValueError("Result is Ok and carries no error")
        return self._error  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Ok({self._value!r})" if self._is_ok else f"Err({self._error!r})"


RawVerdict = dict[str, Any]
"""An unvalidated evaluator record, normally ``{"vote": ..., "reasoning": ...}``."""
