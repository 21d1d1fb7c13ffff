"""Exceptions raised and returned by workcouncil.

Only SecurityValidationFailed escapes a council session. Every other error
is either carried in a Result (ProviderError) or absorbed by the
orchestrator, which degrades it into one evaluator contributing nothing.

    CouncilError
    ├── ProviderError             transport failure inside a Result
    ├── BackendInvocationError    one backend call failed or ran out of time
    ├── ConfigError               bad configuration or missing credentials
    ├── ValidationError           data that does not fit its schema
    │   └── OutputValidationError evaluator output that is not a usable vote
    ├── FlowControlDenied         tainted data reaching a sensitive action
    └── SecurityValidationFailed  submission rejected before evaluation
"""

from __future__ import annotations

from typing import Any

from workcouncil.core.redaction import REDACTED, is_sensitive_field, is_sensitive_value

_PREVIEW_LENGTH = 20
_MAX_INLINE_LENGTH = 50


class CouncilError(Exception):
    """Root of the workcouncil exception tree.

    Attributes:
        message: What went wrong.
        details: Structured context for logs; never holds secrets.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} (details: {self.details})"


class ProviderError(CouncilError):
    """A completion request to a model vendor did not succeed.

    Attributes:
        provider: Vendor name, e.g. "anthropic".
        status_code: HTTP status reported by the vendor SDK, when there is one.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.provider = provider
        self.status_code = status_code

    @classmethod
    def from_exception(cls, exc: Exception, *, provider: str | None = None) -> ProviderError:
        """Wrap a vendor SDK exception, chaining it as ``__cause__``."""
        wrapped = cls(
            str(exc),
            provider=provider,
            status_code=getattr(exc, "status_code", None),
            details={"original_exception": type(exc).__name__},
        )
        wrapped.__cause__ = exc
        return wrapped


class BackendInvocationError(CouncilError):
    """An evaluator's backend call produced nothing usable.

    Attributes:
        backend_id: Backend that was called.
        timed_out: Set when the per-call or session deadline expired.
    """

    def __init__(
        self,
        message: str,
        *,
        backend_id: str | None = None,
        timed_out: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.backend_id = backend_id
        self.timed_out = timed_out


class ConfigError(CouncilError):
    """Configuration could not be read, parsed or satisfied.

    Attributes:
        config_key: Dotted path of the offending key.
        config_file: File being loaded, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class ValidationError(CouncilError):
    """A value failed validation.

    ``value`` may be untrusted or secret. Log ``safe_value`` instead.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value

    @property
    def safe_value(self) -> str:
        """``value`` rendered for a log line: redacted, shortened or typed."""
        value = self.value
        if value is None:
            return "<None>"
        if (self.field and is_sensitive_field(self.field)) or is_sensitive_value(value):
            return REDACTED
        if isinstance(value, str):
            if len(value) > _MAX_INLINE_LENGTH:
                return f"{value[:_PREVIEW_LENGTH]}...({len(value)} chars)"
            return repr(value)
        if isinstance(value, bool | int | float):
            return repr(value)
        return f"<{type(value).__name__}>"

    def __str__(self) -> str:
        text = self.message
        if self.field:
            text += f" (field: {self.field}, value: {self.safe_value})"
        if self.details:
            text += f" (details: {self.details})"
        return text


class OutputValidationError(ValidationError):
    """Evaluator output that cannot be counted as a vote."""


class FlowControlDenied(CouncilError):
    """Tainted input was about to influence a sensitive action.

    Attributes:
        action: The guarded action, e.g. "vote".
        input_ids: Tainted inputs that were checked.
    """

    def __init__(
        self,
        message: str,
        *,
        action: str,
        input_ids: tuple[str, ...] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.action = action
        self.input_ids = input_ids


class SecurityValidationFailed(CouncilError):
    """The submission was refused before any backend was contacted.

    Attributes:
        submission_id: Rejected submission.
        risk_level: Risk level that triggered the abort.
        threats: Threat descriptions, in detection order.
    """

    def __init__(
        self,
        message: str,
        *,
        submission_id: str | None = None,
        risk_level: str = "high",
        threats: tuple[str, ...] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.submission_id = submission_id
        self.risk_level = risk_level
        self.threats = threats
