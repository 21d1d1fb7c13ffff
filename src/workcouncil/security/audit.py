"""Security audit events.

Security-relevant outcomes (rejected submissions, blocked votes, filtered
evaluator output) are reported as structured SecurityEvents to an injected
AuditSink. Delivery is fire-and-forget: a failing sink is logged and never
affects the session that emitted the event.

Usage:
    sink = InMemoryAuditSink()
    emit_security_event(
        sink,
        SecurityEventType.INJECTION_ATTEMPT,
        submission_id="sub-1",
        threats=["Potential prompt injection detected: you\\s+are\\s+now"],
        input=raw_notes,
    )
"""

from datetime import UTC, datetime
from enum import StrEnum
import json
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator

from workcouncil.core.redaction import AUDIT_SNIPPET_LENGTH, truncate_snippet
from workcouncil.observability.logging import get_logger

log = get_logger(__name__)


class SecurityEventType(StrEnum):
    INJECTION_ATTEMPT = "injection_attempt"
    VALIDATION_FAILURE = "validation_failure"
    OUTPUT_ANOMALY = "output_anomaly"
    FLOW_CONTROL_DENIED = "flow_control_denied"


class SecurityEvent(BaseModel, frozen=True):
    """A structured security audit record.

    Attributes:
        event_type: Kind of security outcome
        timestamp: When the event was created (UTC)
        submission_id: Submission the event concerns, if known
        threats: Threat descriptions
        input: Offending input, truncated
        output: Offending output serialized to text, truncated
    """

    event_type: SecurityEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    submission_id: str | None = None
    threats: tuple[str, ...] = ()
    input: str | None = None
    output: str | None = None

    @field_validator("input", "output", mode="before")
    @classmethod
    def truncate(cls, v: Any) -> str | None:
        """Serialize non-string payloads and cut to the audit snippet length."""
        if v is None:
            return None
        if not isinstance(v, str):
            v = json.dumps(v, default=str)
        return truncate_snippet(v, AUDIT_SNIPPET_LENGTH)


@runtime_checkable
class AuditSink(Protocol):
    """Receiver for security events."""

    def record(self, event: SecurityEvent) -> None: ...


class LoggingAuditSink:
    """Default sink: writes every event as a structlog warning."""

    def record(self, event: SecurityEvent) -> None:
        log.warning(
            f"security.{event.event_type.value}",
            submission_id=event.submission_id,
            threats=list(event.threats),
            input=event.input,
            output=event.output,
            event_timestamp=event.timestamp.isoformat(),
        )


class InMemoryAuditSink:
    """Sink that keeps events in memory, for tests and callers that batch."""

    def __init__(self) -> None:
        self.events: list[SecurityEvent] = []

    def record(self, event: SecurityEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: SecurityEventType) -> list[SecurityEvent]:
        return [e for e in self.events if e.event_type == event_type]


def emit_security_event(
    sink: AuditSink | None,
    event_type: SecurityEventType,
    *,
    submission_id: str | None = None,
    threats: list[str] | tuple[str, ...] = (),
    input: str | None = None,
    output: Any = None,
) -> SecurityEvent:
    """Build a SecurityEvent and deliver it to ``sink``.

    Sink failures are logged and swallowed. With no sink, the event is
    still built and returned but not delivered anywhere.

    Returns:
        The event that was emitted.
    """
    event = SecurityEvent(
        event_type=event_type,
        submission_id=submission_id,
        threats=tuple(threats),
        input=input,
        output=output,
    )

    if sink is None:
        return event

    try:
        sink.record(event)
    except Exception as e:
        log.error(
            "security.audit.delivery_failed",
            event_type=event_type.value,
            error=str(e),
            error_type=type(e).__name__,
        )

    return event
