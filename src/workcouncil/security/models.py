"""Data models for the security gateway.

Classes:
    RiskLevel: Ordered risk classification of a submission
    InputValidationResult: Outcome of input validation and sanitization
    CouncilVote: A validated evaluator verdict
    TrustLevel: Taint state of a tracked value
    TaintSource: Origin of a tracked value
    ActionType: Actions the flow controller can gate
    TaintedValue: A value tracked by the information flow controller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class RiskLevel(StrEnum):
    """Risk of a submission, ordered LOW < MEDIUM < HIGH."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def escalate(self, other: RiskLevel) -> RiskLevel:
        """Return the more severe of the two levels."""
        return other if other.rank > self.rank else self

    def at_least(self, other: RiskLevel) -> bool:
        return self.rank >= other.rank


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


@dataclass(frozen=True, slots=True)
class InputValidationResult:
    """Result of validating a submission's URL and notes.

    Attributes:
        is_valid: False only when risk_level is HIGH
        threats: Descriptions of every threat found
        sanitized_input: Notes with markup and null bytes removed, truncated and trimmed
        risk_level: Maximum severity seen
    """

    is_valid: bool
    threats: tuple[str, ...]
    sanitized_input: str
    risk_level: RiskLevel


@dataclass(frozen=True, slots=True)
class CouncilVote:
    """A verdict that passed output validation.

    Attributes:
        vote: Approve (True) or reject (False)
        reasoning: Sanitized reasoning, at most 500 characters
    """

    vote: bool
    reasoning: str


class TrustLevel(StrEnum):
    UNTRUSTED = "untrusted"
    VALIDATED = "validated"
    SYSTEM = "system"


class TaintSource(StrEnum):
    """Where a tracked value came from."""

    USER_NOTES = "user_notes"
    SUBMISSION_URL = "submission_url"
    EVALUATOR_OUTPUT = "evaluator_output"
    SYSTEM = "system"


class ActionType(StrEnum):
    """Actions gated by the information flow controller."""

    VOTE = "vote"
    DATABASE_WRITE = "database_write"
    API_CALL = "api_call"
    MESSAGE_SEND = "message_send"

    @property
    def is_sensitive(self) -> bool:
        return self in (ActionType.VOTE, ActionType.DATABASE_WRITE)


@dataclass(slots=True)
class TaintedValue:
    """A value tracked by the flow controller for one session.

    Mutable only in its trust level; the controller owns every instance.

    Attributes:
        id: Identifier used when gating actions (e.g. "submission_notes")
        content: Raw, unsanitized content
        source: Origin of the content
        trust_level: Current trust state
        timestamp: When the value was first tracked
    """

    id: str
    content: str
    source: TaintSource
    trust_level: TrustLevel = TrustLevel.UNTRUSTED
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
