"""Data models for council evaluation sessions.

All models are frozen dataclasses with slots. Instances live for a single
evaluate() call; nothing here is shared between sessions.

Classes:
    SessionStage: Orchestrator state
    SubmissionRequest: Untrusted input to a session
    AnalysisRecord: Deep-analysis output shared with the rest of the panel
    Vote: A counted ballot
    SecurityAnalysis: Summary of pre-evaluation validation
    ConsensusResult: Complete session output
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from workcouncil.evaluation.classifier import ContentType
from workcouncil.events.base import BaseEvent
from workcouncil.security.models import RiskLevel

ANALYSIS_UNAVAILABLE = "Analysis unavailable"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionStage(StrEnum):
    """States of one evaluation session."""

    VALIDATING = "validating"
    CLASSIFYING = "classifying"
    DEEP_ANALYSIS = "deep_analysis"
    VOTING = "voting"
    CONSENSUS = "consensus"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class SubmissionRequest:
    """A submission to evaluate.

    Attributes:
        submission_id: Caller-assigned identifier
        url: Submission URL (untrusted)
        notes: Free-text notes (untrusted)
    """

    submission_id: str
    url: str
    notes: str = ""


@dataclass(frozen=True, slots=True)
class AnalysisRecord:
    """One specialised evaluator's deep analysis.

    Attributes:
        evaluator_id: Evaluator that produced the analysis
        evaluator_name: Display name of that evaluator
        content_type: Content type the analysis was produced for
        summary: Analysis text, or ANALYSIS_UNAVAILABLE
        available: False when the analysis failed
        recipients: Ids of the evaluators it was broadcast to
        timestamp: When the analysis completed
    """

    evaluator_id: str
    evaluator_name: str
    content_type: ContentType
    summary: str
    available: bool = True
    recipients: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def unavailable(
        cls,
        evaluator_id: str,
        evaluator_name: str,
        content_type: ContentType,
    ) -> "AnalysisRecord":
        return cls(
            evaluator_id=evaluator_id,
            evaluator_name=evaluator_name,
            content_type=content_type,
            summary=ANALYSIS_UNAVAILABLE,
            available=False,
        )


@dataclass(frozen=True, slots=True)
class Vote:
    """A ballot that passed output validation and the flow controller.

    Attributes:
        evaluator_id: Evaluator that cast the vote
        evaluator_name: Display name of that evaluator
        vote: Approve (True) or reject (False)
        reasoning: Sanitized reasoning, at most 500 characters
        backend: Display name of the backend that produced it
        timestamp: When the vote was accepted
    """

    evaluator_id: str
    evaluator_name: str
    vote: bool
    reasoning: str
    backend: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class SecurityAnalysis:
    risk_level: RiskLevel
    threats: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ConsensusResult:
    """Complete output of one evaluation session.

    ``panel_size`` is the number of registered evaluators; comparing it to
    ``votes_cast`` shows how degraded the quorum was.

    Attributes:
        submission_id: Submission that was evaluated
        url: Submission URL
        content_type: Classified content type
        approved: Final decision
        approval_count: Votes in favour
        rejection_count: Votes against
        approval_rate: approval_count / votes cast, 0.0 with no votes
        votes: Counted ballots
        communications: Broadcast analysis records
        security_analysis: Pre-evaluation validation summary
        panel_size: Number of registered evaluators
        events: Session events, in emission order
    """

    submission_id: str
    url: str
    content_type: ContentType
    approved: bool
    approval_count: int
    rejection_count: int
    approval_rate: float
    votes: tuple[Vote, ...]
    communications: tuple[AnalysisRecord, ...]
    security_analysis: SecurityAnalysis
    panel_size: int
    events: tuple[BaseEvent, ...] = ()

    @property
    def votes_cast(self) -> int:
        return len(self.votes)

    @property
    def is_degraded(self) -> bool:
        """True when fewer votes were counted than evaluators registered."""
        return self.votes_cast < self.panel_size

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain types for the caller's persistence layer."""
        return {
            "submission_id": self.submission_id,
            "url": self.url,
            "content_type": self.content_type.value,
            "consensus": {
                "approved": self.approved,
                "approval_count": self.approval_count,
                "rejection_count": self.rejection_count,
                "approval_rate": self.approval_rate,
            },
            "votes": [
                {
                    "evaluator_id": v.evaluator_id,
                    "evaluator_name": v.evaluator_name,
                    "vote": v.vote,
                    "reasoning": v.reasoning,
                    "backend": v.backend,
                    "timestamp": v.timestamp.isoformat(),
                }
                for v in self.votes
            ],
            "communications": [
                {
                    "from": r.evaluator_id,
                    "to": list(r.recipients),
                    "content_type": r.content_type.value,
                    "summary": r.summary,
                    "timestamp": r.timestamp.isoformat(),
                }
                for r in self.communications
            ],
            "security_analysis": {
                "risk_level": self.security_analysis.risk_level.value,
                "threats": list(self.security_analysis.threats),
            },
            "panel_size": self.panel_size,
        }
