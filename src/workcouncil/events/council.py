"""Event factories for council sessions.

Event Types:
    council.session.started - Session passed validation and began
    council.analysis.completed - A specialised evaluator produced an analysis
    council.analysis.failed - A specialised evaluator's analysis was unavailable
    council.vote.cast - A validated vote passed the flow controller
    council.vote.dropped - A vote was omitted (backend, validation or policy)
    council.consensus.reached - Votes were tallied
"""

from typing import Any

from workcouncil.events.base import BaseEvent

_AGGREGATE_TYPE = "submission"


def create_session_started_event(
    submission_id: str,
    content_type: str,
    risk_level: str,
    panel: list[str],
    specialists: list[str],
) -> BaseEvent:
    """Create event for a session that passed validation.

    Args:
        submission_id: Submission under evaluation
        content_type: Classified content type
        risk_level: Risk level computed by input validation
        panel: Ids of every registered evaluator
        specialists: Ids of the evaluators selected for deep analysis

    Returns:
        BaseEvent for session start
    """
    return BaseEvent(
        type="council.session.started",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "content_type": content_type,
            "risk_level": risk_level,
            "panel": panel,
            "specialists": specialists,
        },
    )


def create_analysis_completed_event(
    submission_id: str,
    evaluator_id: str,
    recipients: list[str],
) -> BaseEvent:
    return BaseEvent(
        type="council.analysis.completed",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "evaluator_id": evaluator_id,
            "recipients": recipients,
        },
    )


def create_analysis_failed_event(
    submission_id: str,
    evaluator_id: str,
    reason: str,
) -> BaseEvent:
    return BaseEvent(
        type="council.analysis.failed",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "evaluator_id": evaluator_id,
            "reason": reason,
        },
    )


def create_vote_cast_event(
    submission_id: str,
    evaluator_id: str,
    vote: bool,
    backend: str,
) -> BaseEvent:
    return BaseEvent(
        type="council.vote.cast",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "evaluator_id": evaluator_id,
            "vote": vote,
            "backend": backend,
        },
    )


def create_vote_dropped_event(
    submission_id: str,
    evaluator_id: str,
    reason: str,
    error_type: str,
) -> BaseEvent:
    """Create event for a vote omitted from the tally.

    Args:
        submission_id: Submission under evaluation
        evaluator_id: Evaluator whose vote was dropped
        reason: Human-readable reason
        error_type: Class name of the error that caused the drop

    Returns:
        BaseEvent for the dropped vote
    """
    return BaseEvent(
        type="council.vote.dropped",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "evaluator_id": evaluator_id,
            "reason": reason,
            "error_type": error_type,
        },
    )


def create_consensus_reached_event(
    submission_id: str,
    approved: bool,
    approval_rate: float,
    votes_cast: int,
    panel_size: int,
    votes: list[dict[str, Any]],
) -> BaseEvent:
    return BaseEvent(
        type="council.consensus.reached",
        aggregate_type=_AGGREGATE_TYPE,
        aggregate_id=submission_id,
        data={
            "approved": approved,
            "approval_rate": approval_rate,
            "votes_cast": votes_cast,
            "panel_size": panel_size,
            "votes": votes,
        },
    )
