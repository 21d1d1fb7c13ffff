"""Council session events."""

from workcouncil.events.base import BaseEvent
from workcouncil.events.council import (
    create_analysis_completed_event,
    create_analysis_failed_event,
    create_consensus_reached_event,
    create_session_started_event,
    create_vote_cast_event,
    create_vote_dropped_event,
)

__all__ = [
    "BaseEvent",
    "create_analysis_completed_event",
    "create_analysis_failed_event",
    "create_consensus_reached_event",
    "create_session_started_event",
    "create_vote_cast_event",
    "create_vote_dropped_event",
]
