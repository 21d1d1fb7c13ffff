"""Audit event model.

Every decision a council session takes is recorded as a BaseEvent. Events
never change once created, use dotted past-tense names, and are handed back
on the ConsensusResult; storing them is up to the caller.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class BaseEvent(BaseModel, frozen=True):
    """One audit record.

    ``aggregate_id`` is the submission id for council events, so a caller
    can group a session's trail without parsing payloads.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    aggregate_type: str
    aggregate_id: str
    data: dict[str, Any] = Field(default_factory=dict)

    def to_db_dict(self) -> dict[str, Any]:
        """Flatten into the column layout of an append-only events table."""
        return {
            "id": self.id,
            "event_type": self.type,
            "timestamp": self.timestamp,
            "aggregate_type": self.aggregate_type,
            "aggregate_id": self.aggregate_id,
            "payload": self.data,
        }
