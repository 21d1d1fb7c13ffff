"""Majority tally over cast votes.

The approval rate is computed over votes actually cast, never over the
registered panel, so dropped votes shrink the denominator. The threshold is
inclusive: with the default 0.5 an exact tie approves.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from workcouncil.evaluation.models import Vote

DEFAULT_APPROVAL_THRESHOLD = 0.5


@dataclass(frozen=True, slots=True)
class Tally:
    """Aggregate of a set of votes.

    Attributes:
        approved: approval_rate >= threshold and quorum met
        approval_count: Votes in favour
        rejection_count: Votes against
        approval_rate: approval_count / votes cast (0.0 when none were cast)
    """

    approved: bool
    approval_count: int
    rejection_count: int
    approval_rate: float

    @property
    def votes_cast(self) -> int:
        return self.approval_count + self.rejection_count


def tally_votes(
    votes: Sequence[Vote],
    *,
    threshold: float = DEFAULT_APPROVAL_THRESHOLD,
    quorum: int = 0,
) -> Tally:
    """Tally votes into a majority decision.

    Zero votes always yields approval_rate 0.0 and approved False.

    Args:
        votes: Counted ballots
        threshold: Inclusive approval threshold
        quorum: Minimum votes cast for approval (0 disables the check)

    Returns:
        Tally for the given votes
    """
    approval_count = sum(1 for v in votes if v.vote)
    rejection_count = len(votes) - approval_count

    if not votes:
        return Tally(approved=False, approval_count=0, rejection_count=0, approval_rate=0.0)

    approval_rate = approval_count / len(votes)
    approved = approval_rate >= threshold and len(votes) >= quorum

    return Tally(
        approved=approved,
        approval_count=approval_count,
        rejection_count=rejection_count,
        approval_rate=approval_rate,
    )
