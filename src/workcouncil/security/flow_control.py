"""Information flow control (taint tracking) for one evaluation session.

A second gate, independent of input validation: sensitive actions are
re-checked at the point of action against the raw content of every tainted
input they depend on.

The controller holds session state and must be constructed per session.
Sharing an instance between concurrent sessions would leak one submission's
taint markings into another's gating decisions.

Usage:
    flow = InformationFlowController()
    flow.mark_as_untrusted("submission_notes", notes, TaintSource.USER_NOTES)
    if flow.can_execute_action(ActionType.VOTE, ["submission_notes"]):
        ...
"""

from collections.abc import Iterable

from workcouncil.observability.logging import get_logger
from workcouncil.security.models import ActionType, TaintedValue, TaintSource, TrustLevel
from workcouncil.security.patterns import contains_high_risk_instruction

log = get_logger(__name__)


class InformationFlowController:
    """Session-scoped taint map with action gating."""

    def __init__(self) -> None:
        self._values: dict[str, TaintedValue] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, value_id: object) -> bool:
        return value_id in self._values

    def mark_as_untrusted(self, value_id: str, content: str, source: TaintSource) -> None:
        """Track ``content`` as untrusted, replacing any previous entry."""
        self._values[value_id] = TaintedValue(
            id=value_id,
            content=content,
            source=source,
            trust_level=TrustLevel.UNTRUSTED,
        )

    def mark_as_validated(self, value_id: str) -> None:
        """Promote a tracked value to validated. Unknown ids are ignored."""
        value = self._values.get(value_id)
        if value is not None:
            value.trust_level = TrustLevel.VALIDATED

    def mark_as_system(self, value_id: str, content: str) -> None:
        """Track system-originated content, which never blocks an action."""
        self._values[value_id] = TaintedValue(
            id=value_id,
            content=content,
            source=TaintSource.SYSTEM,
            trust_level=TrustLevel.SYSTEM,
        )

    def can_execute_action(self, action: ActionType | str, input_ids: Iterable[str]) -> bool:
        """Decide whether ``action`` may run given the inputs it depends on.

        Non-sensitive actions always pass. A sensitive action (vote,
        database_write) is refused when any referenced input is still
        untrusted and its raw content matches a high-risk pattern.
        Unknown ids are ignored.
        """
        action = ActionType(action)
        if not action.is_sensitive:
            return True

        for value_id in input_ids:
            value = self._values.get(value_id)
            if value is None or value.trust_level != TrustLevel.UNTRUSTED:
                continue
            if contains_high_risk_instruction(value.content):
                log.warning(
                    "security.flow.denied",
                    action=action.value,
                    input_id=value_id,
                    source=value.source.value,
                )
                return False

        return True

    def get(self, value_id: str) -> TaintedValue | None:
        return self._values.get(value_id)

    def clear(self, value_id: str) -> None:
        self._values.pop(value_id, None)

    def clear_all(self) -> None:
        self._values.clear()
