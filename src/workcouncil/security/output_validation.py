"""Output validation for evaluator verdicts.

Turns a raw backend record into a CouncilVote, or raises
OutputValidationError. Never returns partially validated data.
"""

from collections.abc import Mapping
from typing import Any

from workcouncil.core.errors import OutputValidationError
from workcouncil.observability.logging import get_logger
from workcouncil.security.audit import AuditSink, SecurityEventType, emit_security_event
from workcouncil.security.models import CouncilVote
from workcouncil.security.patterns import CONTROL_CHAR_PATTERN, OUTPUT_PATTERNS

log = get_logger(__name__)

FILTERED_MARKER = "[FILTERED]"
TRUNCATION_SUFFIX = "..."

_TRUE_STRINGS = frozenset({"true"})
_FALSE_STRINGS = frozenset({"false"})


def coerce_verdict(value: Any) -> bool:
    """Coerce a boolean-ish verdict encoding into a bool.

    Accepts booleans, the strings "true"/"false" (case-insensitive, trimmed)
    and the numbers 1/0 (JSON may encode them as 1.0/0.0).

    Raises:
        OutputValidationError: For any other value.
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    elif isinstance(value, int | float) and value in (0, 1):
        return value == 1

    raise OutputValidationError(
        "Vote must be a boolean",
        field="vote",
        value=value,
    )


def sanitize_reasoning(reasoning: str, max_length: int = 500) -> tuple[str, list[str]]:
    """Redact dangerous patterns, bound the length and strip control characters.

    Returns:
        Tuple of (sanitized reasoning, sources of the patterns that matched).
    """
    matched: list[str] = []
    for pattern in OUTPUT_PATTERNS:
        if pattern.search(reasoning):
            matched.append(pattern.pattern)
            reasoning = pattern.sub(FILTERED_MARKER, reasoning)

    if len(reasoning) > max_length:
        reasoning = reasoning[: max_length - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX

    reasoning = CONTROL_CHAR_PATTERN.sub("", reasoning)
    return reasoning.strip(), matched


def validate_council_output(
    raw: Any,
    *,
    audit: AuditSink | None = None,
    submission_id: str | None = None,
    max_reasoning_length: int = 500,
) -> CouncilVote:
    """Validate a raw evaluator record into a CouncilVote.

    The verdict is read from ``vote``, or ``verdict`` when ``vote`` is
    absent. Dangerous markup and injection phrases in the reasoning are
    redacted rather than rejected, and reported as an output_anomaly event.

    Args:
        raw: Parsed backend output.
        audit: Sink for output_anomaly events.
        submission_id: Submission the output belongs to, for the audit trail.
        max_reasoning_length: Upper bound on the returned reasoning.

    Returns:
        A fully validated CouncilVote.

    Raises:
        OutputValidationError: If raw is not a mapping, the verdict cannot
            be coerced, or reasoning is not a string.
    """
    if not isinstance(raw, Mapping):
        raise OutputValidationError(
            "Output must be an object",
            field="output",
            value=type(raw).__name__,
        )

    verdict = raw["vote"] if "vote" in raw else raw.get("verdict")
    vote = coerce_verdict(verdict)

    reasoning = raw.get("reasoning")
    if not isinstance(reasoning, str):
        raise OutputValidationError(
            "Reasoning must be a string",
            field="reasoning",
            value=reasoning,
        )

    sanitized, matched = sanitize_reasoning(reasoning, max_reasoning_length)

    if matched:
        log.warning(
            "security.output.filtered",
            submission_id=submission_id,
            patterns=matched,
        )
        emit_security_event(
            audit,
            SecurityEventType.OUTPUT_ANOMALY,
            submission_id=submission_id,
            threats=[f"Potentially manipulated output: {p}" for p in matched],
            output=reasoning,
        )

    return CouncilVote(vote=vote, reasoning=sanitized)
