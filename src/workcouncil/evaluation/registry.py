"""Capability registry: the static evaluator panel.

Each evaluator is backed by one model backend and declares the content
types it is best placed to analyse. The panel is immutable once built and
safe to share between concurrent sessions.
"""

from dataclasses import dataclass
from enum import StrEnum

from workcouncil.core.errors import ValidationError
from workcouncil.evaluation.classifier import ContentType


class Capability(StrEnum):
    """Native abilities an evaluator's backend is assumed to have."""

    CODE_REVIEW = "code-review"
    MEDIA_ANALYSIS = "media-analysis"
    REAL_TIME_DATA = "real-time-data"
    VISION = "vision"


@dataclass(frozen=True, slots=True)
class Evaluator:
    """A single judge on the council.

    Attributes:
        id: Stable identifier, e.g. "code-auditor"
        name: Display name used in prompts and results
        backend_id: Identifier of the model backend that serves this judge
        content_types: Content types this judge analyses in depth
        capabilities: Native abilities of the backing model
        personality: Instruction text that shapes the judge's perspective
    """

    id: str
    name: str
    backend_id: str
    content_types: frozenset[ContentType]
    capabilities: frozenset[Capability]
    personality: str

    def handles(self, content_type: ContentType) -> bool:
        return content_type in self.content_types

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities


DEFAULT_EVALUATORS: tuple[Evaluator, ...] = (
    Evaluator(
        id="code-auditor",
        name="CODE-AUDITOR",
        backend_id="anthropic",
        content_types=frozenset({ContentType.CODE_REPOSITORY, ContentType.PLAIN_TEXT}),
        capabilities=frozenset({Capability.CODE_REVIEW}),
        personality=(
            "Strict technical expert focused on code quality, security, and best "
            "practices. You examine implementations with precision and reject "
            "anything that shows poor craftsmanship."
        ),
    ),
    Evaluator(
        id="media-analyst",
        name="MEDIA-ANALYST",
        backend_id="google",
        content_types=frozenset(
            {ContentType.VIDEO, ContentType.IMAGE, ContentType.PLAIN_TEXT}
        ),
        capabilities=frozenset({Capability.MEDIA_ANALYSIS, Capability.VISION}),
        personality=(
            "Creative evaluator who analyzes visual and multimedia content. You "
            "assess production quality, messaging clarity, and audience impact."
        ),
    ),
    Evaluator(
        id="social-sentinel",
        name="SOCIAL-SENTINEL",
        backend_id="xai",
        content_types=frozenset(
            {ContentType.SOCIAL_POST, ContentType.VIDEO, ContentType.PLAIN_TEXT}
        ),
        capabilities=frozenset({Capability.REAL_TIME_DATA}),
        personality=(
            "Evaluator who understands social dynamics and reach. You appreciate "
            "bold ideas and genuine community engagement, and you have direct "
            "access to live social-platform data."
        ),
    ),
    Evaluator(
        id="general-validator",
        name="GENERAL-VALIDATOR",
        backend_id="openai",
        content_types=frozenset(
            {
                ContentType.CODE_REPOSITORY,
                ContentType.IMAGE,
                ContentType.PLAIN_TEXT,
                ContentType.UNKNOWN,
            }
        ),
        capabilities=frozenset({Capability.CODE_REVIEW, Capability.VISION}),
        personality=(
            "Balanced evaluator who considers overall impact and ecosystem value. "
            "You assess whether the work genuinely moves the project forward."
        ),
    ),
)

# Number of leading panel members used when no evaluator claims a content type
FALLBACK_PANEL_SIZE = 2


class EvaluatorRegistry:
    """Immutable catalog of evaluators with content-type selection.

    Example:
        registry = EvaluatorRegistry()
        specialists = registry.select_for_content(ContentType.VIDEO)
    """

    def __init__(self, evaluators: tuple[Evaluator, ...] = DEFAULT_EVALUATORS) -> None:
        """Initialize the registry.

        Args:
            evaluators: Panel members, in a stable order.

        Raises:
            ValidationError: If the panel is empty or ids are not unique.
        """
        if not evaluators:
            raise ValidationError("Evaluator panel cannot be empty", field="evaluators")

        ids = [e.id for e in evaluators]
        if len(set(ids)) != len(ids):
            raise ValidationError(
                "Evaluator ids must be unique",
                field="evaluators",
                details={"ids": ids},
            )

        self._evaluators = tuple(evaluators)
        self._by_id = {e.id: e for e in self._evaluators}

    def __len__(self) -> int:
        return len(self._evaluators)

    def all(self) -> tuple[Evaluator, ...]:
        return self._evaluators

    def find(self, evaluator_id: str) -> Evaluator | None:
        return self._by_id.get(evaluator_id)

    def get(self, evaluator_id: str) -> Evaluator:
        """Return the evaluator with the given id.

        Raises:
            ValidationError: If no evaluator has that id.
        """
        evaluator = self._by_id.get(evaluator_id)
        if evaluator is None:
            raise ValidationError(
                f"Unknown evaluator: {evaluator_id}",
                field="evaluator_id",
                value=evaluator_id,
            )
        return evaluator

    def select_for_content(self, content_type: ContentType) -> tuple[Evaluator, ...]:
        """Select the evaluators whose affinities include ``content_type``.

        Falls back to the first FALLBACK_PANEL_SIZE evaluators when none
        match, so the deep-analysis subset is never empty.
        """
        selected = tuple(e for e in self._evaluators if e.handles(content_type))
        if selected:
            return selected
        return self._evaluators[:FALLBACK_PANEL_SIZE]
