"""Council evaluation: classification, evaluator panel, sessions and consensus.

Main exports:
    classify: URL -> ContentType
    EvaluatorRegistry: The evaluator panel and content-type selection
    CouncilOrchestrator: Runs one evaluation session per evaluate() call
    run_council_evaluation: Convenience entry point with default collaborators
    tally_votes: Majority tally over cast votes
"""

from workcouncil.evaluation.classifier import ContentType, classify
from workcouncil.evaluation.registry import (
    DEFAULT_EVALUATORS,
    Capability,
    Evaluator,
    EvaluatorRegistry,
)
from workcouncil.evaluation.models import (
    AnalysisRecord,
    ConsensusResult,
    SecurityAnalysis,
    SessionStage,
    SubmissionRequest,
    Vote,
)
from workcouncil.evaluation.consensus import Tally, tally_votes
from workcouncil.evaluation.orchestrator import (
    CouncilOrchestrator,
    build_shared_context,
    run_council_evaluation,
)

__all__ = [
    # Classification
    "ContentType",
    "classify",
    # Registry
    "Capability",
    "DEFAULT_EVALUATORS",
    "Evaluator",
    "EvaluatorRegistry",
    # Models
    "AnalysisRecord",
    "ConsensusResult",
    "SecurityAnalysis",
    "SessionStage",
    "SubmissionRequest",
    "Vote",
    # Consensus
    "Tally",
    "tally_votes",
    # Orchestration
    "CouncilOrchestrator",
    "build_shared_context",
    "run_council_evaluation",
]
