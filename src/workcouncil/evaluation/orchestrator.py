"""Council evaluation orchestrator.

Drives one evaluation session:

    VALIDATING -> CLASSIFYING -> DEEP_ANALYSIS -> VOTING -> CONSENSUS -> DONE
                                  (or ABORTED on a pre-validation security failure)

1. Validate and sanitize the submission. At or above the abort risk level
   the session raises SecurityValidationFailed before any backend call.
2. Classify the URL into a content type.
3. The evaluators whose affinities match the content type produce a deep
   analysis, using their backend's native capabilities. A failed analysis
   is recorded as unavailable and the session continues.
4. Each available analysis is broadcast to every other evaluator.
5. The full panel votes. Each evaluator sees the other evaluators'
   analyses but never its own. Every raw vote is validated and gated by the
   session's flow controller; failures drop that vote only.
6. Votes are tallied over the votes actually cast.

Backend calls within a stage fan out concurrently and join before the next
stage. Each call has its own timeout, and the session has an overall
deadline after which pending calls are cancelled. Results are written to the
session's records only after the join, by the orchestrator itself.

Usage:
    orchestrator = CouncilOrchestrator(create_backend_router(config), config=config)
    result = await orchestrator.evaluate("sub-1", url, notes)
"""

import asyncio
from collections.abc import Coroutine, Sequence
from typing import Any

import stamina

from workcouncil.config.loader import load_config_or_default
from workcouncil.config.models import CouncilConfig, get_default_config
from workcouncil.core.errors import (
    BackendInvocationError,
    FlowControlDenied,
    OutputValidationError,
    SecurityValidationFailed,
)
from workcouncil.core.types import RawVerdict
from workcouncil.evaluation.classifier import ContentType, classify
from workcouncil.evaluation.consensus import tally_votes
from workcouncil.evaluation.models import (
    AnalysisRecord,
    ConsensusResult,
    SecurityAnalysis,
    SessionStage,
    SubmissionRequest,
    Vote,
)
from workcouncil.evaluation.registry import Evaluator, EvaluatorRegistry
from workcouncil.events.base import BaseEvent
from workcouncil.events.council import (
    create_analysis_completed_event,
    create_analysis_failed_event,
    create_consensus_reached_event,
    create_session_started_event,
    create_vote_cast_event,
    create_vote_dropped_event,
)
from workcouncil.observability.logging import (
    bind_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from workcouncil.providers.backends import BackendRouter, create_backend_router
from workcouncil.security.audit import (
    AuditSink,
    LoggingAuditSink,
    SecurityEventType,
    emit_security_event,
)
from workcouncil.security.flow_control import InformationFlowController
from workcouncil.security.input_validation import validate_and_sanitize_input
from workcouncil.security.models import (
    ActionType,
    CouncilVote,
    InputValidationResult,
    RiskLevel,
    TaintSource,
)
from workcouncil.security.output_validation import validate_council_output
from workcouncil.security.prompts import (
    build_analysis_prompt,
    build_evaluator_system_prompt,
    build_secure_prompt,
)

log = get_logger(__name__)

NOTES_TAINT_ID = "submission_notes"
URL_TAINT_ID = "submission_url"
VOTE_TAINT_IDS = (NOTES_TAINT_ID, URL_TAINT_ID)


def build_shared_context(
    evaluator: Evaluator,
    records: Sequence[AnalysisRecord],
) -> str | None:
    """Concatenate every other evaluator's available analysis.

    An evaluator never sees its own analysis echoed back.

    Returns:
        The shared context, or None when there is nothing to share.
    """
    parts = [
        f"{record.evaluator_name}: {record.summary}"
        for record in records
        if record.available and record.evaluator_id != evaluator.id
    ]
    return "\n\n".join(parts) or None


class CouncilOrchestrator:
    """Runs council evaluation sessions.

    The orchestrator itself holds only immutable collaborators and is safe
    to share between concurrent sessions. All per-session state (flow
    controller, analyses, votes, events) is created inside evaluate().

    Example:
        orchestrator = CouncilOrchestrator(router)
        try:
            result = await orchestrator.evaluate("sub-1", url, notes)
        except SecurityValidationFailed as e:
            reject(e.threats)
    """

    def __init__(
        self,
        router: BackendRouter,
        registry: EvaluatorRegistry | None = None,
        config: CouncilConfig | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            router: Dispatches invocations to model backends.
            registry: Evaluator panel. Defaults to the built-in panel.
            config: Council configuration. Defaults to get_default_config().
            audit_sink: Receiver for security events. Defaults to LoggingAuditSink.
        """
        self._router = router
        self._registry = registry or EvaluatorRegistry()
        self._config = config or get_default_config()
        self._audit = audit_sink if audit_sink is not None else LoggingAuditSink()
        self._abort_level = RiskLevel(self._config.security.abort_risk_level)

        for evaluator in self._registry.all():
            if evaluator.backend_id not in router:
                log.warning(
                    "council.backend.unconfigured",
                    evaluator_id=evaluator.id,
                    backend_id=evaluator.backend_id,
                )

    @property
    def registry(self) -> EvaluatorRegistry:
        return self._registry

    async def evaluate(self, submission_id: str, url: str, notes: str) -> ConsensusResult:
        """Evaluate a submission.

        Args:
            submission_id: Caller-assigned identifier
            url: Submission URL (untrusted)
            notes: Submission notes (untrusted)

        Returns:
            ConsensusResult with votes, communications and the security summary.

        Raises:
            SecurityValidationFailed: If pre-validation risk reaches the
                abort level. No backend is invoked in that case.
        """
        bind_context(submission_id=submission_id)
        try:
            return await self._run_session(submission_id, url, notes)
        finally:
            unbind_context("submission_id", "stage")

    async def evaluate_submission(self, request: SubmissionRequest) -> ConsensusResult:
        """Evaluate a SubmissionRequest. Same contract as evaluate()."""
        return await self.evaluate(request.submission_id, request.url, request.notes)

    async def _run_session(self, submission_id: str, url: str, notes: str) -> ConsensusResult:
        events: list[BaseEvent] = []

        # VALIDATING
        self._enter(SessionStage.VALIDATING)
        validation = validate_and_sanitize_input(url, notes, self._config.security)
        if validation.risk_level.at_least(self._abort_level):
            self._abort(submission_id, notes, validation)

        flow = InformationFlowController()
        flow.mark_as_untrusted(NOTES_TAINT_ID, notes, TaintSource.USER_NOTES)
        flow.mark_as_untrusted(URL_TAINT_ID, url, TaintSource.SUBMISSION_URL)

        # CLASSIFYING
        self._enter(SessionStage.CLASSIFYING)
        content_type = classify(url, notes)
        panel = self._registry.all()
        specialists = self._registry.select_for_content(content_type)

        events.append(
            create_session_started_event(
                submission_id=submission_id,
                content_type=content_type.value,
                risk_level=validation.risk_level.value,
                panel=[e.id for e in panel],
                specialists=[e.id for e in specialists],
            )
        )
        log.info(
            "council.session.started",
            content_type=content_type.value,
            risk_level=validation.risk_level.value,
            panel_size=len(panel),
            specialists=[e.id for e in specialists],
        )

        deadline = asyncio.get_running_loop().time() + self._config.session.session_timeout

        # DEEP_ANALYSIS and broadcast
        self._enter(SessionStage.DEEP_ANALYSIS)
        analysis_outcomes = await self._fan_out(
            {
                e.id: self._analyze(e, submission_id, content_type, url, validation.sanitized_input)
                for e in specialists
            },
            deadline,
        )
        communications = self._record_analyses(
            submission_id, content_type, specialists, analysis_outcomes, events
        )

        # VOTING
        self._enter(SessionStage.VOTING)
        vote_outcomes = await self._fan_out(
            {
                e.id: self._cast_vote(
                    e,
                    submission_id,
                    url,
                    validation.sanitized_input,
                    build_shared_context(e, communications),
                    flow,
                )
                for e in panel
            },
            deadline,
        )
        votes = self._record_votes(submission_id, panel, vote_outcomes, events)

        # CONSENSUS
        self._enter(SessionStage.CONSENSUS)
        tally = tally_votes(
            votes,
            threshold=self._config.consensus.threshold,
            quorum=self._config.consensus.quorum,
        )
        events.append(
            create_consensus_reached_event(
                submission_id=submission_id,
                approved=tally.approved,
                approval_rate=tally.approval_rate,
                votes_cast=tally.votes_cast,
                panel_size=len(panel),
                votes=[
                    {"evaluator_id": v.evaluator_id, "vote": v.vote, "backend": v.backend}
                    for v in votes
                ],
            )
        )

        flow.clear_all()
        self._enter(SessionStage.DONE)
        log.info(
            "council.consensus.reached",
            approved=tally.approved,
            approval_rate=tally.approval_rate,
            votes_cast=tally.votes_cast,
            panel_size=len(panel),
        )

        return ConsensusResult(
            submission_id=submission_id,
            url=url,
            content_type=content_type,
            approved=tally.approved,
            approval_count=tally.approval_count,
            rejection_count=tally.rejection_count,
            approval_rate=tally.approval_rate,
            votes=tuple(votes),
            communications=tuple(communications),
            security_analysis=SecurityAnalysis(
                risk_level=validation.risk_level,
                threats=validation.threats,
            ),
            panel_size=len(panel),
            events=tuple(events),
        )

    def _enter(self, stage: SessionStage) -> None:
        bind_context(stage=stage.value)
        log.debug("council.stage.entered", stage=stage.value)

    def _abort(
        self,
        submission_id: str,
        notes: str,
        validation: InputValidationResult,
    ) -> None:
        self._enter(SessionStage.ABORTED)
        emit_security_event(
            self._audit,
            SecurityEventType.INJECTION_ATTEMPT,
            submission_id=submission_id,
            threats=validation.threats,
            input=notes,
        )
        log.warning(
            "council.session.aborted",
            risk_level=validation.risk_level.value,
            threat_count=len(validation.threats),
        )
        raise SecurityValidationFailed(
            f"Security validation failed: {', '.join(validation.threats)}",
            submission_id=submission_id,
            risk_level=validation.risk_level.value,
            threats=validation.threats,
        )

    async def _invoke(self, backend_id: str, system_prompt: str, user_prompt: str) -> RawVerdict:
        """Invoke a backend with the per-call timeout and retry policy.

        Timeouts are reported as BackendInvocationError(timed_out=True).
        Only BackendInvocationError is retried.
        """
        session = self._config.session

        @stamina.retry(
            on=BackendInvocationError,
            attempts=session.backend_attempts,
            timeout=None,
            wait_initial=0.5,
            wait_max=5.0,
            wait_jitter=0.5,
        )
        async def _attempt() -> RawVerdict:
            try:
                return await asyncio.wait_for(
                    self._router.invoke(backend_id, system_prompt, user_prompt),
                    timeout=session.backend_timeout,
                )
            except TimeoutError as e:
                raise BackendInvocationError(
                    f"Backend {backend_id} timed out after {session.backend_timeout}s",
                    backend_id=backend_id,
                    timed_out=True,
                ) from e

        return await _attempt()

    async def _analyze(
        self,
        evaluator: Evaluator,
        submission_id: str,
        content_type: ContentType,
        url: str,
        sanitized_notes: str,
    ) -> str:
        bind_context(evaluator_id=evaluator.id)
        raw = await self._invoke(
            evaluator.backend_id,
            build_evaluator_system_prompt(evaluator),
            build_analysis_prompt(evaluator, content_type, url, sanitized_notes),
        )
        validated = validate_council_output(
            raw,
            audit=self._audit,
            submission_id=submission_id,
            max_reasoning_length=self._config.security.max_reasoning_length,
        )
        return validated.reasoning

    async def _cast_vote(
        self,
        evaluator: Evaluator,
        submission_id: str,
        url: str,
        sanitized_notes: str,
        shared_context: str | None,
        flow: InformationFlowController,
    ) -> CouncilVote:
        bind_context(evaluator_id=evaluator.id)
        raw = await self._invoke(
            evaluator.backend_id,
            build_evaluator_system_prompt(evaluator),
            build_secure_prompt(evaluator, submission_id, url, sanitized_notes, shared_context),
        )
        vote = validate_council_output(
            raw,
            audit=self._audit,
            submission_id=submission_id,
            max_reasoning_length=self._config.security.max_reasoning_length,
        )

        if not flow.can_execute_action(ActionType.VOTE, VOTE_TAINT_IDS):
            raise FlowControlDenied(
                "Information flow control blocked vote",
                action=ActionType.VOTE.value,
                input_ids=VOTE_TAINT_IDS,
                details={"vote": vote.vote},
            )

        return vote

    async def _fan_out(
        self,
        calls: dict[str, Coroutine[Any, Any, Any]],
        deadline: float,
    ) -> dict[str, Any]:
        """Run calls concurrently and join, bounded by the session deadline.

        Returns:
            Mapping of key to result, or to the exception the call raised.
            Calls still pending at the deadline are cancelled and mapped to
            BackendInvocationError(timed_out=True).
        """
        if not calls:
            return {}

        loop = asyncio.get_running_loop()
        tasks = {key: asyncio.create_task(coro) for key, coro in calls.items()}
        try:
            remaining = max(0.0, deadline - loop.time())
            _, pending = await asyncio.wait(tasks.values(), timeout=remaining)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning("council.session.deadline_exceeded", cancelled=len(pending))

        results: dict[str, Any] = {}
        for key, task in tasks.items():
            if task in pending or task.cancelled():
                results[key] = BackendInvocationError(
                    "Session deadline exceeded",
                    timed_out=True,
                )
            elif task.exception() is not None:
                results[key] = task.exception()
            else:
                results[key] = task.result()
        return results

    def _record_analyses(
        self,
        submission_id: str,
        content_type: ContentType,
        specialists: Sequence[Evaluator],
        outcomes: dict[str, Any],
        events: list[BaseEvent],
    ) -> list[AnalysisRecord]:
        """Turn analysis outcomes into records, in panel order.

        Failed analyses are kept as unavailable records with no recipients;
        build_shared_context skips them.
        """
        panel_ids = [e.id for e in self._registry.all()]
        communications: list[AnalysisRecord] = []

        for evaluator in specialists:
            outcome = outcomes[evaluator.id]
            if isinstance(outcome, BaseException):
                self._report_failure(submission_id, evaluator, outcome, stage="analysis")
                events.append(
                    create_analysis_failed_event(
                        submission_id=submission_id,
                        evaluator_id=evaluator.id,
                        reason=str(outcome),
                    )
                )
                communications.append(
                    AnalysisRecord.unavailable(evaluator.id, evaluator.name, content_type)
                )
                continue

            recipients = tuple(i for i in panel_ids if i != evaluator.id)
            communications.append(
                AnalysisRecord(
                    evaluator_id=evaluator.id,
                    evaluator_name=evaluator.name,
                    content_type=content_type,
                    summary=outcome,
                    recipients=recipients,
                )
            )
            events.append(
                create_analysis_completed_event(
                    submission_id=submission_id,
                    evaluator_id=evaluator.id,
                    recipients=list(recipients),
                )
            )

        return communications

    def _record_votes(
        self,
        submission_id: str,
        panel: Sequence[Evaluator],
        outcomes: dict[str, Any],
        events: list[BaseEvent],
    ) -> list[Vote]:
        """Turn vote outcomes into ballots, dropping failures, in panel order."""
        votes: list[Vote] = []

        for evaluator in panel:
            outcome = outcomes[evaluator.id]
            if isinstance(outcome, BaseException):
                self._report_failure(submission_id, evaluator, outcome, stage="vote")
                events.append(
                    create_vote_dropped_event(
                        submission_id=submission_id,
                        evaluator_id=evaluator.id,
                        reason=str(outcome),
                        error_type=type(outcome).__name__,
                    )
                )
                continue

            backend = self._router.display_name(evaluator.backend_id)
            votes.append(
                Vote(
                    evaluator_id=evaluator.id,
                    evaluator_name=evaluator.name,
                    vote=outcome.vote,
                    reasoning=outcome.reasoning,
                    backend=backend,
                )
            )
            events.append(
                create_vote_cast_event(
                    submission_id=submission_id,
                    evaluator_id=evaluator.id,
                    vote=outcome.vote,
                    backend=backend,
                )
            )

        return votes

    def _report_failure(
        self,
        submission_id: str,
        evaluator: Evaluator,
        error: BaseException,
        *,
        stage: str,
    ) -> None:
        """Log a non-fatal per-evaluator failure and audit policy outcomes."""
        if isinstance(error, FlowControlDenied):
            emit_security_event(
                self._audit,
                SecurityEventType.FLOW_CONTROL_DENIED,
                submission_id=submission_id,
                threats=["Information flow control blocked vote"],
                output=error.details,
            )
        elif isinstance(error, OutputValidationError):
            emit_security_event(
                self._audit,
                SecurityEventType.VALIDATION_FAILURE,
                submission_id=submission_id,
                threats=[error.message],
                output=error.safe_value,
            )

        log.warning(
            f"council.{stage}.dropped",
            evaluator_id=evaluator.id,
            backend_id=evaluator.backend_id,
            error=str(error),
            error_type=type(error).__name__,
            timed_out=getattr(error, "timed_out", False),
        )


async def run_council_evaluation(
    submission_id: str,
    url: str,
    notes: str,
    *,
    config: CouncilConfig | None = None,
    router: BackendRouter | None = None,
    registry: EvaluatorRegistry | None = None,
    audit_sink: AuditSink | None = None,
) -> ConsensusResult:
    """Evaluate one submission with default collaborators.

    Configuration is loaded from ~/.workcouncil/config.yaml when present.
    Its logging section is applied, and the backend router is built from it
    unless one is given.

    Raises:
        SecurityValidationFailed: If the submission is rejected up front.
        ConfigError: If the configuration file is malformed.
    """
    config = config or load_config_or_default()
    configure_logging(config.logging)
    orchestrator = CouncilOrchestrator(
        router or create_backend_router(config),
        registry=registry,
        config=config,
        audit_sink=audit_sink,
    )
    return await orchestrator.evaluate(submission_id, url, notes)
