"""Security gateway: input/output validation, prompts, taint tracking, audit.

Layers:
    1. validate_and_sanitize_input - score and sanitize untrusted submissions
    2. validate_council_output - turn raw evaluator output into a CouncilVote
    3. build_secure_prompt - delimit trusted instructions from user content
    4. InformationFlowController - gate sensitive actions on tainted inputs
"""

from workcouncil.security.audit import (
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
    SecurityEvent,
    SecurityEventType,
    emit_security_event,
)
from workcouncil.security.flow_control import InformationFlowController
from workcouncil.security.input_validation import sanitize_notes, validate_and_sanitize_input
from workcouncil.security.models import (
    ActionType,
    CouncilVote,
    InputValidationResult,
    RiskLevel,
    TaintedValue,
    TaintSource,
    TrustLevel,
)
from workcouncil.security.output_validation import coerce_verdict, validate_council_output
from workcouncil.security.prompts import (
    build_analysis_prompt,
    build_evaluator_system_prompt,
    build_secure_prompt,
)

__all__ = [
    # Models
    "ActionType",
    "CouncilVote",
    "InputValidationResult",
    "RiskLevel",
    "TaintSource",
    "TaintedValue",
    "TrustLevel",
    # Input / output validation
    "coerce_verdict",
    "sanitize_notes",
    "validate_and_sanitize_input",
    "validate_council_output",
    # Prompts
    "build_analysis_prompt",
    "build_evaluator_system_prompt",
    "build_secure_prompt",
    # Flow control
    "InformationFlowController",
    # Audit
    "AuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "SecurityEvent",
    "SecurityEventType",
    "emit_security_event",
]
