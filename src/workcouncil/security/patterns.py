"""Pattern tables for prompt-injection detection.

All tables are compiled once at import and are read-only afterwards, so
they are safe to share between concurrent sessions.
"""

from dataclasses import dataclass
import re

from workcouncil.security.models import RiskLevel


@dataclass(frozen=True, slots=True)
class ThreatPattern:
    """A compiled pattern with the severity a match contributes."""

    pattern: re.Pattern[str]
    severity: RiskLevel

    @property
    def source(self) -> str:
        return self.pattern.pattern


def _p(regex: str, severity: RiskLevel) -> ThreatPattern:
    return ThreatPattern(re.compile(regex, re.IGNORECASE), severity)


# Role-switch markers, instruction overrides and chat-template delimiters
INJECTION_PATTERNS: tuple[ThreatPattern, ...] = (
    _p(r"ignore\s+(previous|all|prior)\s+(\w+\s+)?instructions?", RiskLevel.HIGH),
    _p(r"you\s+are\s+now", RiskLevel.HIGH),
    _p(r"system\s*:", RiskLevel.MEDIUM),
    _p(r"---\s*end\s+(of\s+)?(user\s+)?(input|instructions?)", RiskLevel.HIGH),
    _p(r"<\|im_start\|>", RiskLevel.HIGH),
    _p(r"<\|im_end\|>", RiskLevel.HIGH),
    _p(r"\[INST\]", RiskLevel.HIGH),
    _p(r"\[/INST\]", RiskLevel.HIGH),
    _p(r"forget\s+(everything|all|previous)", RiskLevel.MEDIUM),
    _p(r"new\s+(rule|instruction|command)", RiskLevel.MEDIUM),
    _p(r"override\s+(previous|all)", RiskLevel.HIGH),
    _p(r"disregard\s+(previous|all)", RiskLevel.HIGH),
    _p(r"<system>", RiskLevel.HIGH),
    _p(r"</system>", RiskLevel.HIGH),
    _p(r"role\s*:\s*system", RiskLevel.HIGH),
    _p(r"assistant\s*:", RiskLevel.MEDIUM),
)

# Checked by the flow controller at the point of action
FLOW_CONTROL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"ignore\s+(previous|all)\s+(\w+\s+)?instructions", re.IGNORECASE),
    re.compile(r"you\s+are\s+now", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"<\|im_start\|>", re.IGNORECASE),
    re.compile(r"\[INST\]", re.IGNORECASE),
)

# Redacted from evaluator reasoning rather than rejected
OUTPUT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"ignore\s+previous", re.IGNORECASE),
    re.compile(r"you\s+are\s+now", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"<script[^>]*>", re.IGNORECASE),
    re.compile(r"<iframe[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"onerror\s*=", re.IGNORECASE),
)

# Characters outside this class count towards the special-character ratio
SPECIAL_CHAR_PATTERN = re.compile(r"[^a-zA-Z0-9\s.,!?-]")

MARKUP_PATTERN = re.compile(r"[<>]")

CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x1f\x7f]")


def base64_run_pattern(min_length: int) -> re.Pattern[str]:
    """Compile a pattern for base64-like runs of at least ``min_length`` chars."""
    quads = max(1, min_length // 4)
    return re.compile(
        rf"(?:[A-Za-z0-9+/]{{4}}){{{quads},}}(?:[A-Za-z0-9+/]{{2}}==|[A-Za-z0-9+/]{{3}}=)?"
    )


def contains_high_risk_instruction(content: str) -> bool:
    """Return True if ``content`` matches any flow-control pattern."""
    return any(pattern.search(content) for pattern in FLOW_CONTROL_PATTERNS)
