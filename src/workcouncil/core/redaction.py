"""Keeping secrets and untrusted text out of logs and audit records.

Backend credentials are recognised by field name or by the shape of the
value. Submission and evaluator text goes into audit events only as a
bounded snippet.
"""

import re
from typing import Any

# Vendor output longer than this is cut before parsing
MAX_LLM_RESPONSE_LENGTH = 100_000

# Length of untrusted text kept in an audit event
AUDIT_SNIPPET_LENGTH = 200

REDACTED = "<REDACTED>"

_SENSITIVE_FIELD_RE = re.compile(
    r"password|api[_-]?key|secret|token|credential|auth|private|bearer",
    re.IGNORECASE,
)

# OpenAI/Anthropic, publishable, xAI, Google, and header-style values
_SENSITIVE_VALUE_RE = re.compile(
    r"^(?:sk-|pk-|xai-|AIza|secret_|bearer\s|token\s)",
    re.IGNORECASE,
)


def mask_api_key(api_key: str, visible_chars: int = 4) -> str:
    """Show just enough of a key to tell keys apart.

    >>> mask_api_key("sk-1234567890abcdef")
    'sk-...cdef'
    """
    if not api_key:
        return "<empty>"
    if len(api_key) <= visible_chars + 4:
        return "*" * len(api_key)

    dash = api_key.find("-", 0, 6)
    prefix = api_key[: dash + 1] if dash >= 0 else ""
    return f"{prefix}...{api_key[-visible_chars:]}"


def is_sensitive_field(field_name: str) -> bool:
    return bool(field_name) and _SENSITIVE_FIELD_RE.search(field_name) is not None


def is_sensitive_value(value: Any) -> bool:
    return isinstance(value, str) and _SENSITIVE_VALUE_RE.match(value) is not None


def redact_mapping(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with credentials hidden at any nesting depth."""

    def redact(key: str, value: Any) -> Any:
        if is_sensitive_field(key):
            return REDACTED
        if is_sensitive_value(value):
            return mask_api_key(value)
        if isinstance(value, dict):
            return redact_mapping(value)
        return value

    return {key: redact(key, value) for key, value in data.items()}


def truncate_snippet(text: str | None, max_length: int = AUDIT_SNIPPET_LENGTH) -> str | None:
    return None if text is None else text[:max_length]
