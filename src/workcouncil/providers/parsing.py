"""Response parsing shared by every backend strategy.

Backends differ in how reliably they honour the JSON output contract, so
the parser degrades through a fixed chain and prefers a usable record over
strictness:

1. the whole response as JSON
2. JSON inside a fenced code block
3. the first brace-balanced JSON object
4. a boolean ``vote`` token plus a quoted ``reasoning`` string

Only a response with no recognisable verdict at all is rejected.
"""

import json
import re
from typing import Any

from workcouncil.core.errors import OutputValidationError
from workcouncil.core.types import RawVerdict

FALLBACK_REASONING_LENGTH = 200

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_VOTE_TOKEN = re.compile(
    r"[\"']?(?:vote|verdict)[\"']?\s*[:=]\s*[\"']?(true|false)\b",
    re.IGNORECASE,
)
_REASONING_STRING = re.compile(
    r"[\"']?reasoning[\"']?\s*[:=]\s*\"((?:[^\"\\]|\\.)*)\"",
    re.IGNORECASE | re.DOTALL,
)


def extract_json_payload(text: str) -> str | None:
    """Return the first brace-balanced ``{...}`` substring of ``text``.

    Braces inside JSON strings are ignored, so reasoning that mentions
    ``{`` or ``}`` does not end the object early.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def _load_object(candidate: str | None) -> dict[str, Any] | None:
    if not candidate:
        return None
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _extract_tokens(text: str) -> RawVerdict:
    vote_match = _VOTE_TOKEN.search(text)
    if vote_match is None:
        raise OutputValidationError(
            "No verdict found in backend response",
            field="response",
            value=text[:100],
        )

    reasoning_match = _REASONING_STRING.search(text)
    if reasoning_match is not None:
        try:
            reasoning = json.loads(f'"{reasoning_match.group(1)}"')
        except json.JSONDecodeError:
            reasoning = reasoning_match.group(1)
    else:
        reasoning = text[:FALLBACK_REASONING_LENGTH].strip()

    return {"vote": vote_match.group(1).lower() == "true", "reasoning": reasoning}


def parse_verdict_response(text: str) -> RawVerdict:
    """Parse raw backend text into a ``{vote, reasoning}`` record.

    The returned record is not yet validated; pass it through
    validate_council_output before counting it.

    Raises:
        OutputValidationError: If no stage yields a record.
    """
    stripped = text.strip()

    data = _load_object(stripped)
    if data is not None:
        return data

    fenced = _FENCED_BLOCK.search(stripped)
    if fenced is not None:
        data = _load_object(fenced.group(1).strip())
        if data is not None:
            return data

    data = _load_object(extract_json_payload(stripped))
    if data is not None:
        return data

    return _extract_tokens(stripped)
