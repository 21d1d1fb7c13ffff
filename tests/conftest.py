"""Shared fixtures for workcouncil tests."""

import asyncio
from collections.abc import Callable

import pytest

from workcouncil.core.types import RawVerdict
from workcouncil.providers.backends import BackendSpec

DISPLAY_NAMES = {
    "openai": "OpenAI GPT-4o",
    "anthropic": "Anthropic Claude Opus 4",
    "google": "Google Gemini 2.5 Flash",
    "xai": "xAI Grok 2",
}

# A scripted response: a record, an exception to raise, or a callable of the user prompt
Scripted = RawVerdict | BaseException | Callable[[str], RawVerdict]


def is_vote_prompt(user_prompt: str) -> bool:
    """Voting prompts carry evaluation criteria; analysis prompts do not."""
    return "<evaluation_criteria>" in user_prompt


class FakeBackend:
    """ModelBackend that replays a scripted response and records every call."""

    def __init__(self, backend_id: str, response: Scripted, delay: float = 0.0) -> None:
        self._spec = BackendSpec(
            backend_id=backend_id,
            model=f"{backend_id}-model",
            display_name=DISPLAY_NAMES.get(backend_id, backend_id),
        )
        self._response = response
        self._delay = delay
        self.calls: list[tuple[str, str]] = []

    @property
    def spec(self) -> BackendSpec:
        return self._spec

    async def invoke(self, system_prompt: str, user_prompt: str) -> RawVerdict:
        self.calls.append((system_prompt, user_prompt))
        if self._delay:
            await asyncio.sleep(self._delay)
        if isinstance(self._response, BaseException):
            raise self._response
        if callable(self._response):
            return self._response(user_prompt)
        return dict(self._response)

    @property
    def vote_prompts(self) -> list[str]:
        return [user for _, user in self.calls if is_vote_prompt(user)]


def approving(backend_id: str) -> Callable[[str], RawVerdict]:
    """Analysis text names the backend; votes approve."""

    def _respond(user_prompt: str) -> RawVerdict:
        if is_vote_prompt(user_prompt):
            return {"vote": True, "reasoning": f"{backend_id} approves the work."}
        return {"vote": True, "reasoning": f"{backend_id} analysis"}

    return _respond


@pytest.fixture
def make_backends() -> Callable[..., dict[str, FakeBackend]]:
    """Build one FakeBackend per default backend id.

    Keyword arguments override the scripted response for that backend id.
    """

    def _make(
        delays: dict[str, float] | None = None,
        **responses: Scripted,
    ) -> dict[str, FakeBackend]:
        delays = delays or {}
        return {
            backend_id: FakeBackend(
                backend_id,
                responses.get(backend_id, approving(backend_id)),
                delay=delays.get(backend_id, 0.0),
            )
            for backend_id in DISPLAY_NAMES
        }

    return _make

