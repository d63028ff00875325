"""Shared fakes for the guardrail test suite: no network, controllable time."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from clients.openai_client import ChatCompletion, ModerationResult, OpenAIError


class FakeClock:
    """Seconds-since-epoch clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOpenAIClient:
    """Stands in for OpenAIClient; records every call it receives."""

    def __init__(
        self,
        reply: Any = None,
        *,
        model: str = "gpt-4-turbo-preview",
        flagged: bool = False,
        moderation_error: Optional[Exception] = None,
        chat_error: Optional[Exception] = None,
    ) -> None:
        self.model = model
        self.reply = reply
        self.flagged = flagged
        self.moderation_error = moderation_error
        self.chat_error = chat_error
        self.chat_calls: List[Dict[str, Any]] = []
        self.moderation_calls: List[str] = []
        self.closed = False

    def chat_json(self, messages, *, max_tokens, temperature) -> ChatCompletion:
        self.chat_calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        if self.chat_error is not None:
            raise self.chat_error
        text = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return ChatCompletion(text=text, model=self.model, usage={"total_tokens": 321})

    def moderate(self, text: str) -> ModerationResult:
        self.moderation_calls.append(text)
        if self.moderation_error is not None:
            raise self.moderation_error
        return ModerationResult(flagged=self.flagged, categories=["harassment"] if self.flagged else [])

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_client_cls():
    return FakeOpenAIClient


@pytest.fixture()
def transport_error() -> OpenAIError:
    return OpenAIError("OpenAI request failed: ConnectionError", code="NETWORK")
