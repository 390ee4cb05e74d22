"""Test doubles shared by the proxy test-suite."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from intent_proxy.core.errors import TranslationFailure
from intent_proxy.core.models import AgentDescriptor, CallSpec, ConversationTurn, Task


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class StubTranslator:
    """Scripted translator recording every call it receives."""

    def __init__(
        self,
        *,
        tasks: list[Task] | None = None,
        call_specs: Sequence[CallSpec] = (),
        summary: str = "All done.",
        fail_summary: bool = False,
    ) -> None:
        self.tasks = tasks or []
        self.call_specs = list(call_specs)
        self.summary = summary
        self.fail_summary = fail_summary
        self.decompose_calls: list[tuple[str, list[str], list[ConversationTurn]]] = []
        self.translate_calls: list[tuple[str, str]] = []
        self.summarize_calls: list[tuple[str, Any]] = []

    async def decompose(
        self,
        intent: str,
        agents: Sequence[AgentDescriptor],
        history: Sequence[ConversationTurn],
    ) -> list[Task]:
        self.decompose_calls.append((intent, [agent.name for agent in agents], list(history)))
        return list(self.tasks)

    async def translate(self, intent: str, documentation: str) -> CallSpec:
        self.translate_calls.append((intent, documentation))
        if not self.call_specs:
            raise TranslationFailure("no call specification scripted")
        if len(self.call_specs) == 1:
            return self.call_specs[0]
        return self.call_specs.pop(0)

    async def summarize(self, intent: str, raw_response: Any) -> str:
        self.summarize_calls.append((intent, raw_response))
        if self.fail_summary:
            raise TranslationFailure("summary model unavailable")
        return self.summary

