from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pytest

from intent_proxy.core.config import Settings
from intent_proxy.core.errors import TranslationFailure
from intent_proxy.core.litellm_client import LiteLLMClient, LiteLLMError
from intent_proxy.core.models import AgentDescriptor, AgentMessage, ConversationTurn
from intent_proxy.core.translator import LiteLLMTranslator, extract_json


class MockLiteLLMClient(LiteLLMClient):
    def __init__(self, *replies: str, error: Exception | None = None) -> None:
        self.replies = list(replies)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def generate(  # type: ignore[override]
        self,
        messages: Iterable[AgentMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        self.calls.append(
            {
                "messages": list(messages),
                "model": model,
                "temperature": temperature,
                "json_mode": json_mode,
            }
        )
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


AGENTS = [
    AgentDescriptor(name="SalonBot", url="http://salon.local", description="Books haircuts"),
    AgentDescriptor(name="InventoryBot", url="http://inventory.local", description="Stock"),
]


def build_translator(client: MockLiteLLMClient) -> LiteLLMTranslator:
    return LiteLLMTranslator(Settings(), litellm=client)


def test_extract_json_strips_fences_and_chatter() -> None:
    assert extract_json('```json\n{"endpoint": "/a"}\n```') == {"endpoint": "/a"}
    assert extract_json('Sure! Here you go: {"endpoint": "/b"} Hope it helps.') == {
        "endpoint": "/b"
    }
    assert extract_json('Plan: [{"agentName": "A", "subIntent": "x"}]') == [
        {"agentName": "A", "subIntent": "x"}
    ]
    with pytest.raises(TranslationFailure):
        extract_json("I cannot help with that.")


@pytest.mark.asyncio
async def test_translate_returns_call_spec() -> None:
    client = MockLiteLLMClient(
        '{"reasoning": "Booking endpoint", "endpoint": "appointments", "method": "post",'
        ' "body": {"service": "haircut"}}'
    )
    translator = build_translator(client)

    spec = await translator.translate("Book a haircut", '{"paths": {"/appointments": {}}}')

    assert spec.method == "POST"
    assert spec.endpoint == "/appointments"
    assert spec.body == {"service": "haircut"}
    assert spec.reasoning == "Booking endpoint"
    call = client.calls[0]
    assert call["json_mode"] is True
    assert call["model"] == "planner"
    assert "/appointments" in call["messages"][0].content
    assert "Book a haircut" in call["messages"][-1].content


@pytest.mark.asyncio
async def test_translate_rejects_incomplete_specification() -> None:
    translator = build_translator(MockLiteLLMClient('{"method": "GET"}', '["not", "an", "object"]'))

    with pytest.raises(TranslationFailure, match="Malformed"):
        await translator.translate("check stock", "docs")
    with pytest.raises(TranslationFailure, match="JSON object"):
        await translator.translate("check stock", "docs")


@pytest.mark.asyncio
async def test_decompose_accepts_tasks_object_and_passes_history() -> None:
    client = MockLiteLLMClient(
        '{"tasks": [{"agentName": "SalonBot", "subIntent": "Book a haircut",'
        ' "reasoning": "salon"}, {"agentName": "InventoryBot", "subIntent": "Order gel"}]}'
    )
    history = [
        ConversationTurn(role="user", text="What do you offer?"),
        ConversationTurn(role="agent-summary", text="SalonBot executed 'list services'"),
    ]

    tasks = await build_translator(client).decompose("Book it and order gel", AGENTS, history)

    assert [(task.agent_name, task.sub_intent) for task in tasks] == [
        ("SalonBot", "Book a haircut"),
        ("InventoryBot", "Order gel"),
    ]
    messages = client.calls[0]["messages"]
    assert [message.role for message in messages] == ["system", "user", "assistant", "user"]
    assert "SalonBot" in messages[0].content
    assert "Book it and order gel" in messages[-1].content


@pytest.mark.asyncio
async def test_decompose_accepts_bare_list_and_single_task() -> None:
    translator = build_translator(
        MockLiteLLMClient(
            '[{"agentName": "SalonBot", "subIntent": "book"}]',
            '{"agentName": "InventoryBot", "subIntent": "stock"}',
            '{"tasks": []}',
        )
    )

    assert [task.agent_name for task in await translator.decompose("a", AGENTS, [])] == [
        "SalonBot"
    ]
    assert [task.agent_name for task in await translator.decompose("b", AGENTS, [])] == [
        "InventoryBot"
    ]
    assert await translator.decompose("c", AGENTS, []) == []


@pytest.mark.asyncio
async def test_decompose_skips_malformed_entries() -> None:
    translator = build_translator(
        MockLiteLLMClient(
            '{"tasks": [{"agentName": "SalonBot"}, {"agentName": "SalonBot", "subIntent": "ok"}]}'
        )
    )

    tasks = await translator.decompose("book", AGENTS, [])

    assert [task.sub_intent for task in tasks] == ["ok"]


@pytest.mark.asyncio
async def test_decompose_raises_on_unparseable_output() -> None:
    translator = build_translator(MockLiteLLMClient("no idea"))

    with pytest.raises(TranslationFailure):
        await translator.decompose("book", AGENTS, [])


@pytest.mark.asyncio
async def test_gateway_errors_become_translation_failures() -> None:
    translator = build_translator(MockLiteLLMClient(error=LiteLLMError("gateway down")))

    with pytest.raises(TranslationFailure, match="gateway down"):
        await translator.translate("book", "docs")


@pytest.mark.asyncio
async def test_summarize_uses_summary_model_in_text_mode() -> None:
    client = MockLiteLLMClient("Your haircut is booked for 10am.")

    summary = await build_translator(client).summarize("Book a haircut", {"id": "A1"})

    assert summary == "Your haircut is booked for 10am."
    call = client.calls[0]
    assert call["model"] == "summarizer"
    assert call["json_mode"] is False
    assert '"id": "A1"' in call["messages"][-1].content


@pytest.mark.asyncio
async def test_summarize_rejects_empty_output() -> None:
    translator = build_translator(MockLiteLLMClient(""))

    with pytest.raises(TranslationFailure):
        await translator.summarize("Book a haircut", {"id": "A1"})


def test_extract_json_prefers_the_outermost_document() -> None:
    assert extract_json('Result: {"tasks": [{"agentName": "A", "subIntent": "x"}]} done') == {
        "tasks": [{"agentName": "A", "subIntent": "x"}]
    }
    assert extract_json('Steps: [{"agentName": "A", "subIntent": "x"}] ok') == [
        {"agentName": "A", "subIntent": "x"}
    ]
