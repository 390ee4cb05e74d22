"""Language-model backed reasoning used by the proxy.

The translator turns free text into structure: it decomposes an intent into
agent tasks, turns an intent plus API documentation into a call
specification, and summarises raw agent responses for humans.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from .config import Settings
from .errors import TranslationFailure
from .litellm_client import LiteLLMClient, LiteLLMError
from .models import AgentDescriptor, AgentMessage, CallSpec, ConversationTurn, Task

LOGGER = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

_TRANSLATE_PROMPT = """Act as an API integration expert.

API Documentation:
\"\"\"
{documentation}
\"\"\"

Task: Convert the user intent into exactly one HTTP call against the API above.

Output Format (JSON only):
{{
    "reasoning": "One sentence explaining why you chose this endpoint and payload.",
    "endpoint": "/path/to/resource",
    "method": "POST",
    "body": {{ "field": "value" }}
}}

Rules:
1. Output valid JSON only, without markdown fences or commentary.
2. When the intent lacks information the API requires, use reasonable defaults
   derived from the intent (for example resolve "tomorrow" to a date).
3. Match the data types given in the documentation."""

_DECOMPOSE_PROMPT = """Act as a strategic orchestrator.

Available Agents:
{agents}

Task:
1. Decide whether the user intent is a single action or several actions.
2. Break it down into clear sub-tasks, in the order they must run.
3. For each sub-task pick the best agent by its exact name.
4. Use the earlier conversation to resolve references such as "it" or "same time".

Output Format (JSON only):
{{
    "tasks": [
        {{
            "agentName": "Name of agent",
            "subIntent": "Specific instruction for this agent",
            "reasoning": "Why this agent handles this part"
        }}
    ]
}}

Return {{"tasks": []}} when no agent can help."""

_SUMMARY_PROMPT = """Act as a helpful assistant.
Write a friendly, natural language summary of the system response for the user.
- Confirm whether the action succeeded.
- Mention key details such as times or identifiers.
- If it failed, explain why kindly.
Keep it to one or two sentences."""


@runtime_checkable
class ITranslator(Protocol):
    """The three reasoning operations consumed by the executor and orchestrator."""

    async def decompose(
        self,
        intent: str,
        agents: Sequence[AgentDescriptor],
        history: Sequence[ConversationTurn],
    ) -> list[Task]:
        """Split ``intent`` into ordered tasks for the given agents."""
        ...

    async def translate(self, intent: str, documentation: str) -> CallSpec:
        """Produce the call specification fulfilling ``intent``."""
        ...

    async def summarize(self, intent: str, raw_response: Any) -> str:
        """Describe ``raw_response`` in the light of ``intent``."""
        ...


def extract_json(raw: str) -> Any:
    """Parse a JSON document from model output.

    Markdown fences are stripped and, failing a direct parse, the outermost
    object or array in the text is tried.
    """

    text = _FENCE_PATTERN.sub("", raw).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    candidates = []
    for opening, closing in (("{", "}"), ("[", "]")):
        start = text.find(opening)
        end = text.rfind(closing)
        if start != -1 and end > start:
            candidates.append((start, end))
    # The bracket that opens first is the outermost document.
    for start, end in sorted(candidates):
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            continue
    raise TranslationFailure(f"Model output is not valid JSON: {raw[:200]}")


class LiteLLMTranslator:
    """:class:`ITranslator` implementation talking to the LiteLLM gateway."""

    def __init__(self, settings: Settings, litellm: LiteLLMClient | None = None) -> None:
        self._settings = settings
        self._litellm = litellm or LiteLLMClient(settings)

    async def aclose(self) -> None:
        await self._litellm.aclose()

    async def decompose(
        self,
        intent: str,
        agents: Sequence[AgentDescriptor],
        history: Sequence[ConversationTurn],
    ) -> list[Task]:
        agent_listing = json.dumps(
            [
                {"name": agent.name, "description": agent.description, "url": agent.url}
                for agent in agents
            ],
            indent=2,
        )
        messages = [
            AgentMessage(role="system", content=_DECOMPOSE_PROMPT.format(agents=agent_listing))
        ]
        for turn in history:
            role = "user" if turn.role == "user" else "assistant"
            messages.append(AgentMessage(role=role, content=turn.text))
        messages.append(AgentMessage(role="user", content=f'User Intent: "{intent}"'))

        raw = await self._complete(messages, model=self._settings.litellm_model, temperature=0.1)
        LOGGER.debug("Decomposition raw output: %s", raw)
        return self._parse_tasks(extract_json(raw))

    async def translate(self, intent: str, documentation: str) -> CallSpec:
        messages = [
            AgentMessage(
                role="system", content=_TRANSLATE_PROMPT.format(documentation=documentation)
            ),
            AgentMessage(role="user", content=f'User Intent: "{intent}"'),
        ]
        raw = await self._complete(messages, model=self._settings.litellm_model, temperature=0.1)
        LOGGER.debug("Translation raw output: %s", raw)
        candidate = extract_json(raw)
        if not isinstance(candidate, dict):
            raise TranslationFailure("Call specification must be a JSON object")
        try:
            return CallSpec.model_validate(candidate)
        except ValidationError as exc:
            raise TranslationFailure(f"Malformed call specification: {exc}") from exc

    async def summarize(self, intent: str, raw_response: Any) -> str:
        messages = [
            AgentMessage(role="system", content=_SUMMARY_PROMPT),
            AgentMessage(
                role="user",
                content=(
                    f'User Intent: "{intent}"\n'
                    f"System Response: {json.dumps(raw_response, default=str)}"
                ),
            ),
        ]
        summary = await self._complete(
            messages, model=self._settings.litellm_summary_model, temperature=0.5, json_mode=False
        )
        if not summary:
            raise TranslationFailure("Empty summary")
        return summary

    async def _complete(
        self,
        messages: list[AgentMessage],
        *,
        model: str,
        temperature: float,
        json_mode: bool = True,
    ) -> str:
        try:
            return await self._litellm.generate(
                messages, model=model, temperature=temperature, json_mode=json_mode
            )
        except LiteLLMError as exc:
            raise TranslationFailure(str(exc)) from exc

    @staticmethod
    def _parse_tasks(candidate: Any) -> list[Task]:
        if isinstance(candidate, dict):
            if isinstance(candidate.get("tasks"), list):
                entries = candidate["tasks"]
            elif "agentName" in candidate:
                entries = [candidate]
            else:
                entries = []
        elif isinstance(candidate, list):
            entries = candidate
        else:
            raise TranslationFailure("Decomposition must be a JSON object or array")

        tasks: list[Task] = []
        for entry in entries:
            try:
                tasks.append(Task.model_validate(entry))
            except ValidationError as exc:
                LOGGER.warning("Skipping malformed task %s (%s)", entry, exc)
        return tasks


__all__ = ["ITranslator", "LiteLLMTranslator", "extract_json"]
