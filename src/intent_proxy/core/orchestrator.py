"""Route intents to agents and report progress as a stream of events."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator

from opentelemetry import trace

from intent_proxy.stores.base import IAgentDirectory, IConversationStore

from .config import Settings
from .errors import AgentNotFound, ErrorCode, NoPlanFound, ProxyError
from .executor import RequestExecutor
from .models import (
    ConversationSession,
    ConversationTurn,
    ExecutionResult,
    ProgressEvent,
    Task,
)
from .streaming import ProgressStream
from .translator import ITranslator

LOGGER = logging.getLogger(__name__)
TRACER = trace.get_tracer(__name__)


class Orchestrator:
    """Resolve an intent to a direct call or a multi-agent plan and run it.

    Plans run strictly in the order returned by the translator; the event for
    task *n* is always emitted before task *n+1* starts. Each request runs in
    its own background task so that a caller disconnecting mid-stream does
    not interrupt execution or the session update.
    """

    def __init__(
        self,
        settings: Settings,
        directory: IAgentDirectory,
        sessions: IConversationStore,
        executor: RequestExecutor,
        translator: ITranslator,
    ) -> None:
        self._settings = settings
        self._directory = directory
        self._sessions = sessions
        self._executor = executor
        self._translator = translator
        self._inflight: set[asyncio.Task[None]] = set()

    async def handle(
        self,
        intent: str,
        target_url: str | None = None,
        session_id: str | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield progress events for ``intent`` until ``done`` or a top-level ``error``."""

        stream = ProgressStream()
        task = asyncio.create_task(
            self.run(intent, stream, target_url=target_url, session_id=session_id)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        try:
            async for event in stream:
                yield event
        finally:
            if not task.done():
                LOGGER.info("Progress consumer left early; finishing request in background")
            stream.detach()

    async def join(self) -> None:
        """Wait for every in-flight request to finish."""

        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def run(
        self,
        intent: str,
        stream: ProgressStream,
        *,
        target_url: str | None = None,
        session_id: str | None = None,
    ) -> None:
        """Process one request, writing every event to ``stream`` and closing it."""

        with TRACER.start_as_current_span("orchestrator.handle") as span:
            span.set_attribute("proxy.mode", "direct" if target_url else "auto")
            try:
                session = await self._resolve_session(session_id)
                LOGGER.info('Request "%s" (session %s)', intent, session.session_id)
                stream.emit(
                    ProgressEvent(
                        type="status",
                        message="Analyzing context & intent...",
                        session_id=session.session_id,
                    )
                )
                if target_url:
                    await self._run_direct(intent, target_url, stream)
                else:
                    await self._run_plan(intent, session, stream)
                stream.emit(ProgressEvent(type="done", session_id=session.session_id))
            except ProxyError as exc:
                LOGGER.warning("Request failed: %s", exc)
                stream.emit(ProgressEvent(type="error", message=str(exc), code=exc.code.value))
            except Exception as exc:
                LOGGER.exception("Orchestration failed")
                stream.emit(
                    ProgressEvent(
                        type="error",
                        message=str(exc) or exc.__class__.__name__,
                        code=ErrorCode.INTERNAL_ERROR.value,
                    )
                )
            finally:
                stream.close()

    async def _resolve_session(self, session_id: str | None) -> ConversationSession:
        if session_id:
            session = await self._sessions.get(session_id)
            if session is not None:
                return session
            return ConversationSession(session_id=session_id)
        return ConversationSession(session_id=str(uuid.uuid4()))

    async def _run_direct(self, intent: str, target_url: str, stream: ProgressStream) -> None:
        stream.emit(
            ProgressEvent(type="status", message=f"Target provided: {target_url}. Executing...")
        )
        result = await self._executor.execute(target_url, intent, stream=stream)
        stream.emit(
            self._result_event("Direct Target", "Single Execution", result.reasoning, result)
        )

    async def _run_plan(
        self, intent: str, session: ConversationSession, stream: ProgressStream
    ) -> None:
        agents = await self._directory.list_agents()
        tasks = await self._translator.decompose(intent, agents, session.history)
        if not tasks:
            raise NoPlanFound()

        stream.emit(ProgressEvent(type="plan", tasks=tasks))
        for task in tasks:
            await self._run_task(task, stream)

        await self._record_turns(session, intent, tasks)

    async def _run_task(self, task: Task, stream: ProgressStream) -> None:
        agent = await self._directory.get(task.agent_name)
        if agent is None:
            missing = AgentNotFound(task.agent_name)
            LOGGER.warning("%s", missing)
            stream.emit(
                ProgressEvent(
                    type="error",
                    message=str(missing),
                    code=missing.code.value,
                    agent=task.agent_name,
                )
            )
            return

        stream.emit(ProgressEvent(type="status", message=f"Contacting {agent.name}..."))
        try:
            result = await self._executor.execute(agent.url, task.sub_intent, stream=stream)
        except ProxyError as exc:
            LOGGER.warning("Task for %s failed: %s", agent.name, exc)
            self._emit_task_error(stream, agent.name, str(exc), exc.code)
            return
        except Exception as exc:
            LOGGER.error("Task for %s failed unexpectedly", agent.name, exc_info=True)
            self._emit_task_error(
                stream, agent.name, str(exc) or exc.__class__.__name__, ErrorCode.INTERNAL_ERROR
            )
            return

        reasoning = f"[Task Logic]: {task.reasoning}\n[Execution Logic]: {result.reasoning}"
        stream.emit(self._result_event(agent.name, task.sub_intent, reasoning, result))

    async def _record_turns(
        self, session: ConversationSession, intent: str, tasks: list[Task]
    ) -> None:
        session.history.append(ConversationTurn(role="user", text=intent))
        if tasks:
            summary = ". ".join(
                f"{task.agent_name} executed '{task.sub_intent}'" for task in tasks
            )
            session.history.append(ConversationTurn(role="agent-summary", text=summary))
        session.history = session.history[-self._settings.session_history_limit :]
        await self._sessions.save(session)

    @staticmethod
    def _emit_task_error(
        stream: ProgressStream, agent_name: str, detail: str, code: ErrorCode
    ) -> None:
        stream.emit(
            ProgressEvent(
                type="error",
                message=f"Failed to execute {agent_name}: {detail}",
                code=code.value,
                agent=agent_name,
            )
        )

    @staticmethod
    def _result_event(
        agent: str, action: str, reasoning: str, result: ExecutionResult
    ) -> ProgressEvent:
        return ProgressEvent(
            type="result",
            agent=agent,
            action=action,
            reasoning=reasoning,
            summary=result.summary,
            result=result.raw_response,
            source=result.source,
        )


__all__ = ["Orchestrator"]
