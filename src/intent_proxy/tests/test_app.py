from __future__ import annotations

import json

import httpx
from fastapi.testclient import TestClient

from intent_proxy.core.app import create_app
from intent_proxy.core.config import Settings
from intent_proxy.core.models import CallSpec, Task
from intent_proxy.stores import build_stores
from intent_proxy.tests.support import StubTranslator

SALON = "http://salon.local"


def salon_agent(request: httpx.Request) -> httpx.Response:
    if request.url.host != "salon.local":
        return httpx.Response(404)
    if request.url.path == "/docs":
        return httpx.Response(200, json={"paths": {"/appointments": {"post": {}}}})
    if request.url.path == "/appointments":
        return httpx.Response(201, json={"id": "A1"})
    return httpx.Response(404)


def build_client(settings: Settings, translator: StubTranslator | None = None) -> TestClient:
    app = create_app(
        settings,
        stores=build_stores(settings),
        translator=translator or StubTranslator(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(salon_agent)),
    )
    return TestClient(app)


def test_register_and_list_agents(settings: Settings) -> None:
    client = build_client(settings)

    response = client.post(
        "/registry/register",
        json={"name": "SalonBot", "url": f"{SALON}/", "description": "Books haircuts"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["agent"]["url"] == SALON

    listing = client.get("/registry/agents")
    assert listing.status_code == 200
    assert [agent["name"] for agent in listing.json()] == ["SalonBot"]


def test_register_rejects_missing_fields(settings: Settings) -> None:
    client = build_client(settings)

    missing = client.post("/registry/register", json={"name": "SalonBot", "description": "x"})
    blank = client.post(
        "/registry/register", json={"name": "  ", "url": SALON, "description": "x"}
    )

    for response in (missing, blank):
        assert response.status_code == 400
        payload = response.json()
        assert payload["code"] == "VALIDATION_ERROR"
        assert payload["error"].startswith("Missing or invalid fields")
    assert "url" in missing.json()["error"]


def test_execute_requires_intent(settings: Settings) -> None:
    client = build_client(settings)

    response = client.post("/proxy/execute", json={"targetUrl": SALON})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_execute_streams_ndjson_and_records_history(settings: Settings) -> None:
    translator = StubTranslator(
        tasks=[Task(agent_name="SalonBot", sub_intent="Book a haircut", reasoning="salon")],
        call_specs=[CallSpec(endpoint="/appointments", body={"service": "haircut"})],
        summary="Booked.",
    )
    client = build_client(settings, translator)
    client.post(
        "/registry/register",
        json={"name": "SalonBot", "url": SALON, "description": "Books haircuts"},
    )

    response = client.post("/proxy/execute", json={"userIntent": "Book a haircut tomorrow"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    events = [json.loads(line) for line in response.text.splitlines() if line]
    assert [event["type"] for event in events] == ["status", "plan", "status", "result", "done"]
    assert events[1]["tasks"][0]["agentName"] == "SalonBot"
    assert events[3]["result"] == {"id": "A1"}
    assert events[3]["source"] == "TRANSLATED"
    assert "code" not in events[3]

    session_id = events[-1]["sessionId"]
    history = client.get(f"/sessions/{session_id}/history")
    assert history.status_code == 200
    assert [turn["role"] for turn in history.json()["history"]] == ["user", "agent-summary"]


def test_execute_direct_mode_reports_errors_in_stream(settings: Settings) -> None:
    client = build_client(settings, StubTranslator())

    response = client.post(
        "/proxy/execute", json={"intent": "Book a haircut", "targetUrl": "http://nowhere.local"}
    )

    assert response.status_code == 200
    events = [json.loads(line) for line in response.text.splitlines() if line]
    assert events[-1]["type"] == "error"
    assert events[-1]["code"] == "DOCUMENTATION_UNAVAILABLE"


def test_unknown_session_history_is_404(settings: Settings) -> None:
    client = build_client(settings)

    assert client.get("/sessions/missing/history").status_code == 404


def test_healthz(settings: Settings) -> None:
    client = build_client(settings)

    assert client.get("/healthz").json()["status"] == "ok"
