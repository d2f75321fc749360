import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hackmate.ai import ai_service
from hackmate.ai.ai_router import router as ai_router
from hackmate.ai.ai_service import (
    AIService,
    AIServiceInvalidResponseError,
    AIServiceTimeoutError,
    UnknownActionError,
    build_prompt,
)
from hackmate.ai.docs_export import docs_filename, export_markdown
from hackmate.ai.gateway_client import AIGatewayClient, extract_json
from hackmate.errors import AIGatewayError
from hackmate.schemas.ai_schema import DocsRequest
from hackmate.schemas.project_schema import IdeaAnalysis


@pytest.fixture
def ai_app():
    app = FastAPI()
    app.include_router(ai_router)
    return app


def _client(handler):
    return AIGatewayClient(url="http://gateway.test/api/ai", transport=httpx.MockTransport(handler))


# ---------------- JSON extraction ----------------
def test_extract_json_variants():
    assert extract_json('{"a": 1}') == {"a": 1}
    assert extract_json('```json\n[{"title": "x"}]\n```') == [{"title": "x"}]
    assert extract_json('Here you go:\n```\n{"a": [1, 2]}\n```\nGood luck!') == {"a": [1, 2]}
    assert extract_json('Sure! {"a": true}') == {"a": True}

    with pytest.raises(AIGatewayError):
        extract_json("no json here")


# ---------------- gateway client ----------------
def test_error_body_is_raised_and_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(504, json={"error": "AI service timed out, please try again later"})

    with pytest.raises(AIGatewayError, match="timed out"):
        asyncio.run(_client(handler).request("chat", {"message": "hi"}))
    assert len(calls) == 1


def test_transport_failure_is_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AIGatewayError, match="unreachable"):
        asyncio.run(_client(handler).request("chat", {"message": "hi"}))


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"result": 42}),
    ],
)
def test_malformed_gateway_responses(response):
    with pytest.raises(AIGatewayError):
        asyncio.run(_client(lambda request: response).request("chat", {}))


def test_generate_tasks_sends_idea_and_parses_drafts():
    seen = {}
    idea = IdeaAnalysis(problem_statement="Lost tasks", features=["board"])

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"result": '```json\n[{"title": "Board", "effort": "High"}]\n```'})

    drafts = asyncio.run(_client(handler).generate_tasks("HackMate", "24h", idea))

    assert seen["action"] == "generate_tasks"
    assert seen["data"]["idea"]["problem_statement"] == "Lost tasks"
    assert [(d.title, d.effort, d.priority) for d in drafts] == [("Board", "High", "Medium")]


def test_incomplete_idea_analysis_is_an_error():
    handler = lambda request: httpx.Response(200, json={"result": '{"features": []}'})  # noqa: E731

    with pytest.raises(AIGatewayError):
        asyncio.run(_client(handler).analyze_idea("anything"))


def test_client_against_real_route(ai_app):
    client = AIGatewayClient(url="http://testserver/api/ai", transport=httpx.ASGITransport(app=ai_app))

    async def scenario():
        analysis = await client.analyze_idea("A planner for hackathon teams")
        drafts = await client.generate_tasks("HackMate", "48h")
        docs = await client.generate_docs(
            DocsRequest(project_name="HackMate", tech_stack="FastAPI", description="Planner", features=["board"])
        )
        return analysis, drafts, docs

    analysis, drafts, docs = asyncio.run(scenario())
    assert analysis.problem_statement == "A planner for hackathon teams"
    assert len(drafts) == 3
    assert docs.startswith("# HackMate")
    assert "- board" in docs


# ---------------- /api/ai route ----------------
def test_route_returns_result(ai_app):
    client = TestClient(ai_app)

    resp = client.post("/api/ai", json={"action": "chat", "data": {"message": "how do we start?"}})

    assert resp.status_code == 200
    assert resp.json() == {"result": "Let's break that down: how do we start?"}


def test_route_rejects_unknown_action(ai_app):
    resp = TestClient(ai_app).post("/api/ai", json={"action": "write_poem", "data": {}})

    assert resp.status_code == 400
    assert "write_poem" in resp.json()["error"]


@pytest.mark.parametrize(
    "error, status",
    [
        (AIServiceTimeoutError("slow"), 504),
        (AIServiceInvalidResponseError("empty"), 502),
        (ai_service.AIServiceError("boom"), 502),
    ],
)
def test_route_maps_provider_failures(ai_app, monkeypatch, error, status):
    def failing_run(self, action, data):
        raise error

    monkeypatch.setattr(AIService, "run", failing_run)
    resp = TestClient(ai_app).post("/api/ai", json={"action": "chat", "data": {}})

    assert resp.status_code == status
    assert set(resp.json()) == {"error"}


def test_docs_export_download(ai_app):
    resp = TestClient(ai_app).post("/api/docs/export", json={"project_name": "My App 2.0", "content": "# Docs"})

    assert resp.status_code == 200
    assert resp.text == "# Docs"
    assert resp.headers["content-type"].startswith("text/markdown")
    assert 'filename="my_app_2_0_documentation.md"' in resp.headers["content-disposition"]


# ---------------- service ----------------
def test_placeholder_answers_every_action():
    service = AIService()

    idea = json.loads(service.run("analyze_idea", {"idea": "Team planner"}))
    tasks = json.loads(service.run("generate_tasks", {"project_name": "x", "duration": "24h"}))

    assert idea["problem_statement"] == "Team planner"
    assert {t["effort"] for t in tasks} <= {"Low", "Medium", "High"}
    assert service.run("generate_docs", {"project_name": "X"}).startswith("# X")
    with pytest.raises(UnknownActionError):
        service.run("dance", {})


def test_build_prompt_renders_payload():
    system, user = build_prompt("generate_docs", {"project_name": "X", "features": ["a", "b"], "context": ""})

    assert "Markdown" in system
    assert user == "Project Name: X\nFeatures: a, b"


class FakeOpenAI:
    outcome = None

    def __init__(self, **kwargs):
        FakeOpenAI.kwargs = kwargs
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        if isinstance(FakeOpenAI.outcome, Exception):
            raise FakeOpenAI.outcome
        message = SimpleNamespace(content=FakeOpenAI.outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def openai_service(monkeypatch):
    monkeypatch.setattr(ai_service, "OpenAI", FakeOpenAI)
    service = AIService(timeout=5)
    service.provider = "openai"
    service.openai_key = "sk-test"
    return service


def test_openai_provider_never_retries(openai_service):
    FakeOpenAI.outcome = "  Ship the MVP first.  "

    assert openai_service.run("chat", {"message": "priorities?"}) == "Ship the MVP first."
    assert FakeOpenAI.kwargs["max_retries"] == 0
    assert FakeOpenAI.kwargs["timeout"] == 5


def test_openai_timeout_and_empty_answer(openai_service):
    FakeOpenAI.outcome = openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1"))
    with pytest.raises(AIServiceTimeoutError):
        openai_service.run("chat", {"message": "hi"})

    FakeOpenAI.outcome = ""
    with pytest.raises(AIServiceInvalidResponseError):
        openai_service.run("chat", {"message": "hi"})


# ---------------- docs export ----------------
def test_docs_filename_slug():
    assert docs_filename("HackMate AI!") == "hackmate_ai__documentation.md"
    assert docs_filename("ÉTÉ-2025") == "_t__2025_documentation.md"


def test_export_markdown_writes_file(tmp_path):
    path = export_markdown("# Docs", "Demo", tmp_path)

    assert path == tmp_path / "demo_documentation.md"
    assert path.read_text(encoding="utf-8") == "# Docs"
