import asyncio
import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.errors import ProviderFailure
from app.schemas.goal import Priority
from app.schemas.suggestion import SuggestionContext
from app.services.ai_service import GROQ_CHAT_URL, AIService, parse_subtasks_response
from app.services.memory_store import InMemoryGoalStore
from app.services.suggestion_fallback import GENERATED_BY
from main import create_app

PLAN = {
    "subtasks": [
        {"title": "Sketch the flow", "description": "Wireframes", "estimatedHours": 3, "priority": "HIGH",
         "dependencies": [], "skills": ["design"], "category": "planning"},
        {"title": "Wire up payments", "estimatedHours": "lots", "priority": "BLOCKER",
         "dependencies": "Sketch the flow"},
    ],
    "reasoning": "Design first",
    "estimatedTotalHours": 11,
    "criticalPath": ["Sketch the flow", "Wire up payments"],
    "tips": ["Ship small"],
}


def groq_settings(**overrides):
    values = dict(_env_file=None, GROQ_API_KEY="gsk-test", GROQ_MODEL="test-model", SUGGESTION_TIMEOUT_SECONDS=5)
    values.update(overrides)
    return Settings(**values)


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def service_with(handler, **overrides):
    return AIService(groq_settings(**overrides), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_generate_subtasks_uses_provider_answer():
    seen = []

    def handler(request):
        seen.append(request)
        return completion(json.dumps(PLAN))

    result = await service_with(handler).generate_subtasks("build a checkout", SuggestionContext(team_size=2))

    assert result.generated_by == "test-model"
    assert [t.title for t in result.subtasks] == ["Sketch the flow", "Wire up payments"]
    second = result.subtasks[1]
    assert second.estimated_hours is None
    assert second.priority == Priority.MEDIUM
    assert second.dependencies == []
    assert second.description == ""
    assert second.category == "execution"
    assert result.estimated_total_hours == 11
    assert result.tips == ["Ship small"]

    request = seen[0]
    assert str(request.url) == GROQ_CHAT_URL
    assert request.headers["Authorization"] == "Bearer gsk-test"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert "build a checkout" in body["messages"][-1]["content"]
    assert "Team Size: 2" in body["messages"][-1]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(429, json={"error": "rate limited"}),
    httpx.Response(200, json={"unexpected": True}),
    completion("this is not json"),
    completion(json.dumps({"subtasks": []})),
    completion(json.dumps({"subtasks": ["just a string"]})),
])
async def test_generate_subtasks_falls_back_on_bad_answers(response):
    ai = service_with(lambda request: response)
    result = await ai.generate_subtasks("build and test a checkout flow")

    assert result.generated_by == GENERATED_BY
    assert len(result.subtasks) == 5


@pytest.mark.asyncio
async def test_generate_subtasks_falls_back_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await service_with(handler).generate_subtasks("Learn Spanish")
    assert result.generated_by == GENERATED_BY


@pytest.mark.asyncio
async def test_generate_subtasks_falls_back_on_timeout():
    async def handler(request):
        await asyncio.sleep(1)
        return completion(json.dumps(PLAN))

    ai = service_with(handler, SUGGESTION_TIMEOUT_SECONDS=0.05)
    result = await ai.generate_subtasks("Learn Spanish")
    assert result.generated_by == GENERATED_BY


@pytest.mark.asyncio
async def test_unconfigured_service_never_calls_provider():
    calls = []

    def handler(request):
        calls.append(request)
        return completion(json.dumps(PLAN))

    ai = AIService(Settings(_env_file=None, GROQ_API_KEY=None), transport=httpx.MockTransport(handler))
    result = await ai.generate_subtasks("Learn Spanish")

    assert result.generated_by == GENERATED_BY
    assert calls == []
    assert ai.status()["groq"]["available"] is False
    assert ai.status()["fallback"]["available"] is True


@pytest.mark.asyncio
async def test_optimize_title_uses_provider_and_clips():
    answer = {"optimizedTitle": "Launch the online bakery storefront", "alternatives": ["Bake & ship"], "reasoning": "ok"}
    ai = service_with(lambda request: completion(json.dumps(answer)))

    suggestion = await ai.optimize_title("make a website for my bakery", max_length=20)
    assert suggestion.optimized_title == "Launch the online ba"
    assert suggestion.alternatives == ["Bake & ship"]
    assert suggestion.generated_by == "test-model"


@pytest.mark.asyncio
async def test_optimize_title_falls_back():
    ai = service_with(lambda request: completion(json.dumps({"optimizedTitle": ""})))

    suggestion = await ai.optimize_title("create a website for my bakery")
    assert suggestion.optimized_title == "Build a website for my bakery"
    assert suggestion.generated_by == GENERATED_BY


def test_parse_subtasks_response_defaults():
    result = parse_subtasks_response(json.dumps({"subtasks": [{"title": "x" * 150}, {}]}), generated_by="m")

    assert len(result.subtasks[0].title) == 100
    assert result.subtasks[1].title == "Subtask 2"
    assert result.reasoning == "Tasks generated based on goal analysis"
    assert result.estimated_total_hours is None
    assert result.critical_path == []


@pytest.mark.parametrize("content", ["", "[1, 2]", json.dumps({"subtasks": "nope"})])
def test_parse_subtasks_response_rejects_unusable_content(content):
    with pytest.raises(ProviderFailure):
        parse_subtasks_response(content, generated_by="m")


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    '{"subtasks": [{"title": "A", "estimatedHours": Infinity}]}',
    '{"subtasks": [{"title": "A", "estimatedHours": 2}], "estimatedTotalHours": NaN}',
    '{"subtasks": [{"title": "A", "estimatedHours": -Infinity}]}',
])
async def test_generate_subtasks_falls_back_on_non_finite_numbers(content):
    result = await service_with(lambda request: completion(content)).generate_subtasks("Learn Spanish")

    assert result.generated_by == GENERATED_BY
    assert all(t.estimated_hours is not None for t in result.subtasks)


@pytest.mark.parametrize("content", [
    '{"subtasks": [{"title": "A"}], "estimatedTotalHours": NaN}',
    '{"subtasks": [{"title": "A", "estimatedHours": Infinity}]}',
])
def test_parse_subtasks_response_rejects_non_finite_numbers(content):
    with pytest.raises(ProviderFailure):
        parse_subtasks_response(content, generated_by="m")


@pytest.mark.asyncio
async def test_non_finite_provider_answer_still_serializes(settings):
    answer = '{"subtasks": [{"title": "A", "estimatedHours": Infinity}], "estimatedTotalHours": NaN}'
    ai = service_with(lambda request: completion(answer))
    app = create_app(settings=settings, store=InMemoryGoalStore(), ai_service=ai)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/api/auth/register", json={"email": "nan@example.com", "password": "secret123"})
        login = await client.post("/api/auth/login", json={"email": "nan@example.com", "password": "secret123"})
        token = login.json()["data"]["tokens"]["accessToken"]
        resp = await client.post("/api/llm/generate-subtasks", json={"goalDescription": "Learn Spanish"},
                                 headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["data"]["generatedBy"] == GENERATED_BY
