import json

import pytest
from fastapi import HTTPException
from httpx import AsyncClient

from planforge.modules.ai.providers import build_transcript, split_system_prompt
from planforge.modules.ai.schemas import ChatRequest, ModelSelectionCriteria
from planforge.modules.ai.service import AIService, calculate_cost, select_model
from tests.mocks.fake_ai import FakeProvider


def _request(**kwargs) -> ChatRequest:
    return ChatRequest(messages=[{"role": "user", "content": "Hello"}], **kwargs)


class TestModelSelection:
    def test_explicit_model_wins(self):
        criteria = ModelSelectionCriteria(requiresMCP=True)
        assert select_model(criteria, "chatgpt") == "chatgpt"

    def test_criteria(self):
        assert select_model(ModelSelectionCriteria(requiresMCP=True)) == "claude"
        assert select_model(ModelSelectionCriteria(needsCreativity=True)) == "chatgpt"
        assert select_model(ModelSelectionCriteria(costPriority="high")) == "gemini"

    def test_default(self):
        assert select_model() == "gemini"
        assert select_model(ModelSelectionCriteria()) == "gemini"


def test_calculate_cost():
    assert calculate_cost("chatgpt", 600, 400) == pytest.approx(0.03)
    assert calculate_cost("gemini", 0, 0) == 0


def test_transcript_drops_system_messages():
    messages = [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ]
    assert build_transcript(messages) == "User: Hi\nAssistant: Hello"
    system, rest = split_system_prompt(messages)
    assert system == "Be brief"
    assert [m["role"] for m in rest] == ["user", "assistant"]


def test_chat_falls_back_to_gemini(providers):
    providers["claude"] = FakeProvider(fail=RuntimeError("overloaded"))
    service = AIService(providers=providers)

    response = service.chat(_request(model="claude"))

    assert response.model == "gemini"
    assert response.content == "Gemini says hi"


def test_chat_without_fallback_raises(providers):
    providers["claude"] = FakeProvider(fail=RuntimeError("overloaded"))
    service = AIService(providers=providers)

    with pytest.raises(HTTPException) as exc:
        service.chat(_request(model="claude"), allow_fallback=False)
    assert exc.value.status_code == 500


def test_unconfigured_provider_is_503():
    service = AIService()
    with pytest.raises(HTTPException) as exc:
        service.get_provider("chatgpt")
    assert exc.value.status_code == 503
    assert "OpenAI" in exc.value.detail


def test_request_limits_override_model_defaults(providers):
    service = AIService(providers=providers)
    service.chat(_request(model="chatgpt", maxTokens=100, temperature=0.2))
    call = providers["chatgpt"].calls[-1]
    assert call["max_tokens"] == 100
    assert call["temperature"] == 0.2


@pytest.mark.asyncio
async def test_chat_endpoint(client: AsyncClient):
    """Test a non-streaming chat completion"""
    response = await client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Hello"}],
        "model": "chatgpt",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["content"] == "ChatGPT says hi"
    assert data["model"] == "chatgpt"
    assert data["usage"]["totalTokens"] == 15
    assert data["finishReason"] == "stop"


@pytest.mark.asyncio
async def test_chat_rejects_empty_messages(client: AsyncClient):
    response = await client.post("/api/chat", json={"messages": []})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_chat_rejects_blank_content(client: AsyncClient):
    response = await client.post("/api/chat", json={"messages": [{"role": "user", "content": "  "}]})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_chat_rejects_unknown_model(client: AsyncClient):
    response = await client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Hi"}],
        "model": "llama",
    })

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_streaming_chat(client: AsyncClient):
    """Test server-sent event framing of a streamed reply"""
    response = await client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Hello"}],
        "model": "gemini",
        "stream": True,
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    frames = [line[len("data: "):] for line in response.text.split("\n\n") if line.startswith("data: ")]
    assert frames[-1] == "[DONE]"
    chunks = [json.loads(frame) for frame in frames[:-1]]
    assert "".join(c.get("chunk", "") for c in chunks) == "Mock reply"
    assert chunks[-1]["done"] is True
    assert chunks[-1]["usage"]["completionTokens"] == 2


@pytest.mark.asyncio
async def test_streaming_error_frame(client: AsyncClient, providers):
    """Test a provider failure mid-stream becomes an error frame"""
    providers["gemini"].fail = RuntimeError("boom")
    response = await client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Hello"}],
        "stream": True,
    })

    frames = [line[len("data: "):] for line in response.text.split("\n\n") if line.startswith("data: ")]
    assert json.loads(frames[-1]) == {"error": "boom", "done": True}


@pytest.mark.asyncio
async def test_list_models(client: AsyncClient):
    response = await client.get("/api/models")

    assert response.status_code == 200
    models = response.json()["data"]["models"]
    assert {m["id"] for m in models} == {"gemini", "chatgpt", "claude"}
    claude = next(m for m in models if m["id"] == "claude")
    assert claude["supportsMCP"] is True
    assert claude["available"] is True


@pytest.mark.asyncio
async def test_chat_models_summary(client: AsyncClient):
    response = await client.get("/api/chat")

    assert response.status_code == 200
    assert len(response.json()["models"]) == 3
    assert "timestamp" in response.json()


@pytest.mark.asyncio
async def test_model_check(client: AsyncClient, providers):
    providers["claude"].reply = "Test successful"
    response = await client.post("/api/models/test", json={"model": "claude"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["connected"] is True
    assert providers["claude"].calls[-1]["max_tokens"] == 50
