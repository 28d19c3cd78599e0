"""
PlanForge - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

# Keep real credentials out of the test run
os.environ["ENVIRONMENT"] = "test"
for key in (
    "SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_SERVICE_ROLE_KEY",
    "GOOGLE_AI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
    "IMAGE_API_URL", "IMAGE_API_KEY", "S3_BUCKET_NAME",
):
    os.environ[key] = ""

from planforge.main import app
from planforge.core.dependencies import get_current_user
from planforge.database.supabase_client import SupabaseClient, get_supabase
from planforge.modules.ai.service import AIService, get_ai_service
from planforge.modules.auth.service import clear_auth_cache
from planforge.modules.rag.embeddings import EmbeddingClient, get_embedding_client
from planforge.modules.rag.routes import get_rag_service
from planforge.modules.rag.service import RAGService
from planforge.modules.bots.routes import get_bot_rag_service

from tests.mocks.fake_ai import FakeOpenAI, FakeProvider
from tests.mocks.fake_supabase import FakeSupabase

TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TEST_TOKEN = "test-token"


@pytest.fixture(autouse=True)
def reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_db() -> FakeSupabase:
    """Fresh in-memory Supabase with one registered user"""
    db = FakeSupabase()
    db.auth.add_user("tester@example.com", "password123", user_id=TEST_USER_ID, token=TEST_TOKEN)
    db.defaults["custom_bots"] = {"usage_count": 0, "like_count": 0, "is_active": True}
    SupabaseClient._client = db
    yield db
    SupabaseClient.reset_client()


@pytest.fixture
def test_user() -> dict:
    return {"id": TEST_USER_ID, "email": "tester@example.com", "user_metadata": {}, "app_metadata": {}}


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def embedder(fake_openai: FakeOpenAI) -> EmbeddingClient:
    return EmbeddingClient(client=fake_openai, model="test-embedding")


@pytest.fixture
def providers() -> dict:
    return {
        "gemini": FakeProvider("Gemini says hi"),
        "chatgpt": FakeProvider("ChatGPT says hi"),
        "claude": FakeProvider("Claude says hi"),
    }


@pytest.fixture
def ai_service(providers: dict) -> AIService:
    return AIService(providers=providers)


@pytest.fixture
async def client(
    fake_db: FakeSupabase,
    test_user: dict,
    embedder: EmbeddingClient,
    fake_openai: FakeOpenAI,
    ai_service: AIService,
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated client; Supabase, embeddings and LLMs are in-memory fakes"""
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_embedding_client] = lambda: embedder
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_rag_service] = lambda: RAGService(fake_db, embedder, chat_client=fake_openai)
    app.dependency_overrides[get_bot_rag_service] = lambda: RAGService(fake_db, embedder, chat_client=fake_openai)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(fake_db: FakeSupabase) -> AsyncGenerator[AsyncClient, None]:
    """Client that resolves bearer tokens through the fake Supabase auth"""
    app.dependency_overrides[get_supabase] = lambda: fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}


@pytest.fixture
def project(fake_db: FakeSupabase) -> dict:
    """A private project owned by the test user"""
    return fake_db.seed("projects", {
        "name": "Shop Renewal",
        "description": "E-commerce renewal",
        "category": "proposal",
        "status": "active",
        "owner_id": TEST_USER_ID,
        "is_public": False,
        "visibility_level": "private",
        "tags": [],
        "metadata": {},
    })[0]


@pytest.fixture
def foreign_project(fake_db: FakeSupabase) -> dict:
    """A private project owned by someone else"""
    return fake_db.seed("projects", {
        "name": "Secret",
        "category": "development",
        "status": "active",
        "owner_id": OTHER_USER_ID,
        "is_public": False,
        "visibility_level": "private",
    })[0]
