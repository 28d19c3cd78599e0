import pytest
from httpx import AsyncClient

from planforge.config import settings
from planforge.modules.rag.document_processor import extract_metadata, split_into_chunks
from planforge.modules.rag.schemas import RAGQueryOptions
from planforge.modules.rag.service import (
    FALLBACK_CONFIDENCE, RAGService, build_context, calculate_confidence, rewrite_with_history
)
from planforge.modules.rag.vector_search import combine_results, keyword_score, rank_results

from tests.mocks.fake_ai import FakeOpenAI

NOTES = (
    "Executive summary. The shop needs a payment gateway integration before launch. "
    "Contact pm@example.com for details. Security review is planned for 03/15/2025. "
    "The catalog must support ten thousand products and fast search."
)


def chunk_row(chunk_id: str, text: str, similarity: float, project_id=None, document_id="doc-1") -> dict:
    return {
        "id": chunk_id,
        "chunk_text": text,
        "metadata": {"document_file_name": "notes.txt"},
        "similarity": similarity,
        "document_id": document_id,
        "project_id": project_id,
    }


def test_split_into_chunks_windows_and_overlap():
    """Test fixed windows advance by size minus overlap"""
    chunks = split_into_chunks("x" * 250, chunk_size=100, overlap=20)

    assert [len(c) for c in chunks] == [100, 100, 90]


def test_split_into_chunks_prefers_sentence_end():
    text = "a" * 60 + ". " + "b" * 60
    chunks = split_into_chunks(text, chunk_size=100, overlap=10)

    assert chunks[0] == "a" * 60 + "."
    assert chunks[-1].endswith("b" * 60)


def test_split_into_chunks_edge_cases():
    assert split_into_chunks("", chunk_size=100, overlap=20) == []
    with pytest.raises(ValueError):
        split_into_chunks("text", chunk_size=100, overlap=100)
    with pytest.raises(ValueError):
        split_into_chunks("text", chunk_size=0, overlap=0)


def test_extract_metadata():
    metadata = extract_metadata(NOTES, "notes.txt")

    assert metadata["file_name"] == "notes.txt"
    assert metadata["content_length"] == len(NOTES)
    assert metadata["emails"] == ["pm@example.com"]
    assert metadata["dates"] == ["03/15/2025"]
    assert "summary" in metadata["sections"]


def test_keyword_score_fraction_of_words():
    assert keyword_score("payment gateway", "Payment gateway integration") == 1.0
    assert keyword_score("payment refund", "payment gateway") == 0.5
    assert keyword_score("", "anything") == 0.0


def test_combine_results_sums_weighted_scores():
    vector = [{"id": "a", "similarity_score": 1.0}, {"id": "b", "similarity_score": 0.5}]
    keyword = [{"id": "a", "similarity_score": 1.0}, {"id": "c", "similarity_score": 1.0}]

    combined = combine_results(vector, keyword, vector_weight=0.7, keyword_weight=0.3)

    assert [r["id"] for r in combined] == ["a", "b", "c"]
    assert combined[0]["similarity_score"] == pytest.approx(1.0)
    assert combined[1]["similarity_score"] == pytest.approx(0.35)
    assert combined[2]["similarity_score"] == pytest.approx(0.3)


def test_rank_results_boosts_exact_phrase():
    results = [
        {"id": "long", "chunk_text": "x" * 600, "similarity_score": 0.8},
        {"id": "match", "chunk_text": "Payment gateway setup", "similarity_score": 0.7},
    ]

    ranked = rank_results(results, "payment gateway")

    assert ranked[0]["id"] == "match"
    assert ranked[0]["similarity_score"] == pytest.approx(0.7 * 1.2 * 1.1)
    assert ranked[1]["similarity_score"] == pytest.approx(0.8)


def test_build_context_respects_token_budget():
    results = [
        {"id": "low", "chunk_text": "b" * 400, "similarity_score": 0.5, "document_name": "b.txt"},
        {"id": "high", "chunk_text": "a" * 400, "similarity_score": 0.9, "document_name": "a.txt"},
    ]

    context, used = build_context(results, max_tokens=120)

    assert [r["id"] for r in used] == ["high"]
    assert context.startswith("Source: a.txt\n")


def test_calculate_confidence():
    assert calculate_confidence([], "anything") == FALLBACK_CONFIDENCE

    sources = [{"similarity_score": 1.0}] * 5
    assert calculate_confidence(sources, "short") == pytest.approx(0.9)
    assert calculate_confidence(sources, "Based on the docs, " + "x" * 100) == pytest.approx(1.0)


def test_rewrite_with_history_only_for_back_references():
    history = [
        {"role": "user", "content": "What is the budget?"},
        {"role": "assistant", "content": "About 50 million."},
    ]

    assert rewrite_with_history("Who approves payments?", history) == "Who approves payments?"
    rewritten = rewrite_with_history("Can it be reduced?", history)
    assert rewritten.startswith("Previous context: What is the budget? About 50 million.")
    assert rewritten.endswith("Current question: Can it be reduced?")


@pytest.mark.asyncio
async def test_upload_indexes_text_document(client: AsyncClient, fake_db, fake_openai, project):
    """Test uploading a text file stores, chunks and embeds it"""
    response = await client.post(
        "/api/rag/upload",
        files={"file": ("notes.txt", NOTES.encode("utf-8"), "text/plain")},
        data={"projectId": project["id"], "chunkSize": "100", "chunkOverlap": "20"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    chunks = fake_db.tables["document_chunks"]
    assert body["processing"]["chunks_count"] == len(chunks) > 1
    assert body["processing"]["embeddings_generated"] is True
    assert all(len(c["embedding"]) == 8 for c in chunks)
    assert all(c["project_id"] == project["id"] for c in chunks)
    assert [c["chunk_index"] for c in chunks] == list(range(len(chunks)))
    assert sum(len(batch) for batch in fake_openai.embedding_calls) == len(chunks)

    document = fake_db.tables["documents"][0]
    assert document["metadata"]["processed"] is True
    assert document["metadata"]["chunks_count"] == len(chunks)
    assert document["extracted_content"] == NOTES
    assert len(fake_db.storage.objects) == 1

    listed = await client.get("/api/rag/documents", params={"projectId": project["id"]})
    assert [d["id"] for d in listed.json()["documents"]] == [document["id"]]


@pytest.mark.asyncio
async def test_upload_without_embeddings(client: AsyncClient, fake_db, fake_openai):
    response = await client.post(
        "/api/rag/upload",
        files={"file": ("notes.txt", NOTES.encode("utf-8"), "text/plain")},
        data={"generateEmbeddings": "false"},
    )

    assert response.status_code == 200
    assert fake_openai.embedding_calls == []
    assert all(c["embedding"] is None for c in fake_db.tables["document_chunks"])


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type(client: AsyncClient, fake_db):
    response = await client.post(
        "/api/rag/upload",
        files={"file": ("image.png", b"\x89PNG", "image/png")},
    )

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["error"]
    assert fake_db.tables.get("documents", []) == []


@pytest.mark.asyncio
async def test_upload_rejects_non_extractable_doc(client: AsyncClient, fake_db):
    response = await client.post(
        "/api/rag/upload",
        files={"file": ("legacy.doc", b"binary", "application/msword")},
    )

    assert response.status_code == 400
    assert fake_db.storage.objects == {}


@pytest.mark.asyncio
async def test_upload_to_foreign_project_forbidden(client: AsyncClient, foreign_project):
    response = await client.post(
        "/api/rag/upload",
        files={"file": ("notes.txt", b"hello world", "text/plain")},
        data={"projectId": foreign_project["id"]},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_upload_rolls_back_when_embedding_fails(client: AsyncClient, fake_db, fake_openai):
    """Test a failed embedding call removes the document and its file"""
    fake_openai.fail_embeddings = True

    response = await client.post(
        "/api/rag/upload",
        files={"file": ("notes.txt", NOTES.encode("utf-8"), "text/plain")},
    )

    assert response.status_code == 500
    assert response.json()["error"].startswith("Document processing failed")
    assert fake_db.tables["documents"] == []
    assert fake_db.storage.objects == {}


@pytest.mark.asyncio
async def test_delete_document(client: AsyncClient, fake_db):
    upload = await client.post(
        "/api/rag/upload",
        files={"file": ("notes.txt", NOTES.encode("utf-8"), "text/plain")},
    )
    document_id = upload.json()["document"]["id"]

    response = await client.delete(f"/api/rag/documents/{document_id}")

    assert response.status_code == 200
    assert fake_db.tables["documents"] == []
    assert fake_db.tables["document_chunks"] == []
    assert fake_db.storage.objects == {}

    missing = await client.delete(f"/api/rag/documents/{document_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_semantic_search(client: AsyncClient, fake_db):
    fake_db.rpc_results["search_document_chunks"] = [
        chunk_row("c1", "Payment gateway integration", 0.9),
        chunk_row("c2", "Unrelated marketing copy " * 40, 0.75),
    ]

    response = await client.post("/api/rag/search", json={
        "query": "payment gateway",
        "searchType": "semantic",
        "limit": 5,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["searchType"] == "semantic"
    assert [r["id"] for r in body["results"]] == ["c1", "c2"]
    assert body["results"][0]["document_name"] == "notes.txt"
    assert body["metadata"]["total_results"] == 2
    name, params = fake_db.rpc_calls[0]
    assert name == "search_document_chunks"
    assert params["match_count"] == 5
    assert len(params["query_embedding"]) == 8


@pytest.mark.asyncio
async def test_hybrid_search_merges_keyword_hits(client: AsyncClient, fake_db, project):
    """Test hybrid search combines vector and keyword results for the same chunk"""
    fake_db.rpc_results["search_document_chunks"] = [
        chunk_row("c1", "Payment gateway integration is required.", 0.9, project["id"]),
    ]
    fake_db.seed(
        "document_chunks",
        chunk_row("c1", "Payment gateway integration is required.", 0.0, project["id"]),
        chunk_row("c3", "The gateway for partners.", 0.0, project["id"]),
        chunk_row("c4", "Payment gateway elsewhere.", 0.0, "other-project"),
    )

    response = await client.post("/api/rag/search", json={
        "query": "payment gateway",
        "projectId": project["id"],
    })

    results = response.json()["results"]
    assert [r["id"] for r in results] == ["c1", "c3"]
    assert results[0]["similarity_score"] > results[1]["similarity_score"]


@pytest.mark.asyncio
async def test_search_validation(client: AsyncClient):
    invalid = await client.post("/api/rag/search", json={"query": "x", "searchType": "fuzzy"})
    assert invalid.status_code == 400
    assert "Invalid search type" in invalid.json()["error"]
    assert invalid.json()["error"].startswith("searchType: ")
    assert "knowledge_base, global" in invalid.json()["error"]

    no_bot = await client.post("/api/rag/search", json={"query": "x", "searchType": "knowledge_base"})
    assert no_bot.status_code == 400
    assert "customBotId" in no_bot.json()["error"]

    empty = await client.post("/api/rag/search", json={"query": "   "})
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_search_limits_are_clamped(client: AsyncClient, fake_db):
    response = await client.post("/api/rag/search", json={
        "query": "payment",
        "searchType": "semantic",
        "limit": 500,
        "threshold": 0.01,
    })

    options = response.json()["metadata"]["search_options"]
    assert options["limit"] == 50
    assert options["threshold"] == 0.1


@pytest.mark.asyncio
async def test_search_embedding_failure(client: AsyncClient, fake_openai):
    fake_openai.fail_embeddings = True

    response = await client.post("/api/rag/search", json={"query": "payment", "searchType": "semantic"})

    assert response.status_code == 500
    assert response.json()["error"] == "Search execution failed"


@pytest.mark.asyncio
async def test_similar_chunks(client: AsyncClient, fake_db):
    chunk = fake_db.seed("document_chunks", {"chunk_text": "seed", "embedding": "[0.1,0.2]"})[0]
    fake_db.rpc_results["search_document_chunks"] = [
        chunk_row(chunk["id"], "seed", 1.0),
        chunk_row("other", "neighbour", 0.8),
    ]

    response = await client.get("/api/rag/search", params={"chunkId": chunk["id"]})

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["similar_chunks"]] == ["other"]
    assert fake_db.rpc_calls[0][1]["query_embedding"] == [0.1, 0.2]

    missing = await client.get("/api/rag/search")
    assert missing.status_code == 400


@pytest.mark.asyncio
async def test_rag_chat_without_sources_falls_back(client: AsyncClient, fake_openai):
    """Test the fallback answer when nothing relevant is indexed"""
    response = await client.post("/api/rag/chat", json={"query": "What is the budget?"})

    assert response.status_code == 200
    body = response.json()
    assert body["sources"] == []
    assert body["metadata"]["confidence"] == FALLBACK_CONFIDENCE
    assert fake_openai.chat_calls[0]["max_tokens"] == 200


@pytest.mark.asyncio
async def test_rag_chat_answers_from_sources(client: AsyncClient, fake_db, fake_openai):
    fake_db.rpc_results["search_document_chunks"] = [
        chunk_row("c1", "The budget is 42 million won.", 0.9),
    ]

    response = await client.post("/api/rag/chat", json={
        "query": "What is the budget?",
        "model": "gpt-4o-mini",
        "context": "Answer in one sentence.",
    })

    body = response.json()
    assert body["answer"] == "Based on the context, the answer is 42."
    assert [s["id"] for s in body["sources"]] == ["c1"]
    assert body["metadata"]["model"] == "gpt-4o-mini"
    assert body["metadata"]["tokens_used"] == 42
    assert body["metadata"]["confidence"] > FALLBACK_CONFIDENCE
    system_prompt = fake_openai.chat_calls[0]["messages"][0]["content"]
    assert "The budget is 42 million won." in system_prompt
    assert "Answer in one sentence." in system_prompt


@pytest.mark.asyncio
async def test_rag_chat_rejects_unknown_model(client: AsyncClient):
    response = await client.post("/api/rag/chat", json={"query": "hi", "model": "llama"})

    assert response.status_code == 400
    assert "Unsupported model" in response.json()["error"]


@pytest.mark.asyncio
async def test_rag_chat_saves_to_conversation(client: AsyncClient, fake_db):
    conversation = fake_db.seed("conversations", {"user_id": "user-1", "title": "RFP", "metadata": {}})[0]
    fake_db.rpc_results["search_document_chunks"] = [chunk_row("c1", "Budget is 42.", 0.9)]

    response = await client.post("/api/rag/chat", json={
        "query": "What is the budget?",
        "conversationId": conversation["id"],
        "chatHistory": [{"role": "user", "content": "Hello"}, {"role": "assistant", "content": "Hi"}],
    })

    assert response.status_code == 200
    messages = fake_db.tables["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[1]["metadata"]["sources"][0]["id"] == "c1"
    saved = fake_db.tables["conversations"][0]["metadata"]
    assert saved["total_messages"] == 2
    assert saved["last_model"] == "gpt-3.5-turbo"

    history = await client.get("/api/rag/chat", params={
        "conversationId": conversation["id"],
        "includeContext": "true",
    })
    body = history.json()
    assert len(body["messages"]) == 2
    assert body["rag_context"]["total_rag_responses"] == 1
    assert body["rag_context"]["unique_sources"] == 1


@pytest.mark.asyncio
async def test_rag_chat_unknown_conversation(client: AsyncClient, fake_db):
    other = fake_db.seed("conversations", {"user_id": "user-2", "title": "Private"})[0]

    response = await client.post("/api/rag/chat", json={"query": "hi", "conversationId": other["id"]})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rag_chat_history_requires_conversation_id(client: AsyncClient):
    response = await client.get("/api/rag/chat")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_keyword_search(client: AsyncClient, fake_db, fake_openai, project):
    """Test keyword search scores by matched query words without embedding the query"""
    fake_db.seed(
        "document_chunks",
        chunk_row("c1", "Payment gateway integration.", 0.0, project["id"]),
        chunk_row("c2", "Gateway outage report.", 0.0, project["id"]),
        chunk_row("c3", "Marketing plan.", 0.0, project["id"]),
    )

    response = await client.post("/api/rag/search", json={
        "query": "payment gateway",
        "searchType": "keyword",
        "projectId": project["id"],
    })

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["id"] for r in results] == ["c1", "c2"]
    assert [r["similarity_score"] for r in results] == [1.0, 0.5]
    assert fake_openai.embedding_calls == []


@pytest.mark.asyncio
async def test_knowledge_base_search(client: AsyncClient, fake_db):
    fake_db.rpc_results["search_knowledge_base"] = [{
        "id": "k1",
        "title": "Refund FAQ",
        "content": "Refunds are accepted within 30 days.",
        "metadata": {"source": "faq.txt"},
        "similarity": 0.85,
    }]

    response = await client.post("/api/rag/search", json={
        "query": "refund window",
        "searchType": "knowledge_base",
        "customBotId": "bot-1",
    })

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["document_name"] == "Refund FAQ"
    assert result["chunk_text"] == "Refunds are accepted within 30 days."
    assert result["document_id"] is None
    assert result["similarity_score"] == pytest.approx(0.85 * 1.1)
    name, params = fake_db.rpc_calls[0]
    assert name == "search_knowledge_base"
    assert params["bot_id"] == "bot-1"
    assert params["match_count"] == 10


@pytest.mark.asyncio
async def test_global_search_enriches_with_document_details(client: AsyncClient, fake_db, project):
    """Test global search only returns the user's documents, named after the stored file"""
    fake_db.seed(
        "documents",
        {"id": "doc-a", "user_id": "user-1", "file_name": "brief.pdf", "project_id": project["id"]},
        {"id": "doc-b", "user_id": "user-2", "file_name": "other.pdf", "project_id": "p2"},
    )
    fake_db.rpc_results["search_document_chunks"] = [
        chunk_row("g1", "Launch checklist for the shop.", 0.9, document_id="doc-a"),
        chunk_row("g2", "Someone else's launch notes.", 0.9, document_id="doc-b"),
    ]

    response = await client.post("/api/rag/search", json={"query": "launch checklist", "searchType": "global"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["id"] for r in results] == ["g1"]
    assert results[0]["document_name"] == "brief.pdf"
    assert results[0]["project_id"] == project["id"]


@pytest.mark.asyncio
async def test_global_search_without_documents(client: AsyncClient, fake_db):
    response = await client.post("/api/rag/search", json={"query": "launch", "searchType": "global"})

    assert response.status_code == 200
    assert response.json()["results"] == []
    assert fake_db.rpc_calls == []


def test_expand_query_reads_model_terms(fake_db, embedder):
    chat = FakeOpenAI(answer='{"expanded_terms": ["pricing", "cost"], "intent": "budget_inquiry"}')
    service = RAGService(fake_db, embedder, chat_client=chat)

    assert service.expand_query("What is the budget?") == {
        "expanded_terms": ["pricing", "cost"],
        "intent": "budget_inquiry",
    }
    assert chat.chat_calls[0]["model"] == settings.rag_default_model


def test_expand_query_falls_back_to_query_words(fake_db, embedder):
    """Test a reply that is not a JSON object yields the query's own longer words"""
    for answer in ("Based on the context, the answer is 42.", '["pricing"]'):
        service = RAGService(fake_db, embedder, chat_client=FakeOpenAI(answer=answer))

        assert service.expand_query("What is the budget?") == {
            "expanded_terms": ["What", "the", "budget?"],
            "intent": "general_inquiry",
        }


def test_retrieve_searches_expanded_terms_when_enabled(fake_db, embedder, monkeypatch):
    chat = FakeOpenAI(answer='{"expanded_terms": ["pricing"], "intent": "budget_inquiry"}')
    service = RAGService(fake_db, embedder, chat_client=chat)
    fake_db.seed("document_chunks", chunk_row("c9", "Quarterly pricing sheet.", 0.0))

    assert service.retrieve("What is the budget?", RAGQueryOptions()) == []
    assert chat.chat_calls == []

    monkeypatch.setattr(settings, "rag_query_expansion", True)
    results = service.retrieve("What is the budget?", RAGQueryOptions())

    assert [r["id"] for r in results] == ["c9"]
    assert len(chat.chat_calls) == 1
