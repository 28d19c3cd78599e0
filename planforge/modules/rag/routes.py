import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from supabase import Client

from planforge.config import settings
from planforge.core.activity import log_activity
from planforge.core.dependencies import check_project_access, get_current_user
from planforge.database.supabase_client import get_supabase
from planforge.modules.conversations.schemas import MessageCreate
from planforge.modules.conversations.service import ConversationService
from planforge.modules.rag.document_processor import (
    DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, DocumentProcessor
)
from planforge.modules.rag.document_service import (
    ALLOWED_DOCUMENT_TYPES, DocumentService, extract_text
)
from planforge.modules.rag.embeddings import EmbeddingClient, EmbeddingError, get_embedding_client
from planforge.modules.rag.schemas import (
    RAGChatRequest, RAGQueryOptions, SearchOptions, SearchRequest
)
from planforge.modules.rag.service import RAGService
from planforge.modules.rag.vector_search import (
    SIMILAR_CHUNKS_LIMIT, SIMILAR_CHUNKS_THRESHOLD, VectorSearchService
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rag", tags=["rag"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_document_service(supabase: Client = Depends(get_supabase)) -> DocumentService:
    return DocumentService(supabase)


def get_document_processor(
    supabase: Client = Depends(get_supabase),
    embedder: EmbeddingClient = Depends(get_embedding_client)
) -> DocumentProcessor:
    return DocumentProcessor(supabase, embedder)


def get_vector_search(
    supabase: Client = Depends(get_supabase),
    embedder: EmbeddingClient = Depends(get_embedding_client)
) -> VectorSearchService:
    return VectorSearchService(supabase, embedder)


def get_rag_service(
    supabase: Client = Depends(get_supabase),
    embedder: EmbeddingClient = Depends(get_embedding_client)
) -> RAGService:
    return RAGService(supabase, embedder)


def get_conversation_service(supabase: Client = Depends(get_supabase)) -> ConversationService:
    return ConversationService(supabase)


@router.post("/upload")
def upload_document(
    file: UploadFile = File(...),
    projectId: Optional[str] = Form(None),
    generateEmbeddings: bool = Form(True),
    chunkSize: int = Form(DEFAULT_CHUNK_SIZE),
    chunkOverlap: int = Form(DEFAULT_CHUNK_OVERLAP),
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    documents: DocumentService = Depends(get_document_service),
    processor: DocumentProcessor = Depends(get_document_processor)
):
    """Upload a document, extract its text and index it for search"""
    content_type = file.content_type or ""
    if content_type not in ALLOWED_DOCUMENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type. Supported types: TXT, PDF, DOC, DOCX, HWP"
        )
    if chunkSize <= 0 or not 0 <= chunkOverlap < chunkSize:
        raise HTTPException(status_code=400, detail="chunkOverlap must be between 0 and chunkSize")
    content = file.file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File size exceeds {settings.max_upload_size_mb}MB limit")
    if projectId:
        check_project_access(projectId, user_data, supabase, require_owner=True)

    text = extract_text(content, content_type)
    if not text.strip():
        raise HTTPException(status_code=400, detail="No text content could be extracted from file")

    file_name = file.filename or "document"
    document = documents.create_document(user_data["id"], file_name, content_type, content, projectId)
    try:
        stats = processor.process_document(
            document_id=document["id"],
            user_id=user_data["id"],
            text=text,
            file_name=file_name,
            file_type=content_type,
            project_id=projectId,
            chunk_size=chunkSize,
            chunk_overlap=chunkOverlap,
            generate_embeddings=generateEmbeddings,
        )
    except Exception as e:
        logger.error(f"Processing failed for document {document['id']}: {e}")
        documents.delete_document(document)
        detail = e.detail if isinstance(e, HTTPException) else str(e)
        raise HTTPException(status_code=500, detail=f"Document processing failed: {detail}")

    updated = documents.mark_processed(document["id"], text, {
        **stats["metadata"],
        "chunks_count": stats["chunks_count"],
        "processing_options": {
            "chunk_size": chunkSize,
            "chunk_overlap": chunkOverlap,
            "generate_embeddings": generateEmbeddings,
        },
    })
    logger.info(f"Document {document['id']} indexed with {stats['chunks_count']} chunks")
    return {
        "success": True,
        "document": {
            "id": updated["id"],
            "file_name": updated.get("file_name"),
            "file_type": updated.get("file_type"),
            "file_size": updated.get("file_size"),
            "project_id": updated.get("project_id"),
            "metadata": updated.get("metadata"),
        },
        "processing": {
            "chunks_count": stats["chunks_count"],
            "content_length": stats["content_length"],
            "embeddings_generated": stats["embeddings_generated"],
        },
    }


@router.get("/documents")
async def list_documents(
    projectId: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service)
):
    """Processed documents of the user, optionally for one project"""
    return {"success": True, "documents": documents.list_processed(user_data["id"], projectId)}


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    user_data: Dict = Depends(get_current_user),
    documents: DocumentService = Depends(get_document_service)
):
    document = documents.get_document(document_id, user_data["id"])
    documents.delete_document(document)
    return {"success": True, "message": "Document deleted successfully"}


@router.post("/search")
def search(
    payload: SearchRequest,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    search_service: VectorSearchService = Depends(get_vector_search)
):
    """Search indexed documents with semantic, keyword, hybrid, knowledge_base or global strategy"""
    options = SearchOptions(
        limit=payload.limit,
        threshold=payload.threshold,
        project_id=payload.project_id,
        document_ids=payload.document_ids,
        custom_bot_id=payload.custom_bot_id,
        include_metadata=payload.include_metadata,
    )
    if payload.search_type == "knowledge_base" and not payload.custom_bot_id:
        raise HTTPException(status_code=400, detail="customBotId is required for knowledge_base search")

    strategies = {
        "semantic": lambda: search_service.semantic_search(payload.query, options),
        "keyword": lambda: search_service.keyword_search(payload.query, options),
        "hybrid": lambda: search_service.hybrid_search(payload.query, options),
        "knowledge_base": lambda: search_service.search_knowledge_base(payload.query, payload.custom_bot_id, options),
        "global": lambda: search_service.global_search(payload.query, user_data["id"], options),
    }
    try:
        results = strategies[payload.search_type]()
    except EmbeddingError as e:
        logger.error(f"Search execution failed: {e}")
        raise HTTPException(status_code=500, detail="Search execution failed")

    log_activity(supabase, user_data["id"], "rag_search", {
        "query": payload.query,
        "search_type": payload.search_type,
        "results_count": len(results),
        "project_id": payload.project_id,
    }, request)

    return {
        "success": True,
        "query": payload.query,
        "searchType": payload.search_type,
        "results": results,
        "metadata": {
            "total_results": len(results),
            "search_options": options.model_dump(),
            "timestamp": _now(),
        },
    }


@router.get("/search")
def similar_chunks(
    chunkId: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    search_service: VectorSearchService = Depends(get_vector_search)
):
    """Chunks similar to a stored chunk"""
    if not chunkId:
        raise HTTPException(status_code=400, detail="chunkId is required")
    results = search_service.find_similar_chunks(chunkId)
    return {
        "success": True,
        "chunkId": chunkId,
        "similar_chunks": results,
        "metadata": {
            "total_results": len(results),
            "limit": SIMILAR_CHUNKS_LIMIT,
            "threshold": SIMILAR_CHUNKS_THRESHOLD,
            "timestamp": _now(),
        },
    }


def _save_exchange(
    conversations: ConversationService,
    conversation_id: str,
    query: str,
    response,
) -> None:
    """Persist the question and answer; failures only get logged."""
    sources = [
        {
            "id": source["id"],
            "similarity_score": source["similarity_score"],
            "document_name": source.get("document_name"),
        }
        for source in response.sources
    ]
    try:
        conversations.add_messages(conversation_id, [
            MessageCreate(role="user", content=query),
            MessageCreate(role="assistant", content=response.answer, metadata={
                "sources": sources,
                "confidence": response.confidence,
                "model": response.model,
                "tokens_used": response.tokens_used,
            }),
        ])
        conversations.touch(conversation_id, {"last_model": response.model})
    except Exception as e:
        logger.warning(f"Failed to save RAG exchange to conversation {conversation_id}: {e}")


@router.post("/chat")
def rag_chat(
    payload: RAGChatRequest,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    rag: RAGService = Depends(get_rag_service),
    conversations: ConversationService = Depends(get_conversation_service)
):
    """Answer a question from the user's documents or a bot's knowledge base"""
    if payload.conversation_id:
        conversations.get_conversation(payload.conversation_id, user_data["id"])

    options = RAGQueryOptions(
        project_id=payload.project_id,
        document_ids=payload.document_ids,
        custom_bot_id=payload.custom_bot_id,
        context=payload.context,
        model=payload.model,
        temperature=payload.temperature,
        max_context_length=payload.max_context_length,
    )
    try:
        if payload.chat_history:
            history = [{"role": m.role, "content": m.content} for m in payload.chat_history]
            response = rag.conversational_query(payload.query, history, options)
        else:
            response = rag.query(payload.query, options)
    except EmbeddingError as e:
        logger.error(f"RAG chat failed: {e}")
        raise HTTPException(status_code=500, detail="RAG chat failed: embeddings unavailable")

    if payload.conversation_id:
        _save_exchange(conversations, payload.conversation_id, payload.query, response)

    log_activity(supabase, user_data["id"], "rag_chat", {
        "query": payload.query,
        "model": response.model,
        "sources_count": len(response.sources),
        "confidence": response.confidence,
        "conversation_id": payload.conversation_id,
    }, request)

    return {
        "success": True,
        "query": payload.query,
        "answer": response.answer,
        "sources": response.sources,
        "metadata": {
            "confidence": response.confidence,
            "model": response.model,
            "tokens_used": response.tokens_used,
            "context_length": response.context_length,
            "sources_count": len(response.sources),
            "timestamp": _now(),
        },
    }


def summarize_rag_context(messages: List[Dict]) -> Dict:
    rag_answers = [
        m for m in messages
        if m.get("role") == "assistant" and "sources" in (m.get("metadata") or {})
    ]
    confidences = [m["metadata"].get("confidence") or 0 for m in rag_answers]
    source_ids = {s.get("id") for m in rag_answers for s in m["metadata"].get("sources") or []}
    return {
        "total_rag_responses": len(rag_answers),
        "average_confidence": sum(confidences) / len(confidences) if confidences else 0,
        "unique_sources": len(source_ids),
    }


@router.get("/chat")
async def rag_chat_history(
    conversationId: Optional[str] = None,
    includeContext: bool = False,
    user_data: Dict = Depends(get_current_user),
    conversations: ConversationService = Depends(get_conversation_service)
):
    """Messages of a conversation, with an optional RAG summary"""
    if not conversationId:
        raise HTTPException(status_code=400, detail="conversationId is required")
    conversation = conversations.get_conversation(conversationId, user_data["id"])
    messages = conversations.get_messages(conversationId)
    body = {"success": True, "conversation": conversation, "messages": messages}
    if includeContext:
        body["rag_context"] = summarize_rag_context(messages)
    return body
