from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from planforge.database.supabase_client import get_supabase
from planforge.modules.bots.schemas import (
    BotCreate, BotUpdate, BotResponse, BotChatRequest, BotChatResponse, KnowledgeUploadResponse
)
from planforge.modules.bots.service import BotService, KnowledgeService
from planforge.modules.rag.document_processor import DocumentProcessor
from planforge.modules.rag.embeddings import EmbeddingClient, EmbeddingError, get_embedding_client
from planforge.modules.rag.service import RAGService
from planforge.core.dependencies import get_current_user
from supabase import Client
from typing import List, Optional, Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bots", tags=["bots"])


def get_bot_service(supabase: Client = Depends(get_supabase)) -> BotService:
    return BotService(supabase)


def get_knowledge_service(
    supabase: Client = Depends(get_supabase),
    embedder: EmbeddingClient = Depends(get_embedding_client)
) -> KnowledgeService:
    return KnowledgeService(supabase, DocumentProcessor(supabase, embedder))


def get_bot_rag_service(
    supabase: Client = Depends(get_supabase),
    embedder: EmbeddingClient = Depends(get_embedding_client)
) -> RAGService:
    return RAGService(supabase, embedder)


@router.get("")
async def list_bots(
    public: bool = False,
    search: Optional[str] = None,
    limit: int = 20,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service)
):
    """List public bots or the user's own bots"""
    return {"bots": service.list_bots(user_data["id"], public=public, search=search, limit=limit)}


@router.post("", status_code=201)
async def create_bot(
    bot_data: BotCreate,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service)
):
    """Create a custom bot"""
    return {"bot": service.create_bot(bot_data, user_data["id"])}


@router.get("/{bot_id}")
async def get_bot(
    bot_id: str,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service)
):
    return {"bot": BotResponse(**service.get_accessible_bot(bot_id, user_data["id"]))}


@router.put("/{bot_id}")
async def update_bot(
    bot_id: str,
    bot_data: BotUpdate,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service)
):
    """Update a bot (creator only)"""
    service.get_accessible_bot(bot_id, user_data["id"], require_owner=True)
    return {"bot": service.update_bot(bot_id, bot_data)}


@router.delete("/{bot_id}", status_code=204)
async def delete_bot(
    bot_id: str,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service)
):
    """Delete a bot and its knowledge base (creator only)"""
    service.get_accessible_bot(bot_id, user_data["id"], require_owner=True)
    service.delete_bot(bot_id)
    return None


@router.post("/{bot_id}/chat", response_model=BotChatResponse)
def chat_with_bot(
    bot_id: str,
    request: BotChatRequest,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
    rag: RAGService = Depends(get_bot_rag_service)
):
    """Answer from the bot's knowledge base"""
    bot = service.get_accessible_bot(bot_id, user_data["id"])
    if not bot.get("is_active", True):
        raise HTTPException(status_code=400, detail="Bot is not active")
    context = request.context or bot.get("instructions")
    try:
        result = rag.query_custom_bot(bot_id, request.message, context)
    except EmbeddingError as e:
        logger.error(f"Bot chat failed for {bot_id}: {e}")
        raise HTTPException(status_code=500, detail="Bot chat failed: embeddings unavailable")
    service.increment_usage(bot)
    return BotChatResponse(
        response=result.answer,
        sources=result.sources,
        confidence=result.confidence,
        model=result.model,
        context_used=bool(context),
    )


@router.post("/{bot_id}/knowledge", response_model=KnowledgeUploadResponse)
def upload_knowledge(
    bot_id: str,
    files: List[UploadFile] = File(...),
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
    knowledge: KnowledgeService = Depends(get_knowledge_service)
):
    """Add files to the bot's knowledge base"""
    service.get_accessible_bot(bot_id, user_data["id"], require_owner=True)
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    payload = [
        (f.filename or "file", f.content_type or "text/plain", f.file.read())
        for f in files
    ]
    return knowledge.add_files(bot_id, user_data["id"], payload)


@router.get("/{bot_id}/knowledge")
async def list_knowledge(
    bot_id: str,
    limit: int = 50,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
    knowledge: KnowledgeService = Depends(get_knowledge_service)
):
    """Knowledge entries and stats for a bot"""
    service.get_accessible_bot(bot_id, user_data["id"], require_owner=True)
    return knowledge.list_entries(bot_id, limit)


@router.delete("/{bot_id}/knowledge/{entry_id}")
async def delete_knowledge(
    bot_id: str,
    entry_id: str,
    user_data: Dict = Depends(get_current_user),
    service: BotService = Depends(get_bot_service),
    knowledge: KnowledgeService = Depends(get_knowledge_service)
):
    service.get_accessible_bot(bot_id, user_data["id"], require_owner=True)
    knowledge.delete_entry(bot_id, entry_id)
    return {"success": True, "message": "Knowledge entry deleted successfully"}
