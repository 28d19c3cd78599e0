from supabase import Client
from planforge.modules.bots.schemas import (
    BotCreate, BotUpdate, BotResponse, KnowledgeFileResult, KnowledgeUploadResponse
)
from planforge.modules.rag.document_processor import (
    DocumentProcessor, clean_text, split_into_chunks, DEFAULT_CHUNK_SIZE, DEFAULT_CHUNK_OVERLAP
)
from planforge.modules.rag.document_service import extract_text
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class BotService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_bots(
        self,
        user_id: str,
        public: bool = False,
        search: Optional[str] = None,
        limit: int = 20
    ) -> List[BotResponse]:
        """Public bots by popularity, or the user's own bots by recent activity"""
        try:
            query = self.supabase.table("custom_bots").select("*")
            if public:
                query = query.eq("is_public", True).eq("is_active", True)
                order_column = "like_count"
            else:
                query = query.eq("user_id", user_id)
                order_column = "updated_at"
            if search:
                query = query.or_(f"name.ilike.%{search}%,description.ilike.%{search}%")
            result = query.order(order_column, desc=True).limit(limit).execute()
            return [BotResponse(**bot) for bot in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_bot(self, bot_data: BotCreate, user_id: str) -> BotResponse:
        try:
            result = self.supabase.table("custom_bots").insert({
                "user_id": user_id,
                "name": bot_data.name,
                "description": bot_data.description,
                "avatar": bot_data.avatar,
                "instructions": bot_data.instructions,
                "tags": bot_data.tags,
                "is_public": bot_data.is_public,
                "usage_count": 0,
                "like_count": 0,
                "is_active": True,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create bot")
            return BotResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_bot(self, bot_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("custom_bots")\
                .select("*")\
                .eq("id", bot_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Bot not found")
        return result.data

    def get_accessible_bot(self, bot_id: str, user_id: str, require_owner: bool = False) -> Dict[str, Any]:
        """Bot row if the user owns it, or if it is public and only read access is needed"""
        bot = self.get_bot(bot_id)
        if bot.get("user_id") == user_id:
            return bot
        if not require_owner and bot.get("is_public"):
            return bot
        raise HTTPException(status_code=403, detail="You do not have access to this bot")

    def update_bot(self, bot_id: str, bot_data: BotUpdate) -> BotResponse:
        try:
            update_data = bot_data.model_dump(exclude_unset=True)
            if not update_data:
                raise HTTPException(status_code=400, detail="No fields to update")
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("custom_bots")\
                .update(update_data)\
                .eq("id", bot_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Bot not found")
            return BotResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_bot(self, bot_id: str) -> None:
        try:
            self.supabase.table("knowledge_base")\
                .delete()\
                .eq("bot_id", bot_id)\
                .execute()
            self.supabase.table("custom_bots")\
                .delete()\
                .eq("id", bot_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def increment_usage(self, bot: Dict[str, Any]) -> None:
        try:
            self.supabase.table("custom_bots")\
                .update({"usage_count": (bot.get("usage_count") or 0) + 1})\
                .eq("id", bot["id"])\
                .execute()
        except Exception as e:
            logger.warning(f"Failed to increment usage for bot {bot['id']}: {e}")


class KnowledgeService:
    """Knowledge base entries of a custom bot, one embedded entry per chunk."""

    def __init__(self, supabase: Client, processor: DocumentProcessor):
        self.supabase = supabase
        self.processor = processor

    def add_file(
        self,
        bot_id: str,
        user_id: str,
        file_name: str,
        content_type: str,
        content: bytes,
    ) -> KnowledgeFileResult:
        try:
            text = clean_text(extract_text(content, content_type))
            if not text:
                raise HTTPException(status_code=400, detail="No text content could be extracted")
            chunks = split_into_chunks(text, DEFAULT_CHUNK_SIZE, DEFAULT_CHUNK_OVERLAP)
            entries = [
                {
                    "title": f"{file_name} - Part {index + 1}",
                    "content": chunk,
                    "metadata": {
                        "file_name": file_name,
                        "file_type": content_type,
                        "file_size": len(content),
                        "chunk_index": index,
                        "total_chunks": len(chunks),
                    },
                }
                for index, chunk in enumerate(chunks)
            ]
            self.processor.store_knowledge_entries(bot_id, user_id, entries)
            return KnowledgeFileResult(file_name=file_name, success=True, chunks_created=len(chunks))
        except Exception as e:
            detail = e.detail if isinstance(e, HTTPException) else str(e)
            logger.warning(f"Knowledge upload failed for {file_name}: {detail}")
            return KnowledgeFileResult(file_name=file_name, success=False, error=detail)

    def add_files(self, bot_id: str, user_id: str, files: List[Tuple[str, str, bytes]]) -> KnowledgeUploadResponse:
        """files: (file_name, content_type, content) triples"""
        results = [self.add_file(bot_id, user_id, *f) for f in files]
        failed = [r for r in results if not r.success]
        return KnowledgeUploadResponse(
            success=len(failed) < len(results),
            processed_count=len(results) - len(failed),
            failed_count=len(failed),
            errors=[f"{r.file_name}: {r.error}" for r in failed],
            file_results=results,
        )

    def list_entries(self, bot_id: str, limit: int = 50) -> Dict[str, Any]:
        try:
            result = self.supabase.table("knowledge_base")\
                .select("id, title, content, metadata, created_at")\
                .eq("bot_id", bot_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        entries = result.data or []
        return {
            "knowledge_base": entries,
            "stats": {
                "total_entries": len(entries),
                "total_files": len({(e.get("metadata") or {}).get("file_name") for e in entries} - {None}),
                "total_characters": sum(len(e.get("content") or "") for e in entries),
            },
        }

    def delete_entry(self, bot_id: str, entry_id: str) -> None:
        try:
            result = self.supabase.table("knowledge_base")\
                .delete()\
                .eq("id", entry_id)\
                .eq("bot_id", bot_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="Knowledge entry not found")
