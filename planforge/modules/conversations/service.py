from supabase import Client
from planforge.modules.conversations.schemas import (
    ConversationCreate, ConversationResponse, MessageCreate, MessageResponse
)
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_conversation(self, data: ConversationCreate, user_id: str) -> ConversationResponse:
        try:
            result = self.supabase.table("conversations").insert({
                "user_id": user_id,
                "project_id": data.project_id,
                "title": data.title,
                "metadata": data.metadata,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create conversation")
            return ConversationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_conversations(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[ConversationResponse]:
        try:
            query = self.supabase.table("conversations").select("*").eq("user_id", user_id)
            if project_id:
                query = query.eq("project_id", project_id)
            result = query.order("updated_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [ConversationResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_conversation(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        """Conversation row scoped to its owner"""
        try:
            result = self.supabase.table("conversations")\
                .select("*")\
                .eq("id", conversation_id)\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return result.data

    def get_messages(self, conversation_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("messages")\
                .select("*")\
                .eq("conversation_id", conversation_id)\
                .order("created_at")\
                .execute()
            return result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_message(self, conversation_id: str, message: MessageCreate) -> MessageResponse:
        try:
            result = self.supabase.table("messages").insert({
                "conversation_id": conversation_id,
                "role": message.role,
                "content": message.content,
                "metadata": message.metadata,
                "created_at": _now(),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save message")
            self.touch(conversation_id)
            return MessageResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_messages(self, conversation_id: str, messages: List[MessageCreate]) -> List[Dict[str, Any]]:
        """Insert several messages in one request, without touching the conversation"""
        now = _now()
        result = self.supabase.table("messages").insert([
            {
                "conversation_id": conversation_id,
                "role": message.role,
                "content": message.content,
                "metadata": message.metadata,
                "created_at": now,
            }
            for message in messages
        ]).execute()
        return result.data or []

    def touch(self, conversation_id: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Bump updated_at and refresh the message count in metadata"""
        count_result = self.supabase.table("messages")\
            .select("id", count="exact")\
            .eq("conversation_id", conversation_id)\
            .execute()
        current = self.supabase.table("conversations")\
            .select("metadata")\
            .eq("id", conversation_id)\
            .maybe_single()\
            .execute()
        merged = dict((current.data or {}).get("metadata") or {}) if current else {}
        merged.update(metadata or {})
        merged["total_messages"] = count_result.count or 0
        self.supabase.table("conversations")\
            .update({"updated_at": _now(), "metadata": merged})\
            .eq("id", conversation_id)\
            .execute()

    def delete_conversation(self, conversation_id: str) -> None:
        try:
            self.supabase.table("messages")\
                .delete()\
                .eq("conversation_id", conversation_id)\
                .execute()
            self.supabase.table("conversations")\
                .delete()\
                .eq("id", conversation_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
