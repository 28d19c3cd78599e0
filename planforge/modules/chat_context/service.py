from supabase import Client
from pydantic import ValidationError
from planforge.modules.chat_context.schemas import CONTEXT_TYPES, ContextDocument
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

RECENT_CONVERSATIONS = 5
MESSAGES_PER_CONVERSATION = 3
RECENT_DOCUMENTS = 10
MESSAGE_PREVIEW_CHARS = 200
DOCUMENT_SUMMARY_CHARS = 500


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _preview(text: Optional[str], limit: int) -> Optional[str]:
    if text and len(text) > limit:
        return text[:limit] + "..."
    return text


def project_age_days(created_at: Optional[str]) -> int:
    if not created_at:
        return 0
    created = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return max((datetime.now(timezone.utc) - created).days, 0)


class ChatContextService:
    """What the assistant knows about a project: its row, recent chats and documents."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _recent_conversations(self, project_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("conversations")\
                .select("*")\
                .eq("project_id", project_id)\
                .order("created_at", desc=True)\
                .limit(RECENT_CONVERSATIONS)\
                .execute()
            conversations = []
            for conversation in result.data or []:
                messages = self.supabase.table("messages")\
                    .select("*")\
                    .eq("conversation_id", conversation["id"])\
                    .order("created_at", desc=True)\
                    .limit(MESSAGES_PER_CONVERSATION)\
                    .execute()
                conversations.append({
                    "id": conversation["id"],
                    "title": conversation.get("title"),
                    "model_used": (conversation.get("metadata") or {}).get("last_model"),
                    "created_at": conversation.get("created_at"),
                    "messages": [
                        {
                            "role": message.get("role"),
                            "content": _preview(message.get("content"), MESSAGE_PREVIEW_CHARS),
                            "created_at": message.get("created_at"),
                        }
                        for message in messages.data or []
                    ],
                })
            return conversations
        except Exception as e:
            logger.error(f"Failed to load conversations for project {project_id}: {e}")
            return []

    def _recent_documents(self, project_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("documents")\
                .select("*")\
                .eq("project_id", project_id)\
                .order("created_at", desc=True)\
                .limit(RECENT_DOCUMENTS)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to load documents for project {project_id}: {e}")
            return []
        return [
            {
                "id": document["id"],
                "fileName": document.get("file_name"),
                "fileType": document.get("file_type"),
                "contentSummary": _preview(document.get("extracted_content"), DOCUMENT_SUMMARY_CHARS),
                "metadata": document.get("metadata") or {},
                "created_at": document.get("created_at"),
            }
            for document in result.data or []
        ]

    def get_context(self, project: Dict[str, Any]) -> Dict[str, Any]:
        conversations = self._recent_conversations(project["id"])
        documents = self._recent_documents(project["id"])
        return {
            "project": {
                key: project.get(key)
                for key in ("id", "name", "description", "category", "status", "metadata", "created_at", "updated_at")
            },
            "recentConversations": conversations,
            "documents": documents,
            "contextInfo": {
                "totalDocuments": len(documents),
                "totalConversations": len(conversations),
                "projectAge": project_age_days(project.get("created_at")),
            },
        }

    def update_context(self, project_id: str, user_id: str, context_type: str, data: Dict[str, Any]) -> None:
        if context_type not in CONTEXT_TYPES:
            raise HTTPException(status_code=400, detail=f"Unknown context type: {context_type}")
        if context_type == "project_info":
            try:
                self.supabase.table("projects")\
                    .update({"metadata": data, "updated_at": _now()})\
                    .eq("id", project_id)\
                    .execute()
            except Exception as e:
                logger.error(f"Project context update failed for {project_id}: {e}")
                raise HTTPException(status_code=500, detail="Failed to update project context")
            return

        try:
            document = ContextDocument(**data)
        except ValidationError:
            raise HTTPException(status_code=400, detail="add_document requires data.fileName")
        try:
            self.supabase.table("documents").insert({
                "user_id": user_id,
                "project_id": project_id,
                "file_name": document.file_name,
                "file_type": document.file_type,
                "file_size": len(document.content.encode("utf-8")),
                "extracted_content": document.content,
                "metadata": {**document.metadata, "source": "chat_context"},
            }).execute()
        except Exception as e:
            logger.error(f"Context document insert failed for {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to add document to context")
