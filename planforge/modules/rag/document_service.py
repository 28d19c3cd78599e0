import io
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import docx
import PyPDF2
from fastapi import HTTPException
from supabase import Client

from planforge.modules.rag.storage import DocumentStorage

logger = logging.getLogger(__name__)

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_DOCUMENT_TYPES = {
    "text/plain": ".txt",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    DOCX_TYPE: ".docx",
    "application/haansofthwp": ".hwp",
}

# Accepted for storage, but there is no text extractor for them
NON_EXTRACTABLE_TYPES = {"application/msword", "application/haansofthwp"}


def extract_text(content: bytes, content_type: str) -> str:
    """Extract plain text from TXT, PDF or DOCX bytes."""
    if content_type == "text/plain":
        return content.decode("utf-8", errors="replace")
    if content_type == "application/pdf":
        try:
            reader = PyPDF2.PdfReader(io.BytesIO(content))
            return "\n".join(page.extract_text() or "" for page in reader.pages)
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Could not read PDF: {e}")
    if content_type == DOCX_TYPE:
        try:
            document = docx.Document(io.BytesIO(content))
            return "\n".join(paragraph.text for paragraph in document.paragraphs)
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Could not read DOCX: {e}")
    if content_type in NON_EXTRACTABLE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Text extraction is not supported for this file type; convert it to PDF or DOCX"
        )
    raise HTTPException(status_code=400, detail=f"Unsupported file type: {content_type}")


class DocumentService:
    def __init__(self, supabase: Client, storage: Optional[DocumentStorage] = None):
        self.supabase = supabase
        self.storage = storage or DocumentStorage(supabase)

    def create_document(
        self,
        user_id: str,
        file_name: str,
        content_type: str,
        content: bytes,
        project_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store the file and insert its documents row"""
        extension = os.path.splitext(file_name)[1] or ALLOWED_DOCUMENT_TYPES.get(content_type, "")
        key = f"{user_id}/{uuid.uuid4()}{extension}"
        storage_path = self.storage.upload(content, key, content_type)
        try:
            result = self.supabase.table("documents").insert({
                "user_id": user_id,
                "project_id": project_id,
                "file_name": file_name,
                "file_type": content_type,
                "file_size": len(content),
                "storage_path": storage_path,
                "metadata": {"processed": False},
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create document record")
            return result.data[0]
        except Exception as e:
            self.storage.delete(storage_path)
            if isinstance(e, HTTPException):
                raise
            logger.error(f"Document insert failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_document(self, document_id: str, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table("documents")\
            .select("*")\
            .eq("id", document_id)\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Document not found")
        return result.data

    def mark_processed(
        self,
        document_id: str,
        extracted_content: str,
        metadata: Dict[str, Any],
    ) -> Dict[str, Any]:
        try:
            result = self.supabase.table("documents")\
                .update({
                    "extracted_content": extracted_content,
                    "metadata": {**metadata, "processed": True},
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", document_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Document not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_processed(self, user_id: str, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table("documents")\
                .select("id, file_name, file_type, file_size, project_id, metadata, created_at")\
                .eq("user_id", user_id)
            if project_id:
                query = query.eq("project_id", project_id)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [doc for doc in result.data or [] if (doc.get("metadata") or {}).get("processed")]

    def delete_document(self, document: Dict[str, Any]) -> None:
        """Remove the document row, its chunks and the stored file"""
        try:
            self.supabase.table("document_chunks")\
                .delete()\
                .eq("document_id", document["id"])\
                .execute()
            self.supabase.table("documents")\
                .delete()\
                .eq("id", document["id"])\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        self.storage.delete(document.get("storage_path"))
