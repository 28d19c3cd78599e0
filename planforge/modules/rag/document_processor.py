"""
Text chunking, metadata extraction and embedding for uploaded documents.

Documents are cleaned, split into overlapping windows that prefer to end on a
sentence boundary, embedded in batches and written to document_chunks.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from planforge.modules.rag.embeddings import EmbeddingClient

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
EMBEDDING_BATCH_SIZE = 10

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
URL_PATTERN = re.compile(r"https?://[^\s]+")
DATE_PATTERN = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")

SECTION_PATTERNS = {
    "table_of_contents": re.compile(r"table of contents|contents|목차", re.IGNORECASE),
    "summary": re.compile(r"executive summary|summary|overview|요약|개요", re.IGNORECASE),
    "introduction": re.compile(r"introduction|background|서론|배경", re.IGNORECASE),
    "conclusion": re.compile(r"conclusion|결론", re.IGNORECASE),
    "references": re.compile(r"references|bibliography|참고문헌", re.IGNORECASE),
    "appendix": re.compile(r"appendix|부록", re.IGNORECASE),
}


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def split_into_chunks(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP) -> List[str]:
    """Split text into windows of at most chunk_size characters.

    A window is pulled back to the last period or newline when that boundary
    lies past the middle of the window. Consecutive windows overlap by
    `overlap` characters and the start always advances.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be between 0 and chunk_size")

    chunks: List[str] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            break_point = max(text.rfind(".", 0, end + 1), text.rfind("\n", 0, end + 1))
            if break_point > start + chunk_size * 0.5:
                end = break_point + 1
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= length:
            break
        start = max(end - overlap, start + 1)
    return chunks


def extract_metadata(text: str, file_name: str) -> Dict[str, Any]:
    """Cheap structural facts about a document: sizes, contact details, dates and sections."""
    return {
        "file_name": file_name,
        "content_length": len(text),
        "word_count": len(text.split()),
        "line_count": len(text.splitlines()) if text else 0,
        "extracted_at": datetime.now(timezone.utc).isoformat(),
        "emails": sorted(set(EMAIL_PATTERN.findall(text))),
        "phones": sorted(set(PHONE_PATTERN.findall(text))),
        "urls": sorted(set(URL_PATTERN.findall(text))),
        "dates": sorted(set(DATE_PATTERN.findall(text))),
        "sections": [name for name, pattern in SECTION_PATTERNS.items() if pattern.search(text)],
    }


class DocumentProcessor:
    def __init__(self, supabase: Client, embedder: Optional[EmbeddingClient] = None):
        self.supabase = supabase
        self.embedder = embedder or EmbeddingClient()

    def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        embeddings: List[List[float]] = []
        for i in range(0, len(texts), EMBEDDING_BATCH_SIZE):
            batch = texts[i:i + EMBEDDING_BATCH_SIZE]
            embeddings.extend(self.embedder.embed(batch))
            logger.debug(f"Embedded batch {i // EMBEDDING_BATCH_SIZE + 1} ({len(batch)} chunks)")
        return embeddings

    def process_document(
        self,
        document_id: str,
        user_id: str,
        text: str,
        file_name: str,
        file_type: str,
        project_id: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        generate_embeddings: bool = True,
    ) -> Dict[str, Any]:
        """Chunk, embed and store a document. Returns processing stats."""
        cleaned = clean_text(text)
        chunks = split_into_chunks(cleaned, chunk_size, chunk_overlap)
        if not chunks:
            raise HTTPException(status_code=400, detail="Document contains no text to process")

        embeddings = self.generate_embeddings(chunks) if generate_embeddings else [None] * len(chunks)

        rows = []
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
            rows.append({
                "document_id": document_id,
                "user_id": user_id,
                "project_id": project_id,
                "chunk_text": chunk,
                "chunk_index": index,
                "metadata": {
                    "chunk_index": index,
                    "chunk_length": len(chunk),
                    "document_file_name": file_name,
                    "document_file_type": file_type,
                },
                "embedding": embedding,
            })
        self.supabase.table("document_chunks").insert(rows).execute()
        logger.info(f"Stored {len(rows)} chunks for document {document_id}")

        return {
            "chunks_count": len(rows),
            "content_length": len(cleaned),
            "embeddings_generated": generate_embeddings,
            "metadata": extract_metadata(text, file_name),
        }

    def store_knowledge_entries(
        self,
        bot_id: str,
        user_id: str,
        entries: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Embed knowledge_base entries ({title, content, metadata}) in batches, then insert them together.

        Nothing is written unless every entry was embedded.
        """
        embeddings = self.generate_embeddings([entry["content"] for entry in entries])
        rows = [
            {
                "bot_id": bot_id,
                "user_id": user_id,
                "title": entry["title"],
                "content": entry["content"],
                "metadata": entry.get("metadata") or {},
                "embedding": embedding,
            }
            for entry, embedding in zip(entries, embeddings)
        ]
        result = self.supabase.table("knowledge_base").insert(rows).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to store knowledge entries")
        return result.data
