import json
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from planforge.modules.rag.embeddings import EmbeddingClient
from planforge.modules.rag.schemas import SearchOptions

logger = logging.getLogger(__name__)

SIMILAR_CHUNKS_LIMIT = 10
SIMILAR_CHUNKS_THRESHOLD = 0.6


def rank_results(results: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Boost exact phrase matches, short chunks and high-confidence chunks, then sort."""
    needle = query.lower()
    ranked = []
    for result in results:
        score = result["similarity_score"]
        text = result.get("chunk_text") or ""
        if needle and needle in text.lower():
            score *= 1.2
        if len(text) < 500:
            score *= 1.1
        confidence = (result.get("metadata") or {}).get("confidence_score")
        if isinstance(confidence, (int, float)) and confidence > 0.8:
            score *= 1.05
        ranked.append({**result, "similarity_score": score})
    return sorted(ranked, key=lambda r: r["similarity_score"], reverse=True)


def keyword_score(query: str, text: str) -> float:
    """Fraction of query words that appear in the text."""
    query_words = query.lower().split()
    if not query_words:
        return 0.0
    text_words = set(text.lower().split())
    return sum(1 for word in query_words if word in text_words) / len(query_words)


def combine_results(
    vector_results: List[Dict[str, Any]],
    keyword_results: List[Dict[str, Any]],
    vector_weight: float,
    keyword_weight: float,
) -> List[Dict[str, Any]]:
    combined: Dict[str, Dict[str, Any]] = {}
    for result in vector_results:
        combined[result["id"]] = {**result, "similarity_score": result["similarity_score"] * vector_weight}
    for result in keyword_results:
        weighted = result["similarity_score"] * keyword_weight
        if result["id"] in combined:
            combined[result["id"]]["similarity_score"] += weighted
        else:
            combined[result["id"]] = {**result, "similarity_score": weighted}
    return sorted(combined.values(), key=lambda r: r["similarity_score"], reverse=True)


def _parse_embedding(value: Any) -> Optional[List[float]]:
    # pgvector columns come back from PostgREST as "[0.1,0.2,...]"
    if isinstance(value, str):
        return json.loads(value)
    return value


class VectorSearchService:
    def __init__(self, supabase: Client, embedder: Optional[EmbeddingClient] = None):
        self.supabase = supabase
        self.embedder = embedder or EmbeddingClient()

    def _chunk_result(self, row: Dict[str, Any], include_metadata: bool) -> Dict[str, Any]:
        metadata = row.get("metadata") or {}
        return {
            "id": row["id"],
            "chunk_text": row.get("chunk_text", ""),
            "metadata": metadata if include_metadata else {},
            "similarity_score": row.get("similarity", row.get("similarity_score", 0.0)),
            "document_id": row.get("document_id"),
            "document_name": metadata.get("document_file_name", "Unknown"),
            "project_id": row.get("project_id"),
        }

    def _match_chunks(self, embedding: List[float], options: SearchOptions, match_count: int):
        query = self.supabase.rpc("search_document_chunks", {
            "query_embedding": embedding,
            "match_threshold": options.threshold,
            "match_count": match_count,
        })
        if options.project_id:
            query = query.eq("project_id", options.project_id)
        if options.document_ids:
            query = query.in_("document_id", options.document_ids)
        return query

    def semantic_search(self, query: str, options: SearchOptions) -> List[Dict[str, Any]]:
        embedding = self.embedder.embed_one(query)
        try:
            result = self._match_chunks(embedding, options, options.limit).execute()
        except Exception as e:
            logger.error(f"Semantic search failed: {e}")
            return []
        results = [self._chunk_result(row, options.include_metadata) for row in result.data or []]
        return rank_results(results, query)

    def keyword_search(self, query: str, options: SearchOptions) -> List[Dict[str, Any]]:
        try:
            db_query = self.supabase.table("document_chunks")\
                .select("id, chunk_text, metadata, document_id, project_id")\
                .text_search("chunk_text", query, options={"type": "websearch", "config": "english"})
            if options.project_id:
                db_query = db_query.eq("project_id", options.project_id)
            if options.document_ids:
                db_query = db_query.in_("document_id", options.document_ids)
            result = db_query.limit(options.limit).execute()
        except Exception as e:
            logger.error(f"Keyword search failed: {e}")
            return []
        results = []
        for row in result.data or []:
            item = self._chunk_result(row, options.include_metadata)
            item["similarity_score"] = keyword_score(query, item["chunk_text"])
            results.append(item)
        return sorted(results, key=lambda r: r["similarity_score"], reverse=True)

    def hybrid_search(self, query: str, options: SearchOptions) -> List[Dict[str, Any]]:
        """Weighted merge of semantic and keyword results, each fetched at twice the limit."""
        wide = options.model_copy(update={"limit": options.limit * 2})
        vector_results = self.semantic_search(query, wide)
        keyword_results = self.keyword_search(query, wide)
        combined = combine_results(vector_results, keyword_results, options.vector_weight, options.keyword_weight)
        if options.rerank:
            combined = rank_results(combined[:options.limit * 2], query)
        return combined[:options.limit]

    def search_knowledge_base(self, query: str, bot_id: str, options: SearchOptions) -> List[Dict[str, Any]]:
        embedding = self.embedder.embed_one(query)
        try:
            result = self.supabase.rpc("search_knowledge_base", {
                "query_embedding": embedding,
                "bot_id": bot_id,
                "match_threshold": options.threshold,
                "match_count": options.limit,
            }).execute()
        except Exception as e:
            logger.error(f"Knowledge base search failed for bot {bot_id}: {e}")
            return []
        results = []
        for row in result.data or []:
            results.append({
                "id": row["id"],
                "chunk_text": row.get("content", ""),
                "metadata": (row.get("metadata") or {}) if options.include_metadata else {},
                "similarity_score": row.get("similarity", 0.0),
                "document_id": None,
                "document_name": row.get("title") or "Knowledge Base",
                "project_id": None,
            })
        return rank_results(results, query)

    def global_search(self, query: str, user_id: str, options: SearchOptions) -> List[Dict[str, Any]]:
        """Hybrid search across every document the user has uploaded."""
        try:
            docs_result = self.supabase.table("documents")\
                .select("id, file_name, project_id")\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Global search document lookup failed: {e}")
            return []
        documents = {doc["id"]: doc for doc in docs_result.data or []}
        if not documents:
            return []
        scoped = options.model_copy(update={"document_ids": list(documents.keys()), "project_id": None})
        results = self.hybrid_search(query, scoped)
        for result in results:
            doc = documents.get(result.get("document_id"))
            if doc:
                result["document_name"] = doc.get("file_name") or result["document_name"]
                result["project_id"] = doc.get("project_id")
        return results

    def find_similar_chunks(
        self,
        chunk_id: str,
        limit: int = SIMILAR_CHUNKS_LIMIT,
        threshold: float = SIMILAR_CHUNKS_THRESHOLD,
    ) -> List[Dict[str, Any]]:
        """Nearest neighbours of a stored chunk, excluding the chunk itself."""
        try:
            chunk = self.supabase.table("document_chunks")\
                .select("embedding")\
                .eq("id", chunk_id)\
                .maybe_single()\
                .execute()
            embedding = _parse_embedding(chunk.data.get("embedding")) if chunk and chunk.data else None
            if not embedding:
                return []
            result = self.supabase.rpc("search_document_chunks", {
                "query_embedding": embedding,
                "match_threshold": threshold,
                "match_count": limit + 1,
            }).neq("id", chunk_id).execute()
        except Exception as e:
            logger.error(f"Similar chunk search failed for {chunk_id}: {e}")
            return []
        results = [self._chunk_result(row, True) for row in result.data or []]
        return results[:limit]
