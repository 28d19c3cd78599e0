import json
import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from openai import OpenAI
from supabase import Client

from planforge.config import settings
from planforge.modules.rag.embeddings import EmbeddingClient
from planforge.modules.rag.schemas import RAGQueryOptions, RAGResponse, SearchOptions
from planforge.modules.rag.vector_search import VectorSearchService

logger = logging.getLogger(__name__)

MAX_SOURCES = 5
MIN_CONFIDENCE = 0.6
HISTORY_WINDOW = 5
ANSWER_MAX_TOKENS = 1000
FALLBACK_MAX_TOKENS = 200
FALLBACK_CONFIDENCE = 0.2

BACK_REFERENCE = re.compile(r"\b(it|this|that|them|they|above|previous|earlier)\b", re.IGNORECASE)

SYSTEM_GUIDELINES = """You are an assistant for an AI planning platform. Answer using the provided context.

Guidelines:
- Base the answer on the context below; say so when the context does not contain the answer.
- Cite the source document names you relied on.
- Be concise and structured; use lists for steps or requirements.
- Do not invent figures, dates or names that are not in the context."""


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def build_context(results: List[Dict[str, Any]], max_tokens: int) -> Tuple[str, List[Dict[str, Any]]]:
    """Concatenate the best sources until the token budget is spent."""
    ordered = sorted(results, key=lambda r: r["similarity_score"], reverse=True)
    parts: List[str] = []
    used: List[Dict[str, Any]] = []
    tokens = 0
    for result in ordered:
        block = f"Source: {result.get('document_name') or 'Knowledge Base'}\n{result['chunk_text']}\n\n"
        block_tokens = estimate_tokens(block)
        if tokens + block_tokens > max_tokens:
            break
        parts.append(block)
        used.append(result)
        tokens += block_tokens
    return "".join(parts), used


def calculate_confidence(sources: List[Dict[str, Any]], answer: str) -> float:
    if not sources:
        return FALLBACK_CONFIDENCE
    average_similarity = sum(s["similarity_score"] for s in sources) / len(sources)
    confidence = 0.5 + average_similarity * 0.3 + min(len(sources) / MAX_SOURCES, 1) * 0.1
    if len(answer) > 100:
        confidence += 0.1
    lowered = answer.lower()
    if "based on" in lowered or "according to" in lowered:
        confidence += 0.05
    return min(confidence, 1.0)


def rewrite_with_history(query: str, history: List[Dict[str, str]]) -> str:
    """Prefix the previous exchange when the query refers back to it."""
    if not BACK_REFERENCE.search(query):
        return query
    last_user = next((m["content"] for m in reversed(history) if m["role"] == "user"), "")
    last_assistant = next((m["content"] for m in reversed(history) if m["role"] == "assistant"), "")
    if not last_user and not last_assistant:
        return query
    return f"Previous context: {last_user} {last_assistant}\n\nCurrent question: {query}"


class RAGService:
    def __init__(
        self,
        supabase: Client,
        embedder: Optional[EmbeddingClient] = None,
        chat_client: Optional[OpenAI] = None,
    ):
        self.supabase = supabase
        self.embedder = embedder or EmbeddingClient()
        self.search = VectorSearchService(supabase, self.embedder)
        self._chat_client = chat_client

    @property
    def chat_client(self) -> OpenAI:
        if self._chat_client is None:
            if not settings.openai_api_key:
                raise HTTPException(status_code=503, detail="OpenAI API key is not configured")
            self._chat_client = OpenAI(api_key=settings.openai_api_key, timeout=settings.ai_request_timeout)
        return self._chat_client

    def _complete(self, messages: List[Dict[str, str]], model: str, temperature: float, max_tokens: int):
        try:
            response = self.chat_client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RAG completion failed: {e}")
            raise HTTPException(status_code=500, detail=f"Answer generation failed: {e}")
        answer = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0
        return answer, tokens

    def retrieve(self, query: str, options: RAGQueryOptions) -> List[Dict[str, Any]]:
        search_options = SearchOptions(
            limit=MAX_SOURCES,
            threshold=MIN_CONFIDENCE,
            project_id=options.project_id,
            document_ids=options.document_ids,
        )
        if options.custom_bot_id:
            return self.search.search_knowledge_base(query, options.custom_bot_id, search_options)
        search_query = query
        if settings.rag_query_expansion:
            expansion = self.expand_query(query)
            search_query = " ".join([query, *expansion["expanded_terms"]])
        return self.search.hybrid_search(search_query, search_options)

    def query(self, query: str, options: RAGQueryOptions) -> RAGResponse:
        """Retrieve context for the query and answer from it."""
        results = self.retrieve(query, options)
        if not results:
            logger.info("No RAG sources found, answering without context")
            return self.fallback_response(query, options)

        context, sources = build_context(results, options.max_context_length)
        system_prompt = f"{SYSTEM_GUIDELINES}\n\nContext:\n{context}"
        if options.context:
            system_prompt += f"\n\nAdditional context:\n{options.context}"

        answer, tokens = self._complete(
            [{"role": "system", "content": system_prompt}, {"role": "user", "content": query}],
            options.model,
            options.temperature,
            ANSWER_MAX_TOKENS,
        )
        return RAGResponse(
            answer=answer,
            sources=sources,
            confidence=calculate_confidence(sources, answer),
            model=options.model,
            tokens_used=tokens,
            context_length=len(context),
        )

    def conversational_query(
        self,
        query: str,
        history: List[Dict[str, str]],
        options: RAGQueryOptions,
    ) -> RAGResponse:
        recent = history[-HISTORY_WINDOW:]
        transcript = "\n".join(f"{m['role']}: {m['content']}" for m in recent)
        extra = "\n\n".join(part for part in (options.context, transcript) if part)
        return self.query(
            rewrite_with_history(query, recent),
            options.model_copy(update={"context": extra or None}),
        )

    def query_custom_bot(self, bot_id: str, query: str, context: Optional[str] = None) -> RAGResponse:
        return self.query(query, RAGQueryOptions(custom_bot_id=bot_id, context=context))

    def fallback_response(self, query: str, options: RAGQueryOptions) -> RAGResponse:
        answer, tokens = self._complete(
            [
                {
                    "role": "system",
                    "content": "No relevant documents were found. Give a brief, general answer "
                               "and suggest uploading related documents for a more precise one.",
                },
                {"role": "user", "content": query},
            ],
            options.model,
            options.temperature,
            FALLBACK_MAX_TOKENS,
        )
        return RAGResponse(
            answer=answer,
            sources=[],
            confidence=FALLBACK_CONFIDENCE,
            model=options.model,
            tokens_used=tokens,
            context_length=0,
        )

    def expand_query(self, query: str) -> Dict[str, Any]:
        """Ask the model for related search terms; fall back to the query's own words."""
        fallback = {
            "expanded_terms": [word for word in query.split() if len(word) > 2],
            "intent": "general_inquiry",
        }
        try:
            answer, _ = self._complete(
                [
                    {
                        "role": "system",
                        "content": 'Return JSON {"expanded_terms": [...], "intent": "..."} with up to '
                                   "five related search terms for the user's query.",
                    },
                    {"role": "user", "content": query},
                ],
                settings.rag_default_model,
                0.3,
                FALLBACK_MAX_TOKENS,
            )
            parsed = json.loads(answer)
            return {
                "expanded_terms": [str(term) for term in parsed.get("expanded_terms", [])],
                "intent": parsed.get("intent") or "general_inquiry",
            }
        except (HTTPException, ValueError, AttributeError) as e:
            logger.warning(f"Query expansion failed, using keywords: {e}")
            return fallback
