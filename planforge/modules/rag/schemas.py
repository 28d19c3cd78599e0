from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any, Literal, get_args

SearchType = Literal["semantic", "keyword", "hybrid", "knowledge_base", "global"]
SEARCH_TYPES = get_args(SearchType)

RAG_CHAT_MODELS = ("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo-preview", "gpt-4o", "gpt-4o-mini")
MAX_SEARCH_LIMIT = 50
MAX_CONTEXT_LENGTH_CAP = 8000


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class SearchOptions(BaseModel):
    """Options shared by every vector search strategy."""
    limit: int = 10
    threshold: float = 0.7
    project_id: Optional[str] = None
    document_ids: Optional[List[str]] = None
    custom_bot_id: Optional[str] = None
    include_metadata: bool = True
    keyword_weight: float = 0.3
    vector_weight: float = 0.7
    rerank: bool = True


class SearchRequest(CamelModel):
    query: str
    search_type: SearchType = Field("hybrid", alias="searchType")
    project_id: Optional[str] = Field(None, alias="projectId")
    document_ids: Optional[List[str]] = Field(None, alias="documentIds")
    custom_bot_id: Optional[str] = Field(None, alias="customBotId")
    limit: int = 10
    threshold: float = 0.7
    include_metadata: bool = Field(True, alias="includeMetadata")

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query is required and must be a non-empty string")
        return v.strip()

    @field_validator("search_type", mode="before")
    @classmethod
    def known_search_type(cls, v: Any) -> Any:
        if v not in SEARCH_TYPES:
            raise ValueError(f"Invalid search type. Use one of: {', '.join(SEARCH_TYPES)}")
        return v

    @field_validator("limit")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        return max(1, min(v, MAX_SEARCH_LIMIT))

    @field_validator("threshold")
    @classmethod
    def clamp_threshold(cls, v: float) -> float:
        return max(0.1, min(v, 1.0))


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class RAGChatRequest(CamelModel):
    query: str
    context: Optional[str] = None
    project_id: Optional[str] = Field(None, alias="projectId")
    document_ids: Optional[List[str]] = Field(None, alias="documentIds")
    custom_bot_id: Optional[str] = Field(None, alias="customBotId")
    chat_history: Optional[List[HistoryMessage]] = Field(None, alias="chatHistory")
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    max_context_length: int = Field(4000, alias="maxContextLength")

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query is required and must be a non-empty string")
        return v.strip()

    @field_validator("model")
    @classmethod
    def supported_model(cls, v: str) -> str:
        if v not in RAG_CHAT_MODELS:
            raise ValueError(f"Unsupported model. Use one of: {', '.join(RAG_CHAT_MODELS)}")
        return v

    @field_validator("temperature")
    @classmethod
    def clamp_temperature(cls, v: float) -> float:
        return max(0.0, min(v, 2.0))

    @field_validator("max_context_length")
    @classmethod
    def cap_context(cls, v: int) -> int:
        return max(500, min(v, MAX_CONTEXT_LENGTH_CAP))


class RAGQueryOptions(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    project_id: Optional[str] = None
    document_ids: Optional[List[str]] = None
    custom_bot_id: Optional[str] = None
    context: Optional[str] = None
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    max_context_length: int = 4000


class RAGResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    answer: str
    sources: List[Dict[str, Any]] = []
    confidence: float
    model: str
    tokens_used: int = 0
    context_length: int = 0
