from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any


class BotCreate(BaseModel):
    name: str
    description: str
    avatar: Optional[str] = None
    instructions: Optional[str] = None
    tags: List[str] = []
    is_public: bool = False

    @field_validator("name", "description")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name and description are required")
        return v.strip()


class BotUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    avatar: Optional[str] = None
    instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    is_active: Optional[bool] = None


class BotResponse(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    avatar: Optional[str] = None
    instructions: Optional[str] = None
    tags: Optional[List[str]] = []
    is_public: bool = False
    is_active: bool = True
    usage_count: int = 0
    like_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BotChatRequest(BaseModel):
    message: str
    context: Optional[str] = None

    @field_validator("message")
    @classmethod
    def message_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message is required")
        return v


class BotChatResponse(BaseModel):
    response: str
    sources: List[Dict[str, Any]] = []
    confidence: float
    model: str
    context_used: bool


class KnowledgeFileResult(BaseModel):
    file_name: str
    success: bool
    chunks_created: int = 0
    error: Optional[str] = None


class KnowledgeUploadResponse(BaseModel):
    success: bool
    processed_count: int
    failed_count: int
    errors: List[str] = []
    file_results: List[KnowledgeFileResult] = []
