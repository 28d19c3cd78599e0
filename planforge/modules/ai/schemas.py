from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal

ModelId = Literal["gemini", "chatgpt", "claude"]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content must be a non-empty string")
        return v


class ModelSelectionCriteria(CamelModel):
    requires_mcp: bool = Field(False, alias="requiresMCP")
    needs_creativity: bool = Field(False, alias="needsCreativity")
    cost_priority: Optional[Literal["low", "medium", "high"]] = Field(None, alias="costPriority")


class ChatRequest(CamelModel):
    messages: List[ChatMessage]
    model: Optional[ModelId] = None
    stream: bool = False
    max_tokens: Optional[int] = Field(None, alias="maxTokens", gt=0)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    criteria: Optional[ModelSelectionCriteria] = None

    @field_validator("messages")
    @classmethod
    def messages_not_empty(cls, v: List[ChatMessage]) -> List[ChatMessage]:
        if not v:
            raise ValueError("Messages array is required and must not be empty")
        return v


class Usage(CamelModel):
    prompt_tokens: int = Field(0, alias="promptTokens")
    completion_tokens: int = Field(0, alias="completionTokens")
    total_tokens: int = Field(0, alias="totalTokens")
    cost: float = 0.0


class ChatResponse(CamelModel):
    content: str
    model: str
    usage: Usage
    finish_reason: Optional[str] = Field(None, alias="finishReason")


class StreamChunk(CamelModel):
    chunk: str = ""
    done: bool = False
    model: str
    usage: Optional[Usage] = None


class ModelTestRequest(BaseModel):
    model: ModelId
