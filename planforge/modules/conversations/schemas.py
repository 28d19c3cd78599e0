from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Literal


class ConversationCreate(BaseModel):
    title: str = "New conversation"
    project_id: Optional[str] = None
    metadata: Dict[str, Any] = {}


class MessageCreate(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    metadata: Dict[str, Any] = {}


class ConversationResponse(BaseModel):
    id: str
    user_id: str
    project_id: Optional[str] = None
    title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = {}
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    role: str
    content: str
    metadata: Optional[Dict[str, Any]] = {}
    created_at: Optional[str] = None


class ConversationWithMessages(ConversationResponse):
    messages: List[MessageResponse] = []


class ConversationListResponse(BaseModel):
    success: bool = True
    data: List[ConversationResponse]


class ConversationEnvelope(BaseModel):
    success: bool = True
    data: ConversationResponse


class ConversationDetailEnvelope(BaseModel):
    success: bool = True
    data: ConversationWithMessages


class MessageEnvelope(BaseModel):
    success: bool = True
    data: MessageResponse
