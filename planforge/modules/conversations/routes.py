from fastapi import APIRouter, Depends
from planforge.database.supabase_client import get_supabase
from planforge.modules.conversations.schemas import (
    ConversationCreate, ConversationWithMessages, MessageCreate,
    ConversationListResponse, ConversationEnvelope, ConversationDetailEnvelope, MessageEnvelope
)
from planforge.modules.conversations.service import ConversationService
from planforge.core.dependencies import get_current_user
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_service(supabase: Client = Depends(get_supabase)) -> ConversationService:
    return ConversationService(supabase)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    project_id: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """List the user's conversations, most recently active first"""
    conversations = service.list_conversations(user_data["id"], project_id=project_id, limit=limit, offset=offset)
    return ConversationListResponse(data=conversations)


@router.post("", response_model=ConversationEnvelope, status_code=201)
async def create_conversation(
    data: ConversationCreate,
    user_data: Dict = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    return ConversationEnvelope(data=service.create_conversation(data, user_data["id"]))


@router.get("/{conversation_id}", response_model=ConversationDetailEnvelope)
async def get_conversation(
    conversation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """Conversation with its messages in order"""
    conversation = service.get_conversation(conversation_id, user_data["id"])
    return ConversationDetailEnvelope(
        data=ConversationWithMessages(**conversation, messages=service.get_messages(conversation_id))
    )


@router.post("/{conversation_id}/messages", response_model=MessageEnvelope, status_code=201)
async def add_message(
    conversation_id: str,
    message: MessageCreate,
    user_data: Dict = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    service.get_conversation(conversation_id, user_data["id"])
    return MessageEnvelope(data=service.add_message(conversation_id, message))


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    service.get_conversation(conversation_id, user_data["id"])
    service.delete_conversation(conversation_id)
    return None
