from fastapi import APIRouter, Depends, HTTPException
from planforge.database.supabase_client import get_supabase
from planforge.modules.chat_context.schemas import ContextUpdateRequest
from planforge.modules.chat_context.service import ChatContextService
from planforge.core.dependencies import get_current_user, check_project_access
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/chat/context", tags=["chat"])


def get_context_service(supabase: Client = Depends(get_supabase)) -> ChatContextService:
    return ChatContextService(supabase)


@router.get("")
async def get_context(
    projectId: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    service: ChatContextService = Depends(get_context_service)
):
    """Project, its recent conversations and documents, for grounding a chat"""
    if not projectId:
        raise HTTPException(status_code=400, detail="projectId is required")
    project = check_project_access(projectId, user_data, supabase, require_owner=True)
    return service.get_context(project)


@router.post("")
async def update_context(
    body: ContextUpdateRequest,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    service: ChatContextService = Depends(get_context_service)
):
    if not body.project_id or not body.context_type or not body.data:
        raise HTTPException(status_code=400, detail="projectId, contextType, and data are required")
    check_project_access(body.project_id, user_data, supabase, require_owner=True)
    service.update_context(body.project_id, user_data["id"], body.context_type, body.data)
    return {"success": True}
