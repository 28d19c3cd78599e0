from fastapi import APIRouter, Depends, HTTPException
from planforge.database.supabase_client import get_supabase
from planforge.modules.workflow_data.schemas import WorkflowDataSave, WorkflowLinkCreate
from planforge.modules.workflow_data.service import WorkflowDataService
from planforge.core.dependencies import get_current_user
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/workflow-data", tags=["workflow-data"])


def get_workflow_data_service(supabase: Client = Depends(get_supabase)) -> WorkflowDataService:
    return WorkflowDataService(supabase)


@router.post("", status_code=200)
async def save_workflow_data(
    payload: WorkflowDataSave,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """Save (upsert) a workflow's data for a project"""
    return {"success": True, "data": service.save(payload, user_data["id"])}


@router.get("")
async def list_workflow_data(
    projectId: Optional[str] = None,
    workflowType: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """List the user's workflow data for a project, newest version first"""
    if not projectId:
        raise HTTPException(status_code=400, detail="projectId is required")
    return {"success": True, "data": service.list_data(projectId, user_data["id"], workflowType)}


@router.post("/links", status_code=200)
async def create_link(
    payload: WorkflowLinkCreate,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """Link data between two workflows of a project"""
    return {"success": True, "data": service.create_link(payload)}


@router.get("/links")
async def list_links(
    projectId: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """List data links for a project"""
    if not projectId:
        raise HTTPException(status_code=400, detail="projectId is required")
    return {"success": True, "data": service.list_links(projectId)}


@router.get("/{project_id}")
async def get_project_workflow_data(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """Latest data per workflow type plus data links"""
    return {"success": True, **service.get_project_summary(project_id, user_data["id"])}


@router.delete("/{project_id}")
async def delete_project_workflow_data(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: WorkflowDataService = Depends(get_workflow_data_service)
):
    """Delete all of the user's workflow data for a project"""
    service.delete_project_data(project_id, user_data["id"])
    return {"success": True, "message": "Project workflow data deleted successfully"}
