from fastapi import APIRouter, Depends
from planforge.database.supabase_client import get_supabase
from planforge.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectListResponse, ProjectEnvelope
)
from planforge.modules.projects.service import ProjectService
from planforge.core.dependencies import get_current_user, check_project_access
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(supabase: Client = Depends(get_supabase)) -> ProjectService:
    return ProjectService(supabase)


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    project_type: str = "all",
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """List owned, public or all visible projects"""
    projects = service.list_projects(
        user_data["id"], project_type=project_type, category=category, status=status, search=search
    )
    return ProjectListResponse(data=projects)


@router.post("", response_model=ProjectEnvelope, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Create a new project"""
    return ProjectEnvelope(data=service.create_project(project_data, user_data["id"]))


@router.get("/{project_id}", response_model=ProjectEnvelope)
async def get_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Get a project the user owns or that is public"""
    project = check_project_access(project_id, user_data, supabase)
    return ProjectEnvelope(data=ProjectResponse(**project))


@router.put("/{project_id}", response_model=ProjectEnvelope)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    """Update project (owner only)"""
    check_project_access(project_id, user_data, supabase, require_owner=True)
    return ProjectEnvelope(data=service.update_project(project_id, project_data))


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete project (owner only)"""
    check_project_access(project_id, user_data, supabase, require_owner=True)
    service.delete_project(project_id)
    return None
