from supabase import Client
from planforge.modules.projects.schemas import ProjectCreate, ProjectUpdate, ProjectResponse
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PROJECT_TYPES = ("owned", "public", "all")


class ProjectService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_projects(
        self,
        user_id: str,
        project_type: str = "all",
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[ProjectResponse]:
        """List projects visible to the user, newest activity first."""
        if project_type not in PROJECT_TYPES:
            raise HTTPException(status_code=400, detail=f"project_type must be one of: {', '.join(PROJECT_TYPES)}")
        try:
            query = self.supabase.table("projects").select("*")
            if project_type == "owned":
                query = query.eq("owner_id", user_id)
            elif project_type == "public":
                query = query.eq("is_public", True).eq("visibility_level", "public")
            else:
                query = query.or_(f"owner_id.eq.{user_id},and(is_public.eq.true,visibility_level.eq.public)")
            if category:
                query = query.eq("category", category)
            if status:
                query = query.eq("status", status)
            if search:
                query = query.or_(f"name.ilike.%{search}%,description.ilike.%{search}%")
            result = query.order("updated_at", desc=True).execute()
            return [ProjectResponse(**project) for project in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to list projects: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def create_project(self, project_data: ProjectCreate, user_id: str) -> ProjectResponse:
        """Create a project owned by the user"""
        try:
            result = self.supabase.table("projects").insert({
                "name": project_data.name,
                "description": project_data.description,
                "category": project_data.category,
                "status": project_data.status,
                "user_id": user_id,
                "owner_id": user_id,
                "tags": project_data.tags,
                "metadata": project_data.metadata,
                "is_public": project_data.is_public,
                "visibility_level": project_data.visibility_level,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create project")

            logger.info(f"Project {result.data[0]['id']} created by {user_id}")
            return ProjectResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_project(self, project_id: str, project_data: ProjectUpdate) -> ProjectResponse:
        """Update the fields that were sent"""
        try:
            update_data = project_data.model_dump(exclude_unset=True)
            if not update_data:
                raise HTTPException(status_code=400, detail="No fields to update")
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("projects")\
                .update(update_data)\
                .eq("id", project_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Project not found")

            return ProjectResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_project(self, project_id: str) -> bool:
        """Delete project and its workflow data"""
        try:
            self.supabase.table("workflow_data_links")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
            self.supabase.table("workflow_data")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
            result = self.supabase.table("projects")\
                .delete()\
                .eq("id", project_id)\
                .execute()
            return len(result.data or []) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
