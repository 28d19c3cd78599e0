from supabase import Client
from planforge.modules.workflow_data.schemas import (
    WorkflowDataSave, WorkflowLinkCreate, WorkflowDataResponse
)
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowDataService:
    """Per-project workflow form state (proposal / development / operation) and the links between them."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def save(self, payload: WorkflowDataSave, user_id: str) -> WorkflowDataResponse:
        try:
            now = _now()
            result = self.supabase.table("workflow_data").upsert({
                "project_id": payload.project_id,
                "user_id": user_id,
                "workflow_type": payload.workflow_type,
                "data": payload.data,
                "version": payload.data.get("version") or 1,
                "status": payload.data.get("status") or "draft",
                "created_at": now,
                "updated_at": now,
            }, on_conflict="project_id,user_id,workflow_type,version").execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save workflow data")

            return WorkflowDataResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Workflow data save error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_data(self, project_id: str, user_id: str, workflow_type: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table("workflow_data")\
                .select("*")\
                .eq("project_id", project_id)\
                .eq("user_id", user_id)
            if workflow_type:
                query = query.eq("workflow_type", workflow_type)
            result = query.order("version", desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Workflow data fetch error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_project_summary(self, project_id: str, user_id: str) -> Dict[str, Any]:
        """Latest version per workflow type plus the project's data links."""
        rows = self.list_data(project_id, user_id)
        latest: Dict[str, Dict[str, Any]] = {}
        # rows are version-descending, so the first row seen per type is the latest
        for row in rows:
            latest.setdefault(row["workflow_type"], row)

        links: List[Dict[str, Any]] = []
        try:
            links_result = self.supabase.table("workflow_data_links")\
                .select("*")\
                .eq("project_id", project_id)\
                .execute()
            links = links_result.data or []
        except Exception as e:
            logger.warning(f"Data links fetch error for project {project_id}: {e}")

        return {"workflowData": latest, "dataLinks": links}

    def delete_project_data(self, project_id: str, user_id: str) -> None:
        try:
            self.supabase.table("workflow_data")\
                .delete()\
                .eq("project_id", project_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Workflow data delete error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        try:
            self.supabase.table("workflow_data_links")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.warning(f"Data links delete error for project {project_id}: {e}")

    def create_link(self, payload: WorkflowLinkCreate) -> Dict[str, Any]:
        try:
            result = self.supabase.table("workflow_data_links").insert({
                "project_id": payload.project_id,
                "source_workflow": payload.source_workflow,
                "target_workflow": payload.target_workflow,
                "source_data_id": payload.source_data_id,
                "target_data_id": payload.target_data_id,
                "link_type": payload.link_type,
                "mappings": payload.mappings,
                "created_at": _now(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create data link")

            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Data link save error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_links(self, project_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("workflow_data_links")\
                .select("*")\
                .eq("project_id", project_id)\
                .order("created_at", desc=True)\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Data links fetch error: {e}")
            raise HTTPException(status_code=500, detail=str(e))
