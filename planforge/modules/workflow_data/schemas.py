from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Literal

WorkflowType = Literal["proposal", "development", "operation"]


class WorkflowDataSave(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId", min_length=1)
    workflow_type: WorkflowType = Field(..., alias="workflowType")
    data: Dict[str, Any]


class WorkflowLinkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId", min_length=1)
    source_workflow: WorkflowType = Field(..., alias="sourceWorkflow")
    target_workflow: WorkflowType = Field(..., alias="targetWorkflow")
    source_data_id: str = Field(..., alias="sourceDataId", min_length=1)
    target_data_id: str = Field(..., alias="targetDataId", min_length=1)
    link_type: str = Field(..., alias="linkType", min_length=1)
    mappings: List[Dict[str, Any]] = []


class WorkflowDataResponse(BaseModel):
    id: str
    project_id: str
    user_id: Optional[str] = None
    workflow_type: str
    data: Dict[str, Any] = {}
    version: int = 1
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
