from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any


class ContextUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(None, alias="projectId")
    context_type: Optional[str] = Field(None, alias="contextType")
    data: Optional[Dict[str, Any]] = None


class ContextDocument(BaseModel):
    """Payload of an add_document update"""
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName", min_length=1)
    file_type: str = Field("text/plain", alias="fileType")
    content: str = ""
    metadata: Dict[str, Any] = {}


CONTEXT_TYPES = ("project_info", "add_document")
