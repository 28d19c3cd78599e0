from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

ProjectStatus = Literal["active", "completed", "archived", "on_hold"]
VisibilityLevel = Literal["private", "team", "public"]


class ProjectCreate(BaseModel):
    name: str
    category: str
    description: Optional[str] = None
    status: ProjectStatus = "active"
    tags: List[str] = []
    metadata: Dict[str, Any] = {}
    is_public: bool = False
    visibility_level: VisibilityLevel = "private"

    @field_validator("name", "category")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Project name and category are required")
        return v.strip()


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[ProjectStatus] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    is_public: Optional[bool] = None
    visibility_level: Optional[VisibilityLevel] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    owner_id: Optional[str] = None
    tags: Optional[List[str]] = []
    metadata: Optional[Dict[str, Any]] = {}
    is_public: Optional[bool] = False
    visibility_level: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    success: bool = True
    data: List[ProjectResponse]


class ProjectEnvelope(BaseModel):
    success: bool = True
    data: ProjectResponse
