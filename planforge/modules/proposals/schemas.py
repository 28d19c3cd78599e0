from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Literal


class RFPAnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(None, alias="projectId")
    content: Optional[str] = None
    analysis_type: Literal["manual", "document"] = Field("manual", alias="analysisType")
    document_id: Optional[str] = Field(None, alias="documentId")


class SectionContentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    section_type: Optional[str] = Field(None, alias="sectionType")
    section_title: Optional[str] = Field(None, alias="sectionTitle")
    project_title: Optional[str] = Field(None, alias="projectTitle")
    rfp_analysis: Optional[Dict[str, Any]] = Field(None, alias="rfpAnalysis")
    market_research: Optional[Dict[str, Any]] = Field(None, alias="marketResearch")


class WBSRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_type: Optional[str] = Field(None, alias="projectType")
    scope: Optional[Literal["mvp", "standard", "enterprise"]] = None


class RFPDocumentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text_content: Optional[str] = Field(None, alias="textContent")
    file_name: Optional[str] = Field(None, alias="fileName")
    project_id: Optional[str] = Field(None, alias="projectId")
