import logging
import re
import time
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from planforge.config import settings
from planforge.database.supabase_client import get_supabase
from planforge.modules.proposals.schemas import RFPAnalyzeRequest, RFPDocumentRequest, SectionContentRequest, WBSRequest
from planforge.modules.proposals.rfp_analyzer import analyze_rfp
from planforge.modules.proposals.rfp_extractor import extract_rfp_document
from planforge.modules.proposals.content_generator import generate_section_content
from planforge.modules.proposals.wbs import generate_work_items
from planforge.core.dependencies import get_current_user, check_project_access
from planforge.core.activity import log_activity
from planforge.modules.rag.document_service import ALLOWED_DOCUMENT_TYPES, NON_EXTRACTABLE_TYPES, extract_text
from planforge.modules.rag.storage import DocumentStorage
from supabase import Client
from typing import Dict, Optional

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proposals"])


@router.post("/rfp/analyze")
async def analyze(
    body: RFPAnalyzeRequest,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Extract requirements from RFP text"""
    if not body.project_id or not body.content:
        raise HTTPException(status_code=400, detail="projectId and content are required")
    check_project_access(body.project_id, user_data, supabase)

    result = analyze_rfp(body.project_id, body.content, body.document_id)
    log_activity(supabase, user_data["id"], "rfp_analysis", {
        "project_id": body.project_id,
        "analysis_type": body.analysis_type,
        "requirements": result["summary"]["total_requirements"],
    }, request=request)
    logger.info(f"RFP analysis for project {body.project_id}: {result['summary']['total_requirements']} requirement(s)")
    return {"success": True, **result}


@router.post("/proposal/generate-content")
async def generate_content(
    body: SectionContentRequest,
    user_data: Dict = Depends(get_current_user)
):
    """Draft one proposal section"""
    if not body.section_type or not body.section_title:
        raise HTTPException(status_code=400, detail="Section type and title are required")
    content = generate_section_content(
        body.section_type,
        body.section_title,
        body.project_title,
        body.rfp_analysis,
        body.market_research,
    )
    return {"content": content}


@router.post("/proposal/generate-wbs")
async def generate_wbs(
    body: WBSRequest,
    user_data: Dict = Depends(get_current_user)
):
    """Work breakdown structure scaled to the project scope"""
    return {"workItems": generate_work_items(body.project_type, body.scope)}


@router.post("/proposal/upload-rfp")
def upload_rfp(
    file: Optional[UploadFile] = File(None),
    projectId: Optional[str] = Form(None),
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Store an RFP file under rfp/ and return its text for analysis"""
    if file is None or not projectId:
        raise HTTPException(status_code=400, detail="File and project ID are required")
    content_type = file.content_type or ""
    if content_type not in ALLOWED_DOCUMENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {content_type}. Supported types: {', '.join(ALLOWED_DOCUMENT_TYPES)}"
        )
    content = file.file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File size exceeds {settings.max_upload_size_mb}MB limit")
    check_project_access(projectId, user_data, supabase, require_owner=True)

    file_name = file.filename or "rfp"
    # DOC and HWP are kept for download only
    text_content = "" if content_type in NON_EXTRACTABLE_TYPES else extract_text(content, content_type)

    safe_name = re.sub(r"[^a-zA-Z0-9._-]", "_", file_name)
    key = f"rfp/{projectId}_{int(time.time() * 1000)}_{safe_name}"
    storage = DocumentStorage(supabase)
    storage_path = storage.upload(content, key, content_type)
    logger.info(f"RFP {file_name} uploaded for project {projectId} to {storage_path}")
    return {
        "success": True,
        "fileUrl": storage.public_url(storage_path),
        "textContent": text_content,
        "textExtracted": content_type not in NON_EXTRACTABLE_TYPES,
        "fileName": file_name,
        "fileSize": len(content),
        "fileType": content_type,
        "storagePath": storage_path,
    }


@router.post("/proposal/analyze-rfp")
async def analyze_rfp_document(
    body: RFPDocumentRequest,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase)
):
    """Extract title, client, budget and requirement lists from RFP text"""
    if not body.text_content or not body.file_name:
        raise HTTPException(status_code=400, detail="Text content and file name are required")
    if body.project_id:
        check_project_access(body.project_id, user_data, supabase)

    analysis = extract_rfp_document(body.text_content, body.file_name)
    if body.project_id:
        log_activity(supabase, user_data["id"], "rfp_document_analysis", {
            "project_id": body.project_id,
            "file_name": body.file_name,
        }, request=request)
    return analysis
