import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from planforge.config import settings
from planforge.modules.code_execution.schemas import CodeExecuteRequest
from planforge.modules.code_execution.executor import (
    LANGUAGES, MAX_CODE_SIZE, DEFAULT_EXECUTION_TIME_MS, MAX_EXECUTION_TIME_MS, DEFAULT_MEMORY_MB, execute,
)
from planforge.modules.code_execution.security import find_blocked_patterns
from planforge.core.dependencies import get_current_user
from typing import Dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/code", tags=["code"])


@router.post("/execute")
def execute_code(
    request: CodeExecuteRequest,
    user_data: Dict = Depends(get_current_user)
):
    """Run a short snippet and return its output. Blocked code gets 403 with the matched patterns."""
    if not settings.code_execution_enabled:
        raise HTTPException(status_code=503, detail="Code execution is disabled")
    if not request.code or not request.language:
        raise HTTPException(status_code=400, detail="Code and language are required")
    if request.language not in LANGUAGES:
        supported = ", ".join(LANGUAGES.keys())
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported language: {request.language}. Supported languages: {supported}",
        )
    if len(request.code.encode("utf-8")) > MAX_CODE_SIZE:
        raise HTTPException(status_code=413, detail="Code size exceeds the 100KB limit")

    blocked = find_blocked_patterns(request.code)
    if blocked:
        logger.warning(f"Blocked code execution for user {user_data['id']}: {len(blocked)} pattern(s)")
        return JSONResponse(
            status_code=403,
            content={
                "success": False,
                "error": "Code contains potentially dangerous operations",
                "blockedPatterns": blocked,
            },
        )

    timeout_ms = min(request.max_execution_time or DEFAULT_EXECUTION_TIME_MS, MAX_EXECUTION_TIME_MS)
    return execute(request.code, request.language, timeout_ms)


@router.get("/execute")
async def execution_capabilities():
    """Supported languages and execution limits"""
    return {
        "success": True,
        "supportedLanguages": [
            {"language": name, "extension": config["extension"], "defaultTimeout": config["timeout"]}
            for name, config in LANGUAGES.items()
        ],
        "maxExecutionTime": MAX_EXECUTION_TIME_MS,
        "maxCodeSize": MAX_CODE_SIZE,
        "defaultMemoryLimit": DEFAULT_MEMORY_MB,
        "security": {
            "enabled": settings.code_execution_enabled,
            "denylist": True,
            "sandboxed": False,
            "networkAccess": "blocked by pattern",
        },
    }
