import json
import logging
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from planforge.core.dependencies import get_current_user
from planforge.modules.ai.schemas import ChatRequest, ChatResponse, ModelTestRequest
from planforge.modules.ai.service import AIService, get_ai_service, select_model

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def sse_frames(service: AIService, request: ChatRequest):
    """Render stream chunks as server-sent events, ending with [DONE] or an error frame."""
    try:
        for chunk in service.stream_chat(request):
            yield f"data: {chunk.model_dump_json(by_alias=True, exclude_none=True)}\n\n"
            if chunk.done:
                yield "data: [DONE]\n\n"
                return
    except Exception as e:
        logger.error(f"Streaming chat failed: {e}")
        detail = getattr(e, "detail", None) or str(e)
        yield f"data: {json.dumps({'error': detail, 'done': True})}\n\n"


@router.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    user_data: Dict = Depends(get_current_user),
    service: AIService = Depends(get_ai_service)
):
    """Chat with the selected model; stream=true answers with text/event-stream"""
    if request.stream:
        # Fail before the stream opens when the provider is not usable
        service.get_provider(select_model(request.criteria, request.model))
        return StreamingResponse(
            sse_frames(service, request),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )
    return service.chat(request)


@router.get("/chat")
async def chat_models(service: AIService = Depends(get_ai_service)):
    """Available chat models"""
    return {"models": service.available_models(), "timestamp": _now()}


@router.get("/models")
async def list_models(service: AIService = Depends(get_ai_service)):
    """Model catalogue with availability and features"""
    return {"success": True, "data": {"models": service.describe_models(), "timestamp": _now()}}


@router.post("/models/test")
def test_model(
    request: ModelTestRequest,
    user_data: Dict = Depends(get_current_user),
    service: AIService = Depends(get_ai_service)
):
    """Check a model with a fixed message"""
    return {"success": True, "data": service.test_model(request.model)}
