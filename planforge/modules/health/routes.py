from datetime import datetime, timezone
from fastapi import APIRouter
from fastapi.responses import Response
from planforge.config import settings
from planforge.config.ai_models import get_api_key, get_model_ids
from typing import Any, Dict

router = APIRouter(tags=["health"])

SUPABASE_HOST_MARKERS = (".supabase.co", "localhost", "127.0.0.1")


def configuration_report() -> Dict[str, Any]:
    """Which backing services have credentials. Values are never echoed back."""
    url_valid = bool(settings.supabase_url) and any(marker in settings.supabase_url for marker in SUPABASE_HOST_MARKERS)
    ai_models = {model: bool(get_api_key(model)) for model in get_model_ids()}
    configured = settings.supabase_configured and url_valid and any(ai_models.values())

    if configured:
        message = "All required services are configured"
    elif not settings.supabase_configured:
        message = "Supabase URL and key are required"
    elif not url_valid:
        message = "Supabase URL does not look like a Supabase project URL"
    else:
        message = "At least one AI provider API key is required"

    return {
        "configured": configured,
        "message": message,
        "environment": settings.environment,
        "database": {
            "supabase": settings.supabase_configured and url_valid,
            "serviceKey": bool(settings.supabase_service_role_key),
        },
        "aiModels": ai_models,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health-check")
async def health_check():
    return configuration_report()


@router.head("/health-check")
async def health_check_head():
    """200 when configured, 503 otherwise"""
    status_code = 200 if configuration_report()["configured"] else 503
    return Response(status_code=status_code)
