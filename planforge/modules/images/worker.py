import logging

from fastapi import HTTPException

from planforge.database.supabase_client import SupabaseClient
from planforge.modules.images.schemas import ImageGenerateRequest
from planforge.modules.images.service import ImageService

logger = logging.getLogger(__name__)


def generate_images_async(request: ImageGenerateRequest, user_id: str, generation_id: str) -> None:
    """
    Background generation for async=true requests.
    Waits for a free generation slot; the outcome is read back through the progress endpoint.
    Uses the service-role Supabase client so inserts succeed outside the request (RLS bypass).
    """
    service = ImageService(SupabaseClient.get_service_client())
    try:
        service.generate(request, user_id, generation_id, block=True)
    except HTTPException as e:
        logger.error(f"Background generation {generation_id} failed: {e.detail}")
