from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import Response
from planforge.database.supabase_client import get_supabase
from planforge.config.ai_models import IMAGE_SIZES
from planforge.modules.images.schemas import ImageGenerateRequest, ImageEnvelope, ImageListResponse
from planforge.modules.images.service import ImageService, render_placeholder_svg
from planforge.modules.images.worker import generate_images_async
from planforge.core.dependencies import get_current_user, check_project_access
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/images", tags=["images"])


def get_image_service(supabase: Client = Depends(get_supabase)) -> ImageService:
    return ImageService(supabase)


@router.post("/generate")
def generate_images(
    request: ImageGenerateRequest,
    background_tasks: BackgroundTasks,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
    supabase: Client = Depends(get_supabase)
):
    """Generate images; async=true queues the work and returns a generation_id to poll"""
    if request.project_id:
        check_project_access(request.project_id, user_data, supabase)
    entry = service.start(request, user_data["id"])
    if request.async_mode:
        background_tasks.add_task(generate_images_async, request, user_data["id"], entry["id"])
        return {
            "success": True,
            "generation_id": entry["id"],
            "status": "queued",
            "estimated_time": entry["estimated_time"],
        }
    result = service.generate(request, user_data["id"], entry["id"], block=False)
    return {"success": True, "status": "completed", **result}


@router.get("/generate")
async def generation_progress(
    id: Optional[str] = None,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    """Progress of a queued or running generation"""
    if not id:
        raise HTTPException(status_code=400, detail="Generation id is required")
    return {"success": True, "data": service.get_progress(id, user_data["id"])}


@router.get("/stats")
async def image_stats(
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    """Generation cost and counts per model"""
    return {"success": True, "data": service.stats(user_data["id"])}


@router.get("/placeholder")
async def placeholder(model: str = "flux-schnell", prompt: str = "", index: int = 0, size: str = "square"):
    """SVG stand-in used when no upstream image service is configured"""
    dimensions = IMAGE_SIZES.get(size, IMAGE_SIZES["square"])
    svg = render_placeholder_svg(model, prompt, index, dimensions["width"], dimensions["height"])
    return Response(content=svg, media_type="image/svg+xml", headers={"Cache-Control": "public, max-age=86400"})


@router.get("", response_model=ImageListResponse)
async def list_images(
    project_id: Optional[str] = None,
    favorites: bool = False,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    images = service.list_images(user_data["id"], project_id=project_id, favorites_only=favorites, limit=limit, offset=offset)
    return ImageListResponse(data=images)


@router.get("/{image_id}", response_model=ImageEnvelope)
async def get_image(
    image_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    return ImageEnvelope(data=service.get_image(image_id, user_data["id"]))


@router.post("/{image_id}/favorite", response_model=ImageEnvelope)
async def toggle_favorite(
    image_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    """Flip the favorite flag"""
    return ImageEnvelope(data=service.toggle_favorite(image_id, user_data["id"]))


@router.get("/{image_id}/download")
def download_image(
    image_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    content, content_type, filename = service.download(image_id, user_data["id"])
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{image_id}", status_code=204)
async def delete_image(
    image_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ImageService = Depends(get_image_service)
):
    service.delete_image(image_id, user_data["id"])
    return None
