import logging
import threading
import time
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException
from supabase import Client

from planforge.config import settings
from planforge.config.ai_models import (
    IMAGE_MODEL_DEFAULTS, IMAGE_MODEL_QUALITY_KEYWORDS, IMAGE_QUALITY_MULTIPLIERS,
    IMAGE_SIZES, IMAGE_STYLE_SUFFIXES,
)
from planforge.core.activity import log_activity
from planforge.modules.images import generation_registry
from planforge.modules.images.schemas import GeneratedImage, ImageGenerateRequest

logger = logging.getLogger(__name__)

PLACEHOLDER_PATH = "/api/images/placeholder"
PHOTOREAL_STYLES = ("photographic", "realistic")

_generation_slots = threading.BoundedSemaphore(settings.max_concurrent_generations)


def choose_model(request: ImageGenerateRequest) -> str:
    """A reference image forces flux-context; photoreal styles go to imagen3."""
    if request.reference_image:
        return "flux-context"
    if request.model:
        return request.model
    if request.style in PHOTOREAL_STYLES:
        return "imagen3"
    return "flux-schnell"


def optimize_prompt(prompt: str, style: Optional[str], model: str) -> str:
    parts = [prompt]
    if style and style in IMAGE_STYLE_SUFFIXES:
        parts.append(IMAGE_STYLE_SUFFIXES[style])
    keywords = IMAGE_MODEL_QUALITY_KEYWORDS.get(model)
    if keywords:
        parts.append(keywords)
    return ", ".join(parts)


def estimate_time(model: str, count: int) -> int:
    return IMAGE_MODEL_DEFAULTS[model]["base_seconds"] * count


def image_cost(model: str, quality: str) -> float:
    return round(IMAGE_MODEL_DEFAULTS[model]["cost"] * IMAGE_QUALITY_MULTIPLIERS[quality], 4)


def placeholder_url(model: str, prompt: str, index: int, size: str = "square") -> str:
    query = {"model": model, "prompt": prompt[:100], "index": index, "size": size}
    return f"{PLACEHOLDER_PATH}?{urlencode(query)}"


def render_placeholder_svg(model: str, prompt: str, index: int, width: int = 1024, height: int = 1024) -> str:
    label = (prompt[:60] + "...") if len(prompt) > 60 else prompt
    label = label.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    hue = (sum(ord(c) for c in model + prompt) + index * 47) % 360
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
        f'<rect width="100%" height="100%" fill="hsl({hue}, 45%, 35%)"/>'
        f'<text x="50%" y="46%" fill="#fff" font-family="sans-serif" font-size="36" text-anchor="middle">{model} #{index + 1}</text>'
        f'<text x="50%" y="54%" fill="#eee" font-family="sans-serif" font-size="22" text-anchor="middle">{label}</text>'
        f'</svg>'
    )


class ImageService:
    def __init__(self, supabase: Client, http_client: Optional[httpx.Client] = None):
        self.supabase = supabase
        self.http_client = http_client

    def _client(self) -> httpx.Client:
        if self.http_client is None:
            self.http_client = httpx.Client(timeout=120.0)
        return self.http_client

    def _call_upstream(self, model: str, prompt: str, request: ImageGenerateRequest, params: Dict[str, Any]) -> List[str]:
        headers = {"Authorization": f"Bearer {settings.image_api_key}"} if settings.image_api_key else {}
        response = self._client().post(
            settings.image_api_url,
            json={
                "model": model,
                "prompt": prompt,
                "negative_prompt": request.negative_prompt,
                "width": params["width"],
                "height": params["height"],
                "steps": params["steps"],
                "guidance": params["guidance"],
                "seed": request.seed,
                "num_images": request.count,
                "reference_image": request.reference_image,
            },
            headers=headers,
        )
        response.raise_for_status()
        images = response.json().get("images") or []
        urls = [img["url"] if isinstance(img, dict) else img for img in images]
        if len(urls) < request.count:
            raise HTTPException(status_code=502, detail="Image service returned fewer images than requested")
        return urls[:request.count]

    def _render(self, model: str, prompt: str, request: ImageGenerateRequest, params: Dict[str, Any]) -> List[str]:
        if settings.image_api_url:
            return self._call_upstream(model, prompt, request, params)
        return [placeholder_url(model, request.prompt, i, request.size) for i in range(request.count)]

    def generate(
        self,
        request: ImageGenerateRequest,
        user_id: str,
        generation_id: str,
        block: bool = True,
    ) -> Dict[str, Any]:
        """Generate, store and return the images. Progress is mirrored in the generation registry."""
        if not _generation_slots.acquire(blocking=block):
            generation_registry.update(generation_id, status="failed", error="Too many concurrent generations")
            raise HTTPException(status_code=429, detail="Too many concurrent image generations, try again shortly")
        started = time.monotonic()
        try:
            model = choose_model(request)
            defaults = IMAGE_MODEL_DEFAULTS[model]
            params = {
                **IMAGE_SIZES[request.size],
                "steps": request.steps if request.steps is not None else defaults["steps"],
                "guidance": request.guidance if request.guidance is not None else defaults["guidance"],
            }
            prompt = optimize_prompt(request.prompt, request.style, model)
            generation_registry.update(generation_id, status="processing", progress=10)

            urls = self._render(model, prompt, request, params)
            generation_registry.update(generation_id, progress=70)

            cost = image_cost(model, request.quality)
            rows = [
                {
                    "user_id": user_id,
                    "project_id": request.project_id,
                    "prompt": request.prompt,
                    "model_used": model,
                    "image_url": url,
                    "style": request.style,
                    "size": request.size,
                    "is_favorite": False,
                    "tags": request.tags,
                    "metadata": {
                        "optimized_prompt": prompt,
                        "quality": request.quality,
                        "seed": request.seed,
                        "cost": cost,
                        "generation_id": generation_id,
                        "index": index,
                        **params,
                    },
                }
                for index, url in enumerate(urls)
            ]
            result = self.supabase.table("generated_images").insert(rows).execute()
            images = result.data or []
            elapsed = round(time.monotonic() - started, 2)

            log_activity(self.supabase, user_id, "image_generation", {
                "generation_id": generation_id,
                "model": model,
                "count": len(images),
                "total_cost": round(cost * len(images), 4),
            })
            generation_registry.update(generation_id, status="completed", progress=100, images=images)
            logger.info(f"Generation {generation_id}: {len(images)} image(s) with {model} in {elapsed}s")
            return {
                "generation_id": generation_id,
                "model": model,
                "images": images,
                "total_cost": round(cost * len(images), 4),
                "generation_time": elapsed,
            }
        except HTTPException as e:
            generation_registry.update(generation_id, status="failed", error=e.detail)
            raise
        except Exception as e:
            logger.error(f"Generation {generation_id} failed: {e}")
            generation_registry.update(generation_id, status="failed", error=str(e))
            raise HTTPException(status_code=500, detail=f"Image generation failed: {e}")
        finally:
            _generation_slots.release()

    def start(self, request: ImageGenerateRequest, user_id: str) -> Dict[str, Any]:
        generation_id = str(uuid.uuid4())
        model = choose_model(request)
        return generation_registry.register(generation_id, user_id, model, estimate_time(model, request.count))

    def get_progress(self, generation_id: str, user_id: str) -> Dict[str, Any]:
        entry = generation_registry.get(generation_id)
        if entry is None or entry["user_id"] != user_id:
            raise HTTPException(status_code=404, detail="Generation not found")
        entry.pop("user_id", None)
        return entry

    def list_images(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        favorites_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> List[GeneratedImage]:
        try:
            query = self.supabase.table("generated_images").select("*").eq("user_id", user_id)
            if project_id:
                query = query.eq("project_id", project_id)
            if favorites_only:
                query = query.eq("is_favorite", True)
            result = query.order("created_at", desc=True).limit(limit).offset(offset).execute()
            return [GeneratedImage(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_image(self, image_id: str, user_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("generated_images")\
                .select("*")\
                .eq("id", image_id)\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Image not found")
        return result.data

    def toggle_favorite(self, image_id: str, user_id: str) -> GeneratedImage:
        image = self.get_image(image_id, user_id)
        try:
            result = self.supabase.table("generated_images")\
                .update({"is_favorite": not image.get("is_favorite", False)})\
                .eq("id", image_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return GeneratedImage(**result.data[0])

    def delete_image(self, image_id: str, user_id: str) -> None:
        self.get_image(image_id, user_id)
        try:
            self.supabase.table("generated_images")\
                .delete()\
                .eq("id", image_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def download(self, image_id: str, user_id: str):
        """Return (bytes, content_type, filename) for a stored image"""
        image = self.get_image(image_id, user_id)
        url = image["image_url"]
        metadata = image.get("metadata") or {}
        if url.startswith(PLACEHOLDER_PATH):
            svg = render_placeholder_svg(
                image["model_used"], image["prompt"], metadata.get("index", 0),
                metadata.get("width", 1024), metadata.get("height", 1024),
            )
            return svg.encode(), "image/svg+xml", f"{image_id}.svg"
        try:
            response = self._client().get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Image download failed for {image_id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to fetch image")
        content_type = response.headers.get("content-type", "image/png")
        extension = content_type.split("/")[-1].split(";")[0] or "png"
        return response.content, content_type, f"{image_id}.{extension}"

    def stats(self, user_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("generated_images")\
                .select("model_used, metadata")\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        by_model: Dict[str, Dict[str, Any]] = {}
        total_cost = 0.0
        for row in result.data or []:
            cost = float((row.get("metadata") or {}).get("cost") or 0)
            model_stats = by_model.setdefault(row["model_used"], {"count": 0, "cost": 0.0})
            model_stats["count"] += 1
            model_stats["cost"] = round(model_stats["cost"] + cost, 4)
            total_cost += cost
        count = len(result.data or [])
        return {
            "totalCost": round(total_cost, 4),
            "imageCount": count,
            "averageCostPerImage": round(total_cost / count, 4) if count else 0,
            "byModel": by_model,
        }
