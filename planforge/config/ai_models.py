"""
AI Model Catalogue
Static configuration for the chat providers and the image generation models.
Model names can be overridden from settings; everything else is fixed here.
"""
from typing import Any, Dict, List

from .settings import settings

# Chat models keyed by the identifier clients send as `model`
AI_MODEL_CONFIGS: Dict[str, Dict[str, Any]] = {
    "gemini": {
        "name": settings.gemini_model,
        "display_name": "Gemini 1.5 Pro",
        "provider": "Google",
        "description": "Google's multimodal model, good for general-purpose and cost-sensitive work",
        "max_tokens": 8192,
        "temperature": 0.7,
        "top_p": 0.95,
        "top_k": 40,
        "supports_mcp": False,
        "cost_per_token": 0.01,
    },
    "chatgpt": {
        "name": settings.openai_chat_model,
        "display_name": "GPT-4o",
        "provider": "OpenAI",
        "description": "OpenAI's flagship model, strong at creative writing and reasoning",
        "max_tokens": 4096,
        "temperature": 0.7,
        "top_p": 1.0,
        "presence_penalty": 0,
        "frequency_penalty": 0,
        "supports_mcp": False,
        "cost_per_token": 0.03,
    },
    "claude": {
        "name": settings.anthropic_model,
        "display_name": "Claude 3.5 Sonnet",
        "provider": "Anthropic",
        "description": "Anthropic's model, strong at analysis and tool use over MCP",
        "max_tokens": 8192,
        "temperature": 0.7,
        "top_p": 1.0,
        "supports_mcp": True,
        "cost_per_token": 0.02,
    },
}

DEFAULT_MODEL = "gemini"

# Which settings attribute holds the API key for each chat model
API_KEY_SETTINGS = {
    "gemini": "google_ai_api_key",
    "chatgpt": "openai_api_key",
    "claude": "anthropic_api_key",
}

# Image models: default sampling parameters and per-image cost in USD
IMAGE_MODEL_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "flux-schnell": {"steps": 8, "guidance": 7.5, "cost": 0.02, "base_seconds": 5},
    "imagen3": {"steps": 20, "guidance": 12, "cost": 0.05, "base_seconds": 15},
    "flux-context": {"steps": 12, "guidance": 8, "cost": 0.03, "base_seconds": 12},
}

IMAGE_SIZES = {
    "square": {"width": 1024, "height": 1024},
    "portrait": {"width": 768, "height": 1024},
    "landscape": {"width": 1024, "height": 768},
}

IMAGE_QUALITY_MULTIPLIERS = {
    "fast": 1.0,
    "balanced": 1.2,
    "high": 1.5,
}

IMAGE_STYLE_SUFFIXES = {
    "photographic": "photorealistic, professional photography, sharp focus",
    "realistic": "realistic, highly detailed, natural lighting",
    "anime": "anime style, vibrant colors, clean line art",
    "digital_art": "digital art, concept art, trending on artstation",
    "oil_painting": "oil painting, textured brush strokes, classical composition",
    "watercolor": "watercolor painting, soft washes, paper texture",
    "sketch": "pencil sketch, hand drawn, monochrome",
    "3d_render": "3d render, octane render, global illumination",
}

IMAGE_MODEL_QUALITY_KEYWORDS = {
    "flux-schnell": "high quality",
    "imagen3": "ultra detailed, 8k",
    "flux-context": "consistent with reference image",
}


def get_model_ids() -> List[str]:
    return list(AI_MODEL_CONFIGS.keys())


def get_api_key(model: str):
    """Return the configured API key for a chat model, or None."""
    attr = API_KEY_SETTINGS.get(model)
    return getattr(settings, attr, None) if attr else None
