from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal

ImageModel = Literal["flux-schnell", "imagen3", "flux-context"]
ImageSize = Literal["square", "portrait", "landscape"]
ImageQuality = Literal["fast", "balanced", "high"]


class ImageGenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    prompt: str = Field(..., min_length=3, max_length=1000)
    model: Optional[ImageModel] = None
    style: Optional[str] = None
    size: ImageSize = "square"
    quality: ImageQuality = "balanced"
    count: int = Field(1, ge=1, le=4)
    steps: Optional[int] = Field(None, ge=1, le=50)
    guidance: Optional[float] = Field(None, ge=1, le=20)
    seed: Optional[int] = None
    negative_prompt: Optional[str] = None
    reference_image: Optional[str] = None
    project_id: Optional[str] = None
    tags: List[str] = []
    async_mode: bool = Field(False, alias="async")

    @field_validator("prompt")
    @classmethod
    def strip_prompt(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Prompt must be between 3 and 1000 characters")
        return v


class GeneratedImage(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: str
    user_id: str
    project_id: Optional[str] = None
    prompt: str
    model_used: str
    image_url: str
    style: Optional[str] = None
    size: Optional[str] = None
    is_favorite: bool = False
    tags: Optional[List[str]] = []
    metadata: Optional[dict] = {}
    created_at: Optional[str] = None


class ImageListResponse(BaseModel):
    success: bool = True
    data: List[GeneratedImage]


class ImageEnvelope(BaseModel):
    success: bool = True
    data: GeneratedImage
