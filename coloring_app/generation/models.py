from typing import Optional
from datetime import datetime

from coloring_app.generation.pricing import ImageCost
from coloring_app.prompting.models import CamelModel, Customizations


class GeneratedImage(CamelModel):
    image_url: str
    revised_prompt: Optional[str] = None
    model: str
    size: str
    quality: str
    style: Optional[str] = None
    costs: Optional[ImageCost] = None
    fallback_used: bool = False
    generated_at: datetime


class ImageMetadata(CamelModel):
    """Metadata stored with every gallery image and returned by /api/generate."""
    model: str
    size: str
    quality: str
    style: Optional[str] = None
    category: str = "other"
    complexity: str = "medium"
    age_group: str = "kids"
    line_thickness: Optional[str] = None
    border: Optional[str] = None
    fallback_used: bool = False
    costs: Optional[ImageCost] = None
    timestamp: str

    @classmethod
    def build(cls, image: GeneratedImage, category: str, customizations: Customizations) -> "ImageMetadata":
        return cls(
            model=image.model,
            size=image.size,
            quality=image.quality,
            style=image.style,
            category=category,
            complexity=customizations.complexity,
            age_group=customizations.age_group,
            line_thickness=customizations.line_thickness,
            border=customizations.border,
            fallback_used=image.fallback_used,
            costs=image.costs,
            timestamp=image.generated_at.isoformat(),
        )


class GenerateResponse(CamelModel):
    success: bool = True
    image_url: str
    original_prompt: str
    refined_prompt: str
    revised_prompt: Optional[str] = None
    metadata: ImageMetadata
    gallery_image_id: Optional[str] = None
    saved_to_gallery: bool = False

