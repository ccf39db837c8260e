from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from coloring_app.prompting.models import CamelModel

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20
MAX_BULK_DELETE = 50


def new_image_id() -> str:
    """Generates a new unique image ID."""
    return str(uuid4())


def _check_image_url(value: str) -> str:
    value = value.strip()
    if not value.startswith(("http://", "https://", "data:image/")):
        raise ValueError("imageUrl must be an http(s) URL or an image data URI")
    return value


class NewGalleryImage(BaseModel):
    """What a caller hands to the store; id, owner and timestamps are assigned there."""
    image_url: str
    prompt: str
    refined_prompt: Optional[str] = None
    metadata: Dict[str, Any] = {}


class GalleryRecord(BaseModel):
    """One row of the gallery table."""
    image_id: str = Field(default_factory=new_image_id)
    owner_user_id: str
    image_url: Optional[str] = None
    s3_key: Optional[str] = None
    content_type: Optional[str] = None
    prompt: str
    refined_prompt: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime


class GalleryImage(CamelModel):
    id: str
    owner_user_id: str
    image_url: str
    prompt: str
    refined_prompt: Optional[str] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime


class GalleryPage(BaseModel):
    images: List[GalleryImage]
    total: int
    next_token: Optional[str] = None


class BulkDeleteResult(BaseModel):
    deleted_ids: List[str] = []
    skipped_ids: List[str] = []

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


# -------------------------
# API payloads
# -------------------------
class SaveImageRequest(CamelModel):
    image_url: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1, max_length=1000)
    refined_prompt: Optional[str] = Field(None, max_length=2000)
    metadata: Dict[str, Any] = {}

    @field_validator("image_url")
    @classmethod
    def image_url_scheme(cls, value: str) -> str:
        return _check_image_url(value)


class SaveImageResponse(CamelModel):
    success: bool = True
    image_id: str


class GalleryResponse(CamelModel):
    success: bool = True
    images: List[GalleryImage]
    total: int
    next_token: Optional[str] = None


class DeleteResponse(CamelModel):
    success: bool = True
    message: str


class BulkDeleteRequest(CamelModel):
    image_ids: List[str] = Field(..., min_length=1, max_length=MAX_BULK_DELETE)

    @field_validator("image_ids")
    @classmethod
    def ids_not_blank(cls, value: List[str]) -> List[str]:
        if any(not image_id.strip() for image_id in value):
            raise ValueError("imageIds must not contain empty values")
        return value


class BulkDeleteResponse(CamelModel):
    success: bool = True
    deleted_count: int
    deleted_ids: List[str]
    skipped_ids: List[str]
