from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query

from coloring_app.auth.verifier import AuthIdentity
from coloring_app.dependencies import get_current_user, get_gallery_store
from coloring_app.gallery.models import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    BulkDeleteRequest,
    BulkDeleteResponse,
    DeleteResponse,
    GalleryResponse,
    NewGalleryImage,
    SaveImageRequest,
    SaveImageResponse,
)
from coloring_app.gallery.store import GalleryStore

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["gallery"]
)


@router.get("/auth-status")
def auth_status(user: AuthIdentity = Depends(get_current_user)):
    """Echoes the verified identity of the caller."""
    return {
        "success": True,
        "authenticated": True,
        "user": user.model_dump(by_alias=True),
    }


@router.post("/save-image", response_model=SaveImageResponse, status_code=201)
def save_image(
    payload: SaveImageRequest,
    user: AuthIdentity = Depends(get_current_user),
    gallery: GalleryStore = Depends(get_gallery_store),
):
    image_id = gallery.save(
        user.uid,
        NewGalleryImage(
            image_url=payload.image_url,
            prompt=payload.prompt,
            refined_prompt=payload.refined_prompt,
            metadata=payload.metadata,
        ),
    )
    return SaveImageResponse(image_id=image_id)


@router.get("/get-gallery", response_model=GalleryResponse)
def get_gallery(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    next_token: Optional[str] = Query(None, alias="nextToken"),
    user: AuthIdentity = Depends(get_current_user),
    gallery: GalleryStore = Depends(get_gallery_store),
):
    """Lists the caller's images, newest first."""
    page = gallery.list(user.uid, limit=limit, next_token=next_token)
    return GalleryResponse(images=page.images, total=page.total, next_token=page.next_token)


@router.delete("/delete-image/{image_id}", response_model=DeleteResponse)
def delete_image(
    image_id: str,
    user: AuthIdentity = Depends(get_current_user),
    gallery: GalleryStore = Depends(get_gallery_store),
):
    gallery.delete_one(user.uid, image_id)
    return DeleteResponse(message="Image deleted successfully")


@router.post("/delete-bulk", response_model=BulkDeleteResponse)
def delete_bulk(
    payload: BulkDeleteRequest,
    user: AuthIdentity = Depends(get_current_user),
    gallery: GalleryStore = Depends(get_gallery_store),
):
    """Deletes up to 50 images; ids that are missing or not owned are skipped."""
    result = gallery.delete_bulk(user.uid, payload.image_ids)
    return BulkDeleteResponse(
        deleted_count=result.deleted_count,
        deleted_ids=result.deleted_ids,
        skipped_ids=result.skipped_ids,
    )
