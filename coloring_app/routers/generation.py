from typing import Optional
import logging
import time

from fastapi import APIRouter, Depends, Response

from coloring_app.auth.verifier import AuthIdentity
from coloring_app.dependencies import (
    enforce_rate_limit,
    get_gallery_store,
    get_image_generator,
    get_optional_user,
    get_refiner,
)
from coloring_app.exceptions import StorageException
from coloring_app.gallery.models import NewGalleryImage
from coloring_app.gallery.store import GalleryStore
from coloring_app.generation.models import GenerateResponse, ImageMetadata
from coloring_app.generation.service import ImageGenerator
from coloring_app.pdf.models import PdfRequest
from coloring_app.pdf.service import build_pdf, safe_file_name
from coloring_app.prompting.models import GenerationRequest, RefineMetadata, RefineResponse
from coloring_app.prompting.refiner import PromptRefiner

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["generation"]
)


@router.post("/refine-prompt", response_model=RefineResponse, dependencies=[Depends(enforce_rate_limit)])
def refine_prompt(
    payload: GenerationRequest,
    refiner: PromptRefiner = Depends(get_refiner),
):
    """Returns the refined prompt without generating an image."""
    refined = refiner.refine(payload.prompt, payload.customizations)
    return RefineResponse(
        original_prompt=refined.original_prompt,
        refined_prompt=refined.refined_prompt,
        metadata=RefineMetadata(
            category=refined.category,
            complexity=payload.customizations.complexity,
            age_group=payload.customizations.age_group,
            keywords=refined.keywords,
            method=refined.method,
        ),
    )


@router.post("/generate", response_model=GenerateResponse, dependencies=[Depends(enforce_rate_limit)])
def generate(
    payload: GenerationRequest,
    refiner: PromptRefiner = Depends(get_refiner),
    generator: ImageGenerator = Depends(get_image_generator),
    gallery: GalleryStore = Depends(get_gallery_store),
    user: Optional[AuthIdentity] = Depends(get_optional_user),
):
    """
        Refines the prompt, generates the coloring page and, for signed in
        callers, saves it to their gallery.
    """
    started = time.perf_counter()
    refined = refiner.refine(payload.prompt, payload.customizations)
    image = generator.generate(refined.refined_prompt, payload.customizations)
    metadata = ImageMetadata.build(image, refined.category, payload.customizations)

    gallery_image_id = None
    if user is not None:
        try:
            gallery_image_id = gallery.save(
                user.uid,
                NewGalleryImage(
                    image_url=image.image_url,
                    prompt=refined.original_prompt,
                    refined_prompt=refined.refined_prompt,
                    metadata=metadata.model_dump(by_alias=True),
                ),
            )
        except StorageException as e:
            # the image is still returned, only the gallery copy is lost
            log.error(f"Saving generated image for {user.uid} failed: {e.detail}")

    log.info(
        "Generated image with %s in %.0fms (saved=%s)",
        image.model, (time.perf_counter() - started) * 1000, gallery_image_id is not None,
    )
    return GenerateResponse(
        image_url=image.image_url,
        original_prompt=refined.original_prompt,
        refined_prompt=refined.refined_prompt,
        revised_prompt=image.revised_prompt,
        metadata=metadata,
        gallery_image_id=gallery_image_id,
        saved_to_gallery=gallery_image_id is not None,
    )


@router.post("/generate-pdf", response_class=Response)
def generate_pdf(payload: PdfRequest):
    """Returns the image as a printable 300 DPI letter PDF."""
    pdf = build_pdf(payload.image_url, payload.title)
    file_name = safe_file_name(payload.file_name)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "Cache-Control": "no-cache",
        },
    )
