from datetime import datetime, timezone
import logging
from typing import Optional

from coloring_app.exceptions import (
    ContentPolicyViolationException,
    RateLimitedException,
    UpstreamUnavailableException,
)
from coloring_app.generation.backends import BackendImage, ImageBackend
from coloring_app.generation.models import GeneratedImage
from coloring_app.prompting.content_filter import ensure_family_friendly
from coloring_app.prompting.models import Customizations
from coloring_app.settings import settings

log = logging.getLogger(__name__)


class ImageGenerator:
    """Primary image tier with a single fallback to the secondary tier."""

    def __init__(self, primary: ImageBackend, secondary: ImageBackend, size: Optional[str] = None):
        self.primary = primary
        self.secondary = secondary
        self.size = size or settings.image_size

    @staticmethod
    def quality_for(customizations: Customizations) -> str:
        return "medium" if customizations.complexity == "simple" else "high"

    def generate(self, refined_prompt: str, customizations: Customizations) -> GeneratedImage:
        """
            Generates a coloring page for an already refined prompt.

            Content policy violations from either tier are raised as is and never
            retried. Any other primary failure triggers exactly one call to the
            secondary tier; if that fails too, rate limiting surfaces as
            RateLimitedException and everything else as an exhausted
            UpstreamUnavailableException.
        """
        ensure_family_friendly(refined_prompt)
        quality = self.quality_for(customizations)

        try:
            result = self.primary.create_image(refined_prompt, self.size, quality)
            return self._to_generated(result, fallback_used=False)
        except ContentPolicyViolationException:
            raise
        except Exception as e:
            log.warning(
                "Primary model %s failed (%s), falling back to %s",
                self.primary.model, getattr(e, "detail", e), self.secondary.model,
            )

        try:
            result = self.secondary.create_image(refined_prompt, self.size, quality)
        except (ContentPolicyViolationException, RateLimitedException):
            raise
        except Exception as e:
            log.error(f"Fallback model {self.secondary.model} failed: {getattr(e, 'detail', e)}")
            raise UpstreamUnavailableException(
                "Image generation failed on all model tiers", retries_exhausted=True
            )
        return self._to_generated(result, fallback_used=True)

    def _to_generated(self, result: BackendImage, fallback_used: bool) -> GeneratedImage:
        log.info("Image generated by %s (fallback=%s)", result.model, fallback_used)
        return GeneratedImage(
            image_url=result.image_url,
            revised_prompt=result.revised_prompt,
            model=result.model,
            size=result.size,
            quality=result.quality,
            style=result.style,
            costs=result.costs,
            fallback_used=fallback_used,
            generated_at=datetime.now(timezone.utc),
        )
