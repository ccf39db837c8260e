"""Image model backends, one per model tier."""
import base64
import io
import logging
from abc import ABC, abstractmethod
from typing import Optional

import openai
from PIL import Image, ImageDraw
from pydantic import BaseModel

from coloring_app.exceptions import UpstreamUnavailableException
from coloring_app.generation.pricing import ImageCost, estimate_cost
from coloring_app.providers.openai_client import translate_openai_error

log = logging.getLogger(__name__)


class BackendImage(BaseModel):
    """Raw result of a single image model call."""
    image_url: str
    revised_prompt: Optional[str] = None
    model: str
    size: str
    quality: str
    style: Optional[str] = None
    costs: Optional[ImageCost] = None


class ImageBackend(ABC):
    """One image-generation model tier."""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def create_image(self, prompt: str, size: str, quality: str) -> BackendImage:
        """Generates one image, raising APIException subclasses on failure."""


class OpenAIImageBackend(ImageBackend):
    def __init__(self, client: openai.OpenAI, model: str):
        super().__init__(model)
        self.client = client

    def request_params(self, prompt: str, size: str, quality: str) -> dict:
        params = {"model": self.model, "prompt": prompt, "size": size, "n": 1}
        if self.model.startswith("dall-e-3"):
            # dall-e-3 only knows "hd" and "standard"
            params["quality"] = "hd" if quality == "high" else "standard"
            params["style"] = "natural"
        elif self.model.startswith("gpt-image"):
            params["quality"] = quality
        return params

    def create_image(self, prompt: str, size: str, quality: str) -> BackendImage:
        params = self.request_params(prompt, size, quality)
        try:
            response = self.client.images.generate(**params)
        except openai.OpenAIError as e:
            raise translate_openai_error(e, f"Image generation with {self.model}")

        if not response.data:
            raise UpstreamUnavailableException(f"Image generation with {self.model} returned no image")
        item = response.data[0]
        image_url = item.url or f"data:image/png;base64,{item.b64_json}"
        quality = params.get("quality", "standard")
        usage = getattr(response, "usage", None)
        output_tokens = getattr(usage, "output_tokens", None) or 0
        return BackendImage(
            image_url=image_url,
            revised_prompt=getattr(item, "revised_prompt", None),
            model=self.model,
            size=params["size"],
            quality=quality,
            style=params.get("style"),
            costs=estimate_cost(self.model, params["size"], quality, output_tokens),
        )


class PlaceholderImageBackend(ImageBackend):
    """Draws a local placeholder page; used when no OpenAI key is configured."""

    def __init__(self, model: str = "placeholder"):
        super().__init__(model)

    def create_image(self, prompt: str, size: str, quality: str) -> BackendImage:
        width, height = (int(v) for v in size.split("x"))
        img = Image.new("L", (width, height), color=255)
        draw = ImageDraw.Draw(img)
        margin = width // 16
        stroke = max(width // 256, 2)
        draw.rectangle([margin, margin, width - margin, height - margin], outline=0, width=stroke)
        cx, cy, r = width // 2, height // 2 - height // 10, width // 6
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], outline=0, width=stroke)
        draw.text((margin * 2, height - margin * 2), prompt[:80], fill=0)

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        encoded = base64.b64encode(buf.getvalue()).decode("ascii")
        log.debug("Rendered placeholder image %sx%s", width, height)
        return BackendImage(
            image_url=f"data:image/png;base64,{encoded}",
            revised_prompt=f"{prompt} (placeholder)",
            model=self.model,
            size=size,
            quality=quality,
            costs=ImageCost(),
        )
