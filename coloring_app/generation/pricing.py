"""Estimated USD cost of a single image call, per model, size and quality."""
import logging
from typing import Dict, Optional

from coloring_app.prompting.models import CamelModel

log = logging.getLogger(__name__)

# price per image; qualities missing from a size fall back to "standard"
IMAGE_PRICES: Dict[str, Dict[str, Dict[str, float]]] = {
    "gpt-image-1": {
        "1024x1024": {"high": 0.167, "standard": 0.120},
    },
    "dall-e-3": {
        "1024x1024": {"hd": 0.080, "standard": 0.040},
    },
}

OUTPUT_TOKEN_PRICES = {
    "gpt-image-1": 40.0 / 1_000_000,
}


class ImageCost(CamelModel):
    image_cost: float = 0.0
    token_cost: float = 0.0
    total_cost: float = 0.0
    output_tokens: int = 0
    currency: str = "USD"
    error: Optional[str] = None


def estimate_cost(model: str, size: str, quality: str, output_tokens: int = 0) -> ImageCost:
    """Prices one image call. Unknown models or sizes cost zero and carry an error note."""
    model_prices = IMAGE_PRICES.get(model)
    if model_prices is None:
        return ImageCost(output_tokens=output_tokens, error="Unknown model")
    size_prices = model_prices.get(size)
    if size_prices is None:
        log.debug("No price for %s at %s", model, size)
        return ImageCost(output_tokens=output_tokens, error="Unknown size")

    image_cost = size_prices.get(quality, size_prices.get("standard", 0.0))
    token_cost = output_tokens * OUTPUT_TOKEN_PRICES.get(model, 0.0)
    return ImageCost(
        image_cost=round(image_cost, 4),
        token_cost=round(token_cost, 4),
        total_cost=round(image_cost + token_cost, 4),
        output_tokens=output_tokens,
    )
