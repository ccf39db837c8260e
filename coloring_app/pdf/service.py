"""
    Printable PDF export.

    Pages are US letter rendered at 300 DPI with half inch margins: a centered
    title above the image, the image scaled to fit the printable area, and a
    small footer with the generation date.
"""
from datetime import datetime, timezone
from io import BytesIO
from typing import Optional
import logging
import re

import requests
from PIL import Image, ImageDraw, ImageFont

from coloring_app.exceptions import InvalidImageException
from coloring_app.image_data import decode_data_uri, is_data_uri, validate_image_bytes
from coloring_app.settings import settings

log = logging.getLogger(__name__)

DPI = 300
PAGE_WIDTH = int(8.5 * DPI)
PAGE_HEIGHT = 11 * DPI
MARGIN = DPI // 2
APP_NAME = "Coloring Book Creator"
DEFAULT_TITLE = "Coloring Page"


def points(pt: float) -> int:
    """Converts typographic points to pixels at the page resolution."""
    return round(pt * DPI / 72)


def safe_file_name(file_name: Optional[str]) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", file_name or "").strip(".-")
    if stem.lower().endswith(".pdf"):
        stem = stem[:-4]
    if not stem:
        stem = f"coloring-page-{int(datetime.now(timezone.utc).timestamp() * 1000)}"
    return f"{stem}.pdf"


def fetch_image_bytes(image_url: str) -> bytes:
    if is_data_uri(image_url):
        _, data = decode_data_uri(image_url)
        return data
    if not image_url.startswith(("http://", "https://")):
        raise InvalidImageException("Must be a valid URL or data URI")
    try:
        resp = requests.get(image_url, timeout=settings.pdf_fetch_timeout_seconds)
        resp.raise_for_status()
    except requests.RequestException as e:
        log.warning(f"Fetching image for PDF failed: {e}")
        raise InvalidImageException("Could not fetch image from imageUrl")
    log.debug("Fetched %d bytes for PDF (%s)", len(resp.content), resp.headers.get("content-type"))
    return resp.content


def _flatten(img: Image.Image) -> Image.Image:
    """Composites transparent images onto white paper."""
    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        page = Image.new("RGB", img.size, "white")
        page.paste(img, mask=img.split()[-1])
        return page
    return img.convert("RGB")


def render_pdf(image_bytes: bytes, title: Optional[str] = None) -> bytes:
    validate_image_bytes(image_bytes)
    with Image.open(BytesIO(image_bytes)) as src:
        img = _flatten(src)

    printable_w = PAGE_WIDTH - 2 * MARGIN
    printable_h = PAGE_HEIGHT - 2 * MARGIN
    scale = min(printable_w / img.width, printable_h / img.height)
    size = (max(int(img.width * scale), 1), max(int(img.height * scale), 1))
    img = img.resize(size, Image.LANCZOS)

    page = Image.new("RGB", (PAGE_WIDTH, PAGE_HEIGHT), "white")
    page.paste(img, (MARGIN + (printable_w - size[0]) // 2, MARGIN))

    draw = ImageDraw.Draw(page)
    title_font = ImageFont.load_default(size=points(12))
    footer_font = ImageFont.load_default(size=points(8))
    draw.text((PAGE_WIDTH // 2, MARGIN - points(20)), title or DEFAULT_TITLE, fill="black", font=title_font, anchor="ms")
    footer_y = PAGE_HEIGHT - MARGIN + points(15)
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    draw.text((MARGIN, footer_y), f"Generated: {generated}", fill="black", font=footer_font, anchor="ls")
    draw.text((PAGE_WIDTH - MARGIN, footer_y), APP_NAME, fill="black", font=footer_font, anchor="rs")

    buf = BytesIO()
    page.save(buf, format="PDF", resolution=float(DPI), title=title or DEFAULT_TITLE)
    return buf.getvalue()


def build_pdf(image_url: str, title: Optional[str] = None) -> bytes:
    """Fetches or decodes image_url and returns the rendered PDF bytes."""
    pdf = render_pdf(fetch_image_bytes(image_url), title)
    log.info("Rendered PDF (%d bytes)", len(pdf))
    return pdf
