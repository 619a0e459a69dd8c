from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from .media import ImageHandle, to_data_uri

logger = logging.getLogger(__name__)

MIN_FONT_SIZE = 30
TEXT_OPACITY = 0.7
SHADOW_OPACITY = 0.8
SHADOW_BLUR = 10
SHADOW_OFFSET = (2, 2)

BOLD_FONTS = (
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
    "arialbd.ttf",
)


@dataclass(frozen=True)
class WatermarkResult:
    data: bytes
    width: int
    height: int
    text: str
    font_size: float
    content_type: str = "image/png"

    def data_uri(self) -> str:
        return to_data_uri(self.data, self.content_type)


def font_size_for(width: int) -> float:
    return max(width / 10, MIN_FONT_SIZE)


def download_name(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"watermarked-{now_ms}.png"


@lru_cache(maxsize=64)
def load_bold_font(size: float, font_path: str | None = None) -> tuple[ImageFont.FreeTypeFont, bool]:
    """Return ``(font, is_bold)``; falls back to Pillow's bundled face."""
    candidates = ((font_path,) if font_path else ()) + BOLD_FONTS
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size=size), True
        except OSError:
            continue
    return ImageFont.load_default(size=size), False


def describe_font(font_path: str | None = None) -> str:
    font, is_bold = load_bold_font(MIN_FONT_SIZE, font_path)
    path = getattr(font, "path", None)
    name = Path(path).name if isinstance(path, str) else "pillow default"
    return name if is_bold else f"{name} (stroked)"


def _drop_shadow(text_layer: Image.Image) -> Image.Image:
    alpha = text_layer.getchannel("A").point(lambda a: round(a * SHADOW_OPACITY))
    shifted = Image.new("L", text_layer.size, 0)
    shifted.paste(alpha, SHADOW_OFFSET)
    # canvas shadowBlur is twice the gaussian standard deviation
    blurred = shifted.filter(ImageFilter.GaussianBlur(SHADOW_BLUR / 2))

    shadow = Image.new("RGBA", text_layer.size, (0, 0, 0, 0))
    shadow.putalpha(blurred)
    return shadow


def render_watermark(base: Image.Image, text: str, *, font_path: str | None = None) -> tuple[Image.Image, float]:
    width, height = base.size
    font_size = font_size_for(width)
    font, is_bold = load_bold_font(font_size, font_path)
    stroke = 0 if is_bold else max(1, round(font_size / 30))
    fill = (255, 255, 255, round(255 * TEXT_OPACITY))

    out = base.convert("RGBA")
    text_layer = Image.new("RGBA", out.size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(text_layer)

    # center the glyph bounding box on the image center
    box = draw.textbbox((0, 0), text, font=font, stroke_width=stroke)
    x = width / 2 - (box[0] + box[2]) / 2
    y = height / 2 - (box[1] + box[3]) / 2
    draw.text((x, y), text, font=font, fill=fill, stroke_width=stroke, stroke_fill=fill)

    out = Image.alpha_composite(out, _drop_shadow(text_layer))
    out = Image.alpha_composite(out, text_layer)
    if not base.has_transparency_data:
        out = out.convert("RGB")
    return out, font_size


def compose_watermark(source: ImageHandle, text: str, *, font_path: str | None = None) -> WatermarkResult | None:
    """Overlay ``text`` once, centered, on a copy of ``source``.

    Returns ``None`` for blank text. Raises ``DecodeError`` when the source
    cannot be decoded. The source handle is never modified.
    """
    if not text or not text.strip():
        return None

    with source.open() as base:
        out, font_size = render_watermark(base, text, font_path=font_path)

    buf = io.BytesIO()
    out.save(buf, format="PNG")
    result = WatermarkResult(
        data=buf.getvalue(),
        width=out.width,
        height=out.height,
        text=text,
        font_size=font_size,
    )
    logger.info("watermarked %dx%d image (font %.1f, %d bytes)", result.width, result.height, font_size, len(result.data))
    return result
