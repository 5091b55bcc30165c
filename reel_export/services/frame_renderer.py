"""
This module draws slideshow frames onto a shared off-screen canvas.

`FrameRenderer` owns a single Pillow image sized to the export resolution and
repaints it for every slide: a photo fitted inside the frame with rounded
corners and an optional caption band, or the branded closing card after the
last photo. `ImageLoader` fetches slide images from URLs or local paths. A
slide whose image cannot be loaded is drawn on a solid placeholder colour
instead of failing the export.
"""

from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests
from loguru import logger
from PIL import Image, ImageDraw, ImageFont, ImageOps

from ..config.video import (
    BACKGROUND_COLOR,
    CAPTION_BAND_BOTTOM_MARGIN_RATIO,
    CAPTION_BAND_COLOR,
    CAPTION_BAND_MAX_WIDTH_RATIO,
    CAPTION_PADDING,
    CLOSING_BACKGROUND_COLOR,
    CLOSING_FOOTER,
    CLOSING_FOOTER_COLOR,
    CLOSING_RULE_COLOR,
    CLOSING_SUBTITLE,
    CLOSING_SUBTITLE_COLOR,
    CLOSING_TITLE,
    CLOSING_TITLE_COLOR,
    CORNER_RADIUS,
    DATE_TEXT_COLOR,
    DESCRIPTION_TEXT_COLOR,
    DETAIL_FONT_RATIO,
    FONT_CANDIDATES,
    IMAGE_REQUEST_TIMEOUT,
    MAX_FILL_RATIO,
    PLACEHOLDER_COLOR,
    SERIF_FONT_CANDIDATES,
    TITLE_FONT_RATIO,
)
from ..domain.exceptions import DrawingSurfaceError
from ..domain.models import CLOSING_CARD, Slide

Color = Tuple[int, ...]
Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# Distinguishes "not loaded yet" from "failed to load" (None).
_NOT_LOADED = object()


@lru_cache(maxsize=32)
def load_font(candidates: Tuple[str, ...], size: int) -> Font:
    """
    Loads the first TrueType font in `candidates` that exists at `size` points.

    Falls back to Pillow's bundled default font when none is installed.
    """
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.debug(f"No TrueType font found among {candidates}; using Pillow's default font.")
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has no sized default font.
        return ImageFont.load_default()


def _text_size(draw: ImageDraw.ImageDraw, text: str, font: Font) -> Tuple[int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return right - left, bottom - top


def _wrap_text(draw: ImageDraw.ImageDraw, text: str, font: Font, max_width: int) -> List[str]:
    """Greedy word wrap so that every line fits within `max_width` pixels."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if not current or _text_size(draw, candidate, font)[0] <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


class ImageLoader:
    """
    Loads slide images from http(s) URLs, `file://` URLs or local paths.

    `load()` never raises for a bad source: network errors, HTTP errors,
    missing files and undecodable data are logged as warnings and reported
    as `None`.
    """

    def __init__(self, timeout: float = IMAGE_REQUEST_TIMEOUT):
        self.timeout = timeout

    def _open(self, src: str) -> Image.Image:
        parsed = urlparse(src)
        if parsed.scheme in ("http", "https"):
            response = requests.get(src, timeout=self.timeout)
            response.raise_for_status()
            return Image.open(BytesIO(response.content))
        if parsed.scheme == "file":
            return Image.open(Path(url2pathname(parsed.path)))
        return Image.open(Path(src).expanduser())

    def load(self, src: str) -> Optional[Image.Image]:
        try:
            image = self._open(src)
            image.load()
            image = ImageOps.exif_transpose(image)
            return image.convert("RGB")
        except (requests.RequestException, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning(f"Could not load slide image '{src}': {e}. Using a placeholder frame.")
            return None


class FrameRenderer:
    """
    Composes one frame per slide on a shared canvas.

    The canvas is created once by `create_canvas()` and repainted in place by
    every `render()` call, so the returned image is only valid until the next
    render.
    """

    def __init__(
        self,
        width: int,
        height: int,
        loader: Optional[ImageLoader] = None,
        max_fill_ratio: float = MAX_FILL_RATIO,
        corner_radius: int = CORNER_RADIUS,
    ):
        self.width = width
        self.height = height
        self.loader = loader or ImageLoader()
        self.max_fill_ratio = max_fill_ratio
        self.corner_radius = corner_radius
        self.canvas: Optional[Image.Image] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def create_canvas(self) -> Image.Image:
        """
        Allocates the shared drawing surface.

        Raises:
            DrawingSurfaceError: If the surface cannot be created.
        """
        if self.width <= 0 or self.height <= 0:
            raise DrawingSurfaceError(f"Invalid canvas size {self.width}x{self.height}.")
        try:
            self.canvas = Image.new("RGB", self.size, BACKGROUND_COLOR)
        except (ValueError, MemoryError) as e:
            raise DrawingSurfaceError(f"Could not create a {self.width}x{self.height} canvas: {e}") from e
        return self.canvas

    def render(self, item, image=_NOT_LOADED) -> Image.Image:
        """
        Draws a slide or the closing card onto the canvas.

        Args:
            item: A `Slide`, or `CLOSING_CARD`.
            image: The already loaded image for the slide, `None` if loading failed,
                   or omitted to load it now.

        Returns:
            The shared canvas.
        """
        if self.canvas is None:
            self.create_canvas()
        if item is CLOSING_CARD:
            self._draw_closing_card()
        else:
            if image is _NOT_LOADED:
                image = self.loader.load(item.src)
            self._draw_slide(item, image)
        return self.canvas

    # --- Slides ---

    def _fitted_size(self, image: Image.Image) -> Tuple[int, int]:
        max_w = self.width * self.max_fill_ratio
        max_h = self.height * self.max_fill_ratio
        scale = min(max_w / image.width, max_h / image.height)
        return max(1, round(image.width * scale)), max(1, round(image.height * scale))

    def _draw_slide(self, slide: Slide, image: Optional[Image.Image]):
        draw = ImageDraw.Draw(self.canvas, "RGBA")
        if image is None:
            draw.rectangle((0, 0, self.width, self.height), fill=PLACEHOLDER_COLOR)
        else:
            draw.rectangle((0, 0, self.width, self.height), fill=BACKGROUND_COLOR)
            fitted_w, fitted_h = self._fitted_size(image)
            resized = image.resize((fitted_w, fitted_h), Image.Resampling.LANCZOS)
            mask = Image.new("L", (fitted_w, fitted_h), 0)
            radius = min(self.corner_radius, fitted_w // 2, fitted_h // 2)
            ImageDraw.Draw(mask).rounded_rectangle((0, 0, fitted_w - 1, fitted_h - 1), radius=radius, fill=255)
            x = (self.width - fitted_w) // 2
            y = (self.height - fitted_h) // 2
            self.canvas.paste(resized, (x, y), mask)

        if slide.has_caption:
            self._draw_caption(draw, slide)

    def _draw_caption(self, draw: ImageDraw.ImageDraw, slide: Slide):
        title_font = load_font(FONT_CANDIDATES, max(10, round(self.height * TITLE_FONT_RATIO)))
        detail_font = load_font(FONT_CANDIDATES, max(8, round(self.height * DETAIL_FONT_RATIO)))
        padding = max(4, round(CAPTION_PADDING * self.height / 1080))
        line_gap = padding // 3
        max_text_width = round(self.width * CAPTION_BAND_MAX_WIDTH_RATIO) - 2 * padding

        lines: List[Tuple[str, Font, Color]] = []
        if slide.title:
            for text in _wrap_text(draw, slide.title, title_font, max_text_width):
                lines.append((text, title_font, (255, 255, 255, 255)))
        if slide.date and slide.date.strip():
            lines.append((slide.date.strip(), detail_font, DATE_TEXT_COLOR))
        if slide.description:
            for text in _wrap_text(draw, slide.description, detail_font, max_text_width):
                lines.append((text, detail_font, DESCRIPTION_TEXT_COLOR))

        if not lines:
            return
        sizes = [_text_size(draw, text, font) for text, font, _ in lines]
        band_w = min(max(w for w, _ in sizes), max_text_width) + 2 * padding
        band_h = sum(h for _, h in sizes) + line_gap * (len(lines) - 1) + 2 * padding
        band_bottom = self.height - round(self.height * CAPTION_BAND_BOTTOM_MARGIN_RATIO)
        band_top = max(0, band_bottom - band_h)
        band_left = (self.width - band_w) // 2
        draw.rounded_rectangle(
            (band_left, band_top, band_left + band_w, band_bottom),
            radius=max(2, padding // 2),
            fill=CAPTION_BAND_COLOR,
        )

        y = band_top + padding
        for (text, font, color), (w, h) in zip(lines, sizes):
            self._draw_text(draw, (self.width - w) // 2, y, text, font, color)
            y += h + line_gap

    # --- Closing card ---

    def _draw_closing_card(self):
        draw = ImageDraw.Draw(self.canvas, "RGBA")
        draw.rectangle((0, 0, self.width, self.height), fill=CLOSING_BACKGROUND_COLOR)

        title_font = load_font(SERIF_FONT_CANDIDATES, max(12, round(self.height * 0.08)))
        subtitle_font = load_font(FONT_CANDIDATES, max(8, round(self.height * 0.025)))
        footer_font = load_font(FONT_CANDIDATES, max(8, round(self.height * 0.018)))

        title_w, title_h = _text_size(draw, CLOSING_TITLE, title_font)
        rule_w = max(8, round(self.width * 0.05))
        rule_h = max(1, round(self.height * 0.003))
        gap = max(4, round(self.height * 0.02))
        subtitle_w, subtitle_h = _text_size(draw, CLOSING_SUBTITLE, subtitle_font)

        block_h = title_h + gap + rule_h + gap + subtitle_h
        y = (self.height - block_h) // 2
        self._draw_text(draw, (self.width - title_w) // 2, y, CLOSING_TITLE, title_font, CLOSING_TITLE_COLOR)
        y += title_h + gap
        draw.rectangle(((self.width - rule_w) // 2, y, (self.width + rule_w) // 2, y + rule_h), fill=CLOSING_RULE_COLOR)
        y += rule_h + gap
        self._draw_text(draw, (self.width - subtitle_w) // 2, y, CLOSING_SUBTITLE, subtitle_font, CLOSING_SUBTITLE_COLOR)

        footer_w, footer_h = _text_size(draw, CLOSING_FOOTER, footer_font)
        footer_y = self.height - footer_h - round(self.height * 0.06)
        self._draw_text(draw, (self.width - footer_w) // 2, footer_y, CLOSING_FOOTER, footer_font, CLOSING_FOOTER_COLOR)

    @staticmethod
    def _draw_text(draw: ImageDraw.ImageDraw, x: int, y: int, text: str, font: Font, color: Sequence[int]):
        # textbbox includes the font's top bearing; offset so the glyphs start at y.
        left, top, _, _ = draw.textbbox((0, 0), text, font=font)
        draw.text((x - left, y - top), text, font=font, fill=tuple(color))
