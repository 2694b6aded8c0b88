"""
Render PageLayouts to PDF using ReportLab.

Each PageLayout becomes one PDF page. Draw instructions use a top-left
origin and are flipped here. A broken icon image, or one that does not
decode within the image timeout, is replaced by a "?" glyph and never
aborts the document.
"""

from __future__ import annotations

import functools
import io
import logging
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .images import ImageMeasurer, open_image
from .layout import FONT, FONT_BOLD, LayoutOptions, page_dimensions
from .models import DrawCircle, DrawImage, DrawRect, DrawText, Icon, PageLayout

logger = logging.getLogger(__name__)

FALLBACK_GLYPH = "?"

# JPEG quality per compression level; 1.0 keeps images lossless.
COMPRESSION_QUALITY: Dict[str, float] = {
    "none": 1.0,
    "fast": 0.9,
    "medium": 0.8,
    "slow": 0.7,
}


def _flatten(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def load_image(icon: Icon, quality: float = 1.0) -> ImageReader:
    """Decode an icon for embedding, re-encoded as JPEG when ``quality`` < 1."""
    img = open_image(icon)
    if quality >= 1.0:
        return ImageReader(img)
    buf = io.BytesIO()
    _flatten(img).save(buf, format="JPEG", quality=int(round(quality * 100)))
    buf.seek(0)
    return ImageReader(buf)


def _page_icons(page: PageLayout, loaded: Mapping[str, Optional[ImageReader]]) -> List[Icon]:
    return [
        instr.icon
        for instr in page.instructions
        if isinstance(instr, DrawImage) and not instr.fallback and instr.icon.id not in loaded
    ]


def _draw_fallback(c: canvas.Canvas, instr: DrawImage, page_h: float) -> None:
    size = min(instr.width, instr.height) * 0.6
    c.saveState()
    c.setFont(FONT_BOLD, size)
    c.setFillColorRGB(0.6, 0.6, 0.6)
    cx = instr.x + instr.width / 2
    baseline = instr.y + instr.height / 2 + size * 0.35
    c.drawCentredString(cx, page_h - baseline, FALLBACK_GLYPH)
    c.restoreState()


def _draw_image(
    c: canvas.Canvas, instr: DrawImage, page_h: float, loaded: Mapping[str, Optional[ImageReader]]
) -> None:
    reader = None if instr.fallback else loaded.get(instr.icon.id)
    if reader is None:
        _draw_fallback(c, instr, page_h)
        return
    try:
        c.drawImage(
            reader,
            instr.x,
            page_h - instr.y - instr.height,
            width=instr.width,
            height=instr.height,
            mask="auto",
        )
    except (OSError, ValueError) as exc:
        logger.warning("Could not draw icon %s: %s", instr.icon.id, exc)
        _draw_fallback(c, instr, page_h)


def _draw_text(c: canvas.Canvas, instr: DrawText, page_h: float) -> None:
    c.saveState()
    c.setFont(FONT_BOLD if instr.bold else FONT, instr.font_size)
    c.setFillColorRGB(*instr.color)
    y = page_h - instr.y
    if instr.align == "center":
        c.drawCentredString(instr.x, y, instr.text)
    elif instr.align == "right":
        c.drawRightString(instr.x, y, instr.text)
    else:
        c.drawString(instr.x, y, instr.text)
    c.restoreState()


def _draw_rect(c: canvas.Canvas, instr: DrawRect, page_h: float) -> None:
    c.saveState()
    if instr.fill is not None:
        c.setFillColorRGB(*instr.fill)
    c.setStrokeColorRGB(0, 0, 0)
    c.rect(
        instr.x,
        page_h - instr.y - instr.height,
        instr.width,
        instr.height,
        stroke=1 if instr.stroke else 0,
        fill=1 if instr.fill is not None else 0,
    )
    c.restoreState()


def _draw_circle(c: canvas.Canvas, instr: DrawCircle, page_h: float) -> None:
    c.saveState()
    c.setFillColorRGB(*instr.fill)
    c.setStrokeColorRGB(*instr.stroke)
    c.circle(instr.cx, page_h - instr.cy, instr.radius, stroke=1, fill=1)
    c.restoreState()


def render_page(
    c: canvas.Canvas, page: PageLayout, page_h: float, loaded: Mapping[str, Optional[ImageReader]]
) -> None:
    for instr in page.instructions:
        if isinstance(instr, DrawRect):
            _draw_rect(c, instr, page_h)
        elif isinstance(instr, DrawText):
            _draw_text(c, instr, page_h)
        elif isinstance(instr, DrawImage):
            _draw_image(c, instr, page_h, loaded)
        elif isinstance(instr, DrawCircle):
            _draw_circle(c, instr, page_h)
        else:
            raise TypeError(f"Unknown draw instruction: {type(instr).__name__}")


def render_to_pdf(
    pages: Sequence[PageLayout],
    output_path: Path,
    options: Optional[LayoutOptions] = None,
    *,
    title: str = "Road Trip Bingo Cards",
    cancel: Optional[threading.Event] = None,
) -> None:
    """
    Write pages to a PDF file.

    Args:
        pages: Page layouts from the layout engine
        output_path: Path to write PDF
        options: Layout options the pages were built with (page size,
            orientation, image timeout and compression level)
        title: Document title metadata
        cancel: Set to abandon the export while images are loading

    Images are decoded on a bounded worker pool, one page at a time; any
    that miss the timeout are drawn as the fallback glyph.
    """
    options = options or LayoutOptions()
    if not pages:
        logger.warning("Empty layout, creating empty PDF")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    page_w, page_h = page_dimensions(options)
    quality = COMPRESSION_QUALITY[options.compression_level]

    c = canvas.Canvas(str(output_path), pagesize=(page_w, page_h), pageCompression=1)
    c.setTitle(title)
    c.setSubject("Bingo cards")
    c.setAuthor("icon-bingo")
    c.setCreator("icon-bingo")
    c.setKeywords("bingo, road trip, game")

    loaded: Dict[str, Optional[ImageReader]] = {}
    with ImageMeasurer(
        timeout=options.image_timeout_sec,
        max_workers=options.max_workers,
        reader=functools.partial(load_image, quality=quality),
    ) as loader:
        for page in pages:
            pending = _page_icons(page, loaded)
            if pending:
                loaded.update(loader.fetch(loader.submit(pending), cancel=cancel))
            render_page(c, page, page_h, loaded)
            c.showPage()
    c.save()

    logger.info(
        "Rendered %d pages to %s (compression %s)", len(pages), output_path, options.compression_level
    )
