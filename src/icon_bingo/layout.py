"""Page layout: places cards on pages and emits draw instructions.

Coordinates are PDF points measured from the page's top-left corner; the
renderer flips them for ReportLab's bottom-left origin.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from .images import DEFAULT_TIMEOUT_SEC, ImageMeasurer, Measurement, Size, read_image_size
from .models import (
    Card,
    CardPlacement,
    Cell,
    DrawCircle,
    DrawImage,
    DrawInstruction,
    DrawRect,
    DrawText,
    Icon,
    PageLayout,
)
from .placement import compute_draw_rect

logger = logging.getLogger(__name__)

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
HEADER_GREY = (0.4, 0.4, 0.4)
WHITE = (1.0, 1.0, 1.0)
# Image quality trade-off for the PDF, lightest compression first.
COMPRESSION_LEVELS = ("none", "fast", "medium", "slow")


@dataclass(frozen=True)
class LayoutOptions:
    page_size: Tuple[float, float] = A4
    cards_per_page: int = 1
    orientation: str = "auto"  # auto | portrait | landscape
    margin: float = 10 * mm
    header_reserve: float = 15 * mm
    show_labels: bool = True
    image_timeout_sec: float = DEFAULT_TIMEOUT_SEC
    max_workers: int = 4
    compression_level: str = "medium"

    def __post_init__(self) -> None:
        if self.cards_per_page not in (1, 2):
            raise ValueError("cards_per_page must be 1 or 2")
        if self.orientation not in ("auto", "portrait", "landscape"):
            raise ValueError("orientation must be auto, portrait or landscape")
        if self.compression_level not in COMPRESSION_LEVELS:
            raise ValueError(f"compression_level must be one of: {', '.join(COMPRESSION_LEVELS)}")


def page_dimensions(options: LayoutOptions) -> Tuple[float, float]:
    w, h = options.page_size
    short, long_ = min(w, h), max(w, h)
    orientation = options.orientation
    if orientation == "auto":
        orientation = "landscape" if options.cards_per_page == 2 else "portrait"
    if orientation == "landscape":
        return long_, short
    return short, long_


def paginate(cards: Sequence[Card], cards_per_page: int) -> List[List[Card]]:
    """Group cards into pages.

    A page is closed when it is full or when the next card belongs to a
    different set, so every page shows exactly one set identifier.
    """
    pages: List[List[Card]] = []
    current: List[Card] = []
    for card in cards:
        if current and (len(current) >= cards_per_page or card.set_index != current[-1].set_index):
            pages.append(current)
            current = []
        current.append(card)
    if current:
        pages.append(current)
    return pages


def card_frames(options: LayoutOptions) -> List[Tuple[float, float, float]]:
    """Slots ``(origin_x, origin_y, side)`` available on one page."""
    w, h = page_dimensions(options)
    m = options.margin
    top = m + options.header_reserve

    if options.cards_per_page == 1:
        side = min(w, h) - 2 * m - options.header_reserve
        return [((w - side) / 2, top, side)]

    if w >= h:
        # side by side: left margin, center gap, right margin
        side = min((w - 3 * m) / 2, h - 2 * m - options.header_reserve)
        left = (w - 2 * side - m) / 2
        return [(left, top, side), (left + side + m, top, side)]

    # stacked
    side = min(w - 2 * m, (h - 3 * m - options.header_reserve) / 2)
    left = (w - side) / 2
    return [(left, top, side), (left, top + side + m, side)]


def header_instructions(cards: Sequence[Card], options: LayoutOptions) -> List[DrawInstruction]:
    w, _h = page_dimensions(options)
    m = options.margin
    first = cards[0]
    id_text = f"ID: {first.identifier}"
    out: List[DrawInstruction] = [
        DrawText(m, m + 4 * mm, id_text, 10, align="left", color=HEADER_GREY),
        DrawText(w - m, m + 4 * mm, id_text, 10, align="right", color=HEADER_GREY),
        DrawText(w / 2, m + 7 * mm, first.title, 16, align="center", bold=True),
    ]
    if any(card.has_multi_hit for card in cards):
        out.append(DrawText(w / 2, m + 12 * mm, "Multi-Hit Mode", 9, align="center", color=HEADER_GREY))
    return out


def fit_label(text: str, font_size: float, max_width: float) -> str:
    if stringWidth(text, FONT, font_size) <= max_width:
        return text
    while text and stringWidth(text + "...", FONT, font_size) > max_width:
        text = text[:-1]
    return text + "..." if text else ""


def cell_instructions(
    cell: Cell,
    x: float,
    y: float,
    size: float,
    measurement: Optional[Measurement],
    show_labels: bool,
) -> List[DrawInstruction]:
    out: List[DrawInstruction] = [DrawRect(x, y, size, size)]

    if cell.is_free_space:
        text = "FREE" if cell.hit_count <= 1 else f"FREE x{cell.hit_count}"
        fs = size * 0.18
        out.append(DrawText(x + size / 2, y + size / 2 + fs * 0.35, text, fs, align="center", bold=True))
    else:
        icon = cell.icon
        available = measurement is None or measurement.available
        native = measurement.size if measurement is not None and measurement.size else (None, None)
        rect = compute_draw_rect(native[0], native[1], size)
        out.append(
            DrawImage(icon, x + rect.x, y + rect.y, rect.width, rect.height, fallback=not available)
        )
        if show_labels and icon.name:
            fs = max(5.0, min(8.0, size * 0.12))
            label = fit_label(icon.name, fs, size * 0.9)
            text_w = stringWidth(label, FONT, fs)
            plate_w, plate_h = text_w + 4, fs + 3
            plate_x = x + (size - plate_w) / 2
            plate_y = y + size - plate_h - 1
            out.append(DrawRect(plate_x, plate_y, plate_w, plate_h, stroke=False, fill=WHITE))
            out.append(DrawText(x + size / 2, plate_y + fs + 0.5, label, fs, align="center"))

    if cell.is_multi_hit_target:
        r = min(size * 0.1, 3 * mm)
        cx, cy = x + size - r - 1, y + r + 1
        fs = r * 1.2
        out.append(DrawCircle(cx, cy, r))
        out.append(DrawText(cx, cy + fs * 0.35, str(cell.hit_count), fs, align="center", bold=True, color=WHITE))
    return out


def card_instructions(
    placement: CardPlacement,
    measurements: Dict[str, Measurement],
    show_labels: bool,
) -> List[DrawInstruction]:
    size = placement.cell_size
    out: List[DrawInstruction] = []
    for r, c, cell in placement.card.cells():
        x = placement.origin_x + c * size
        y = placement.origin_y + r * size
        m = measurements.get(cell.icon.id) if cell.icon else None
        out.extend(cell_instructions(cell, x, y, size, m, show_labels))
    return out


def build_page(
    page_index: int,
    cards: Sequence[Card],
    measurements: Dict[str, Measurement],
    options: LayoutOptions,
) -> PageLayout:
    frames = card_frames(options)
    placements = tuple(
        CardPlacement(card=card, origin_x=x, origin_y=y, card_width=side)
        for card, (x, y, side) in zip(cards, frames)
    )
    instructions: List[DrawInstruction] = header_instructions(cards, options)
    for placement in placements:
        instructions.extend(card_instructions(placement, measurements, options.show_labels))
    return PageLayout(
        page_index=page_index,
        set_index=cards[0].set_index,
        placements=placements,
        instructions=tuple(instructions),
    )


def icons_on(cards: Iterable[Card]) -> List[Icon]:
    return [cell.icon for card in cards for _r, _c, cell in card.cells() if cell.icon is not None]


class PageLayoutEngine:
    """Lays out assembled cards, one or two per page."""

    def __init__(
        self,
        options: Optional[LayoutOptions] = None,
        reader: Callable[[Icon], Size] = read_image_size,
    ):
        self.options = options or LayoutOptions()
        self.reader = reader

    def layout(self, cards: Sequence[Card], cancel: Optional[threading.Event] = None) -> List[PageLayout]:
        groups = paginate(cards, self.options.cards_per_page)
        pages: List[PageLayout] = []
        with ImageMeasurer(
            timeout=self.options.image_timeout_sec,
            max_workers=self.options.max_workers,
            reader=self.reader,
        ) as measurer:
            # all pages' lookups run concurrently; each page waits only for its own
            pending = [measurer.submit(icons_on(group)) for group in groups]
            for page_index, (group, futures) in enumerate(zip(groups, pending)):
                measurements = measurer.collect(futures, cancel=cancel)
                pages.append(build_page(page_index, group, measurements, self.options))
        logger.info("Laid out %d card(s) on %d page(s)", len(cards), len(pages))
        return pages


def layout_pages(
    cards: Sequence[Card],
    options: Optional[LayoutOptions] = None,
    cancel: Optional[threading.Event] = None,
) -> List[PageLayout]:
    return PageLayoutEngine(options).layout(cards, cancel=cancel)
