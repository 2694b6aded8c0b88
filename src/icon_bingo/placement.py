from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PADDING_RATIO = 0.1


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


def compute_draw_rect(
    native_width: Optional[float],
    native_height: Optional[float],
    cell_size: float,
    padding_ratio: float = PADDING_RATIO,
) -> Rect:
    """Centered, aspect-preserving image rectangle relative to the cell's top-left.

    The image is fitted into the cell shrunk by ``padding_ratio`` of the cell
    size on every side. Missing or non-positive native dimensions are treated
    as a square image.
    """
    pad = cell_size * padding_ratio
    box = cell_size - 2 * pad
    if not native_width or not native_height or native_width <= 0 or native_height <= 0:
        native_width = native_height = 1.0

    aspect = float(native_width) / float(native_height)
    if aspect >= 1.0:
        width = box
        height = box / aspect
    else:
        height = box
        width = box * aspect

    return Rect(
        x=pad + (box - width) / 2,
        y=pad + (box - height) / 2,
        width=width,
        height=height,
    )
