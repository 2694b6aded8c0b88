"""Data model shared by the generation and layout engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

DEFAULT_TITLE = "Road Trip Bingo"


class IconDistribution(str, Enum):
    SAME_ICONS = "same_icons"
    DIFFERENT_ICONS = "different_icons"


class Difficulty(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HARD = "hard"


# Inclusive hit-count ranges per difficulty level.
HIT_COUNT_RANGES = {
    Difficulty.LIGHT: (2, 3),
    Difficulty.MEDIUM: (2, 4),
    Difficulty.HARD: (3, 5),
}


@dataclass(frozen=True)
class Icon:
    """Icon record read from the icon store.

    ``image_data`` is raw image bytes, a ``data:`` URI or a filesystem path.
    """

    id: str
    name: str
    image_data: Union[bytes, str] = field(repr=False)
    exclude_from_multi_hit: bool = False


@dataclass(frozen=True)
class GenerationRequest:
    """Parameters for one generation run."""

    grid_size: int = 5
    set_count: int = 1
    cards_per_set: int = 1
    center_blank: bool = True
    multi_hit_mode: bool = False
    icon_distribution: IconDistribution = IconDistribution.SAME_ICONS
    same_card_across_set: bool = False
    title: str = DEFAULT_TITLE
    difficulty: Difficulty = Difficulty.MEDIUM
    multi_hit_probability: float = 0.3
    max_set_attempts: int = 50

    @property
    def display_title(self) -> str:
        return self.title.strip() if self.title and self.title.strip() else DEFAULT_TITLE

    @property
    def cells_per_card(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def has_free_space(self) -> bool:
        # Even grids have no single center cell.
        return self.center_blank and self.grid_size % 2 == 1

    @property
    def icons_per_set(self) -> int:
        if (
            self.icon_distribution == IconDistribution.DIFFERENT_ICONS
            and not self.same_card_across_set
        ):
            return self.cells_per_card * self.cards_per_set
        return self.cells_per_card


@dataclass(frozen=True)
class CardSet:
    set_index: int
    identifier: str
    selected_icons: Tuple[Icon, ...]


@dataclass(frozen=True)
class Cell:
    icon: Optional[Icon]
    is_free_space: bool = False
    is_multi_hit_target: bool = False
    hit_count: int = 1

    def __post_init__(self) -> None:
        if (self.icon is None) != self.is_free_space:
            raise ValueError("a cell is either a free space or carries exactly one icon")
        if self.hit_count < 1:
            raise ValueError("hit_count must be >= 1")


@dataclass(frozen=True)
class Card:
    title: str
    identifier: str
    grid_size: int
    grid: Tuple[Tuple[Cell, ...], ...]
    set_index: int = 0
    card_index: int = 0

    def cells(self):
        """Yield ``(row, col, cell)`` in row-major order."""
        for r, row in enumerate(self.grid):
            for c, cell in enumerate(row):
                yield r, c, cell

    @property
    def icon_ids(self) -> Tuple[Optional[str], ...]:
        return tuple(cell.icon.id if cell.icon else None for _r, _c, cell in self.cells())

    @property
    def has_multi_hit(self) -> bool:
        return any(cell.is_multi_hit_target for _r, _c, cell in self.cells())


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of the bounded set search.

    ``degraded`` is True when the attempt cap was reached and the last
    candidate was accepted without meeting the difference constraint.
    """

    icons: Tuple[Icon, ...]
    attempts: int
    degraded: bool = False


@dataclass(frozen=True)
class GenerationSession:
    """State of one generation run, passed into and returned from each step."""

    request: GenerationRequest
    pool: Tuple[Icon, ...]
    card_sets: Tuple[CardSet, ...] = ()
    cards: Tuple[Card, ...] = ()
    outcomes: Tuple[SelectionOutcome, ...] = ()

    @property
    def degraded_count(self) -> int:
        return sum(1 for o in self.outcomes if o.degraded)


# Draw instructions. Coordinates are points from the page's top-left corner.


@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    width: float
    height: float
    stroke: bool = True
    fill: Optional[Tuple[float, float, float]] = None


@dataclass(frozen=True)
class DrawText:
    x: float
    y: float
    text: str
    font_size: float
    align: str = "left"  # left | center | right
    bold: bool = False
    color: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class DrawImage:
    icon: Icon
    x: float
    y: float
    width: float
    height: float
    fallback: bool = False


@dataclass(frozen=True)
class DrawCircle:
    cx: float
    cy: float
    radius: float
    fill: Tuple[float, float, float] = (1.0, 0.267, 0.267)
    stroke: Tuple[float, float, float] = (1.0, 1.0, 1.0)


DrawInstruction = Union[DrawRect, DrawText, DrawImage, DrawCircle]


@dataclass(frozen=True)
class CardPlacement:
    card: Card
    origin_x: float
    origin_y: float
    card_width: float

    @property
    def card_height(self) -> float:
        return self.card_width

    @property
    def cell_size(self) -> float:
        return self.card_width / self.card.grid_size


@dataclass(frozen=True)
class PageLayout:
    page_index: int
    set_index: int
    placements: Tuple[CardPlacement, ...]
    instructions: Tuple[DrawInstruction, ...] = ()
