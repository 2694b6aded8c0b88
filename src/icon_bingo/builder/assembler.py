from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Sequence, Tuple

from ..models import (
    HIT_COUNT_RANGES,
    Card,
    CardSet,
    Cell,
    Difficulty,
    GenerationRequest,
    GenerationSession,
    Icon,
    IconDistribution,
)
from ..rng import RandomSource, shuffled

logger = logging.getLogger(__name__)

Grid = Tuple[Tuple[Cell, ...], ...]


def center_index(grid_size: int) -> int:
    return grid_size // 2


def layout_grid(icons: Sequence[Icon], grid_size: int, free_center: bool) -> List[List[Cell]]:
    """Lay icons out row-major, skipping the center when it is a free space."""
    grid: List[List[Cell]] = []
    mid = center_index(grid_size)
    it = iter(icons)
    for r in range(grid_size):
        row: List[Cell] = []
        for c in range(grid_size):
            if free_center and r == mid and c == mid:
                row.append(Cell(icon=None, is_free_space=True))
            else:
                row.append(Cell(icon=next(it)))
        grid.append(row)
    return grid


def hit_count_range(difficulty: Difficulty) -> Tuple[int, int]:
    return HIT_COUNT_RANGES.get(difficulty, HIT_COUNT_RANGES[Difficulty.MEDIUM])


def apply_multi_hit(
    grid: List[List[Cell]],
    *,
    probability: float,
    difficulty: Difficulty,
    rng: RandomSource,
) -> List[List[Cell]]:
    """Mark eligible cells as multi-hit targets independently with ``probability``.

    Free spaces and icons flagged ``exclude_from_multi_hit`` are never marked.
    """
    lo, hi = hit_count_range(difficulty)
    out: List[List[Cell]] = []
    for row in grid:
        new_row: List[Cell] = []
        for cell in row:
            eligible = not cell.is_free_space and cell.icon is not None and not cell.icon.exclude_from_multi_hit
            if eligible and rng.random() < probability:
                cell = replace(cell, is_multi_hit_target=True, hit_count=rng.randint(lo, hi))
            new_row.append(cell)
        out.append(new_row)
    return out


def build_grid(icons: Sequence[Icon], request: GenerationRequest, rng: RandomSource) -> Grid:
    order = shuffled(icons, rng)
    grid = layout_grid(order, request.grid_size, request.has_free_space)
    if request.multi_hit_mode:
        grid = apply_multi_hit(
            grid,
            probability=request.multi_hit_probability,
            difficulty=request.difficulty,
            rng=rng,
        )
    return tuple(tuple(row) for row in grid)


def icons_for_card(card_set: CardSet, request: GenerationRequest, card_index: int) -> Sequence[Icon]:
    if request.icon_distribution == IconDistribution.DIFFERENT_ICONS:
        n = request.cells_per_card
        return card_set.selected_icons[card_index * n : (card_index + 1) * n]
    return card_set.selected_icons


def assemble_set(card_set: CardSet, request: GenerationRequest, rng: RandomSource) -> List[Card]:
    title = request.display_title

    def make(grid: Grid, card_index: int) -> Card:
        return Card(
            title=title,
            identifier=card_set.identifier,
            grid_size=request.grid_size,
            grid=grid,
            set_index=card_set.set_index,
            card_index=card_index,
        )

    if request.same_card_across_set:
        grid = build_grid(card_set.selected_icons[: request.cells_per_card], request, rng)
        return [make(grid, k) for k in range(request.cards_per_set)]

    return [
        make(build_grid(icons_for_card(card_set, request, k), request, rng), k)
        for k in range(request.cards_per_set)
    ]


def assemble_cards(session: GenerationSession, rng: RandomSource) -> GenerationSession:
    request = session.request
    if request.center_blank and not request.has_free_space:
        logger.info("center_blank ignored: grid size %d has no single center cell", request.grid_size)
    cards: List[Card] = []
    for card_set in session.card_sets:
        cards.extend(assemble_set(card_set, request, rng))
    return replace(session, cards=tuple(cards))


def expected_multi_hit_count(grid_size: int, center_blank: bool, probability: float = 0.3) -> float:
    """Expected number of multi-hit targets on a card whose icons are all eligible."""
    cells = grid_size * grid_size
    if center_blank and grid_size % 2 == 1:
        cells -= 1
    return cells * probability
