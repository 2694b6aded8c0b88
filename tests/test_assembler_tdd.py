from __future__ import annotations

import pytest

from icon_bingo.builder.assembler import apply_multi_hit, expected_multi_hit_count, layout_grid
from icon_bingo.core import generate
from icon_bingo.models import (
    DEFAULT_TITLE,
    Difficulty,
    GenerationRequest,
    HIT_COUNT_RANGES,
    Icon,
    IconDistribution,
)
from icon_bingo.rng import create_rng


def make_pool(n: int, exclude: bool = False):
    return [
        Icon(id=f"icon-{i:03d}", name=f"Icon {i}", image_data=b"", exclude_from_multi_hit=exclude)
        for i in range(n)
    ]


def test_free_space_at_center_for_odd_grid():
    session = generate(GenerationRequest(grid_size=5, center_blank=True), make_pool(30), seed=1)
    card = session.cards[0]
    for r, c, cell in card.cells():
        if (r, c) == (2, 2):
            assert cell.is_free_space
            assert cell.icon is None
        else:
            assert not cell.is_free_space
            assert cell.icon is not None


def test_even_grid_ignores_center_blank():
    session = generate(GenerationRequest(grid_size=4, center_blank=True), make_pool(16), seed=2)
    card = session.cards[0]
    assert all(cell.icon is not None for _r, _c, cell in card.cells())
    assert len(set(card.icon_ids)) == 16


def test_same_card_across_set_clones_everything():
    request = GenerationRequest(
        grid_size=5, cards_per_set=3, same_card_across_set=True, multi_hit_mode=True
    )
    session = generate(request, make_pool(40), seed=3)
    cards = session.cards
    assert len(cards) == 3
    for r, c, cell in cards[0].cells():
        for other in cards[1:]:
            twin = other.grid[r][c]
            assert (twin.icon.id if twin.icon else None) == (cell.icon.id if cell.icon else None)
            assert twin.is_free_space == cell.is_free_space
            assert twin.is_multi_hit_target == cell.is_multi_hit_target
            assert twin.hit_count == cell.hit_count
    assert [c.card_index for c in cards] == [0, 1, 2]


def test_same_icons_cards_share_identities():
    request = GenerationRequest(grid_size=4, cards_per_set=3, center_blank=False)
    session = generate(request, make_pool(40), seed=4)
    id_sets = [set(card.icon_ids) for card in session.cards]
    assert id_sets[0] == id_sets[1] == id_sets[2]


def test_different_icons_cards_are_disjoint():
    request = GenerationRequest(
        grid_size=3,
        cards_per_set=3,
        center_blank=False,
        icon_distribution=IconDistribution.DIFFERENT_ICONS,
    )
    session = generate(request, make_pool(30), seed=5)
    id_sets = [set(card.icon_ids) for card in session.cards]
    assert all(len(s) == 9 for s in id_sets)
    assert not (id_sets[0] & id_sets[1])
    assert not (id_sets[1] & id_sets[2])
    assert not (id_sets[0] & id_sets[2])


def test_multi_hit_respects_exclusion():
    request = GenerationRequest(grid_size=5, set_count=3, cards_per_set=2, multi_hit_mode=True, multi_hit_probability=1.0)
    session = generate(request, make_pool(40, exclude=True), seed=6)
    for card in session.cards:
        assert not any(cell.is_multi_hit_target for _r, _c, cell in card.cells())


def test_multi_hit_off_never_marks():
    request = GenerationRequest(grid_size=5, multi_hit_mode=False, multi_hit_probability=1.0)
    session = generate(request, make_pool(30), seed=7)
    assert not session.cards[0].has_multi_hit
    assert all(cell.hit_count == 1 for _r, _c, cell in session.cards[0].cells())


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_hit_counts_follow_difficulty(difficulty):
    request = GenerationRequest(
        grid_size=5, multi_hit_mode=True, multi_hit_probability=1.0, difficulty=difficulty
    )
    session = generate(request, make_pool(30), seed=8)
    lo, hi = HIT_COUNT_RANGES[difficulty]
    marked = [cell for _r, _c, cell in session.cards[0].cells() if cell.is_multi_hit_target]
    assert len(marked) == 24  # every non-free cell
    assert all(lo <= cell.hit_count <= hi for cell in marked)


def test_marking_rate_near_probability():
    pool = make_pool(400)
    grid = layout_grid(pool, 20, free_center=False)
    marked = apply_multi_hit(grid, probability=0.3, difficulty=Difficulty.MEDIUM, rng=create_rng("py_random", 9))
    count = sum(1 for row in marked for cell in row if cell.is_multi_hit_target)
    assert 80 <= count <= 160


def test_title_defaults_and_identifier_inherited():
    session = generate(GenerationRequest(grid_size=3, set_count=2, title="  "), make_pool(20), seed=10)
    for card in session.cards:
        assert card.title == DEFAULT_TITLE
        assert card.identifier == session.card_sets[card.set_index].identifier


def test_expected_multi_hit_count():
    assert expected_multi_hit_count(5, True, 0.3) == pytest.approx(7.2)
    assert expected_multi_hit_count(4, True, 0.5) == pytest.approx(8.0)
