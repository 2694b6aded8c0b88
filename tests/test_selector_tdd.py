from __future__ import annotations

import warnings

from icon_bingo.builder.selector import select_card_sets, select_icons_for_set
from icon_bingo.errors import DegradedUniquenessWarning
from icon_bingo.identifier import compute_identifier
from icon_bingo.models import GenerationRequest, GenerationSession, Icon, IconDistribution
from icon_bingo.rng import create_rng
from icon_bingo.uniqueness import icon_id_set


def make_pool(n: int):
    return tuple(Icon(id=f"icon-{i:03d}", name=f"Icon {i}", image_data=b"") for i in range(n))


def session_for(pool, **kwargs):
    return GenerationSession(request=GenerationRequest(**kwargs), pool=pool)


def test_single_set_takes_needed_icons():
    pool = make_pool(40)
    out = select_card_sets(session_for(pool, grid_size=5), create_rng("py_random", 1))
    assert len(out.card_sets) == 1
    selected = out.card_sets[0].selected_icons
    assert len(selected) == 25
    assert len(icon_id_set(selected)) == 25
    assert out.outcomes[0].attempts == 1
    assert not out.outcomes[0].degraded


def test_exact_fit_uses_whole_pool_for_every_set():
    pool = make_pool(9)
    out = select_card_sets(session_for(pool, grid_size=3, set_count=3), create_rng("py_random", 2))
    for card_set in out.card_sets:
        assert icon_id_set(card_set.selected_icons) == icon_id_set(pool)
    assert not any(o.degraded for o in out.outcomes)


def test_sets_differ_when_pool_allows():
    pool = make_pool(30)
    out = select_card_sets(session_for(pool, grid_size=4, set_count=6), create_rng("py_random", 3))
    id_sets = [icon_id_set(s.selected_icons) for s in out.card_sets]
    for i in range(len(id_sets)):
        for j in range(i):
            assert id_sets[i] ^ id_sets[j]


def test_identifier_matches_selected_icons():
    pool = make_pool(30)
    out = select_card_sets(session_for(pool, grid_size=3, set_count=3), create_rng("py_random", 4))
    for card_set in out.card_sets:
        assert card_set.identifier == compute_identifier(card_set.selected_icons)
        assert len(card_set.identifier) == 5
    assert [s.set_index for s in out.card_sets] == [0, 1, 2]


def test_different_icons_selects_enough_for_all_cards():
    pool = make_pool(50)
    session = session_for(
        pool, grid_size=3, cards_per_set=4, icon_distribution=IconDistribution.DIFFERENT_ICONS
    )
    out = select_card_sets(session, create_rng("py_random", 5))
    assert len(out.card_sets[0].selected_icons) == 36


def test_retry_budget_exhaustion_is_tagged_degraded():
    # 5 icons, 4 per set: only 5 distinct subsets exist, so sets 6..8 must repeat
    pool = make_pool(5)
    session = session_for(pool, grid_size=2, set_count=8)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        out = select_card_sets(session, create_rng("py_random", 6))
    degraded = [o for o in out.outcomes if o.degraded]
    assert len(degraded) >= 3
    assert all(o.attempts == 50 for o in degraded)
    assert len(out.card_sets) == 8
    assert out.degraded_count == len(degraded)
    assert any(issubclass(w.category, DegradedUniquenessWarning) for w in caught)


def test_select_icons_for_set_accepts_first_distinct_draw():
    pool = make_pool(10)
    previous = [frozenset(i.id for i in pool[:4])]
    outcome = select_icons_for_set(
        pool=pool, needed=4, previous=previous, rng=create_rng("py_random", 7), max_attempts=50
    )
    assert not outcome.degraded
    assert icon_id_set(outcome.icons) != previous[0]


def test_custom_attempt_cap_is_respected():
    pool = make_pool(4)
    previous = [frozenset(i.id for i in pool)]
    outcome = select_icons_for_set(
        pool=pool, needed=4, previous=previous, rng=create_rng("py_random", 8), max_attempts=3
    )
    assert outcome.degraded
    assert outcome.attempts == 3
