from __future__ import annotations

import copy

from icon_bingo.core import generate
from icon_bingo.models import GenerationRequest, Icon, IconDistribution
from icon_bingo.serialize import session_to_dict
from icon_bingo.verify import report_ok, verify, verify_document


def make_pool(n):
    return [Icon(id=f"icon-{i:03d}", name=f"Icon {i}", image_data=b"") for i in range(n)]


def test_verify_reports_clean_generation():
    request = GenerationRequest(grid_size=5, set_count=3, cards_per_set=2, multi_hit_mode=True)
    session = generate(request, make_pool(60), seed=123)
    rep = verify(session)
    assert rep["set_count"] == 3
    assert rep["card_count"] == 6
    assert rep["duplicate_icon_sets"] == 0
    assert rep["degraded_sets"] == 0
    assert rep["ok_no_duplicates_within_cards"] is True
    assert rep["ok_free_space"] is True
    assert rep["ok_multi_hit"] is True
    assert rep["ok_identifiers"] is True
    assert report_ok(rep)


def test_same_card_identity_checked_when_requested():
    request = GenerationRequest(grid_size=3, set_count=2, cards_per_set=3, same_card_across_set=True)
    session = generate(request, make_pool(20), seed=5)
    rep = verify(session)
    assert rep["ok_same_card_identity"] is True


def test_different_icons_cards_share_nothing_within_a_set():
    request = GenerationRequest(
        grid_size=3,
        cards_per_set=2,
        center_blank=False,
        icon_distribution=IconDistribution.DIFFERENT_ICONS,
    )
    session = generate(request, make_pool(18), seed=8)
    first, second = session.cards
    assert not set(first.icon_ids) & set(second.icon_ids)
    assert report_ok(verify(session))


def test_tampered_document_fails():
    request = GenerationRequest(grid_size=3, set_count=1, cards_per_set=1)
    doc = session_to_dict(generate(request, make_pool(9), seed=1))

    dup = copy.deepcopy(doc)
    grid = dup["cards"][0]["grid"]
    grid[0][1]["icon_id"] = grid[0][0]["icon_id"]
    assert verify_document(dup)["ok_no_duplicates_within_cards"] is False

    free = copy.deepcopy(doc)
    free["cards"][0]["grid"][1][1]["free"] = False
    assert verify_document(free)["ok_free_space"] is False

    ident = copy.deepcopy(doc)
    ident["cards"][0]["identifier"] = "ZZZZZ"
    assert verify_document(ident)["ok_identifiers"] is False

    hits = copy.deepcopy(doc)
    hits["cards"][0]["grid"][0][0]["multi_hit"] = True
    hits["cards"][0]["grid"][0][0]["hit_count"] = 3
    rep = verify_document(hits)
    assert rep["ok_multi_hit"] is False
    assert not report_ok(rep)


def test_frequencies_count_every_placed_icon():
    request = GenerationRequest(grid_size=3, set_count=1, cards_per_set=4)
    session = generate(request, make_pool(9), seed=2)
    freqs = verify(session)["frequencies"]
    assert sum(freqs.values()) == 4 * 8
    assert all(1 <= v <= 4 for v in freqs.values())
