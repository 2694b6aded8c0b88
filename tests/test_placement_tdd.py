from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from icon_bingo.placement import compute_draw_rect


def test_square_image_fills_padded_box():
    r = compute_draw_rect(100, 100, 50)
    assert r.x == pytest.approx(5)
    assert r.y == pytest.approx(5)
    assert r.width == pytest.approx(40)
    assert r.height == pytest.approx(40)


def test_wide_image_is_vertically_centered():
    r = compute_draw_rect(200, 100, 100)
    assert r.width == pytest.approx(80)
    assert r.height == pytest.approx(40)
    assert r.x == pytest.approx(10)
    assert r.y == pytest.approx(30)


def test_tall_image_is_horizontally_centered():
    r = compute_draw_rect(50, 200, 100)
    assert r.height == pytest.approx(80)
    assert r.width == pytest.approx(20)
    assert r.x == pytest.approx(40)
    assert r.y == pytest.approx(10)


@pytest.mark.parametrize("w,h", [(None, None), (0, 10), (10, 0), (-5, 5)])
def test_unknown_dimensions_fall_back_to_square(w, h):
    r = compute_draw_rect(w, h, 60)
    assert r.width == pytest.approx(48)
    assert r.height == pytest.approx(48)


@given(
    w=st.integers(min_value=1, max_value=5000),
    h=st.integers(min_value=1, max_value=5000),
    cell=st.floats(min_value=1.0, max_value=500.0),
)
def test_rect_fits_padded_box_and_keeps_aspect(w, h, cell):
    r = compute_draw_rect(w, h, cell)
    pad = cell * 0.1
    box = cell - 2 * pad
    eps = 1e-6 * cell
    assert r.width <= box + eps and r.height <= box + eps
    assert r.x >= pad - eps and r.y >= pad - eps
    assert r.x + r.width <= cell - pad + eps
    assert r.y + r.height <= cell - pad + eps
    assert max(r.width, r.height) == pytest.approx(box)
    assert r.width / r.height == pytest.approx(w / h, rel=1e-6)
