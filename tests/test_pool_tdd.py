from __future__ import annotations

import io

import pytest
from PIL import Image

from icon_bingo.errors import ValidationError
from icon_bingo.pool import load_icon_pool


def write_png(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), (0, 0, 0)).save(buf, format="PNG")
    path.write_bytes(buf.getvalue())


def test_loads_images_with_manifest(tmp_path):
    write_png(tmp_path / "red_car.png")
    write_png(tmp_path / "cow.png")
    write_png(tmp_path / "signs" / "stop-sign.png")
    (tmp_path / "notes.txt").write_text("ignore me", encoding="utf-8")
    (tmp_path / "icons.yaml").write_text(
        "exclude_from_multi_hit: [cow.png]\nnames:\n  red_car.png: Red Car\n", encoding="utf-8"
    )

    pool = load_icon_pool(tmp_path)
    by_id = {icon.id: icon for icon in pool}
    assert sorted(by_id) == ["cow.png", "red_car.png", "signs/stop-sign.png"]
    assert by_id["red_car.png"].name == "Red Car"
    assert by_id["signs/stop-sign.png"].name == "stop sign"
    assert by_id["cow.png"].exclude_from_multi_hit
    assert not by_id["red_car.png"].exclude_from_multi_hit
    assert by_id["cow.png"].image_data == str(tmp_path / "cow.png")


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_icon_pool(tmp_path / "missing")


def test_manifest_must_be_mapping(tmp_path):
    write_png(tmp_path / "a.png")
    (tmp_path / "icons.yaml").write_text("- a.png\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_icon_pool(tmp_path)
