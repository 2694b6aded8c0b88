from __future__ import annotations

import csv
import json
import platform
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .models import Card, CardSet, GenerationSession
from .uniqueness import card_hash, cards_hash


def prepare_output(path: Path, *, mkdirs: bool, overwrite: bool) -> Path:
    """Check that ``path`` may be written, creating its directory if allowed."""
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists (pass --force to replace it)")
    if mkdirs:
        path.parent.mkdir(parents=True, exist_ok=True)
    elif not path.parent.is_dir():
        raise FileNotFoundError(f"Output directory does not exist: {path.parent}")
    return path


def write_json(path: Path, data: object, *, mkdirs: bool, overwrite: bool) -> None:
    prepare_output(path, mkdirs=mkdirs, overwrite=overwrite).write_text(
        json.dumps(data, ensure_ascii=True, sort_keys=True, indent=2) + "\n", encoding="utf-8"
    )


def build_run_meta(
    *,
    app_version: str,
    params_hash: str,
    seed: Optional[int],
    rng_engine: str,
) -> Dict[str, object]:
    """Provenance block written at the top of cards.json."""
    return {
        "generator": f"icon-bingo {app_version}",
        "created_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "python": platform.python_version(),
        "os": platform.system().lower(),
        "params_hash": params_hash,
        "seed": seed,
        "rng_engine": rng_engine,
        "reproducible": seed is not None,
    }


def card_to_dict(card: Card) -> Dict[str, object]:
    rows: List[List[Dict[str, object]]] = []
    for row in card.grid:
        rows.append(
            [
                {
                    "icon_id": cell.icon.id if cell.icon else None,
                    "name": cell.icon.name if cell.icon else None,
                    "free": cell.is_free_space,
                    "excluded": bool(cell.icon and cell.icon.exclude_from_multi_hit),
                    "multi_hit": cell.is_multi_hit_target,
                    "hit_count": cell.hit_count,
                }
                for cell in row
            ]
        )
    return {
        "set_index": card.set_index,
        "card_index": card.card_index,
        "title": card.title,
        "identifier": card.identifier,
        "grid_size": card.grid_size,
        "grid": rows,
        "card_hash": card_hash(card),
    }


def card_set_to_dict(card_set: CardSet) -> Dict[str, object]:
    return {
        "set_index": card_set.set_index,
        "identifier": card_set.identifier,
        "icon_ids": [icon.id for icon in card_set.selected_icons],
    }


def session_to_dict(session: GenerationSession) -> Dict[str, object]:
    request = asdict(session.request)
    request["icon_distribution"] = session.request.icon_distribution.value
    request["difficulty"] = session.request.difficulty.value
    return {
        "request": request,
        "sets": [card_set_to_dict(s) for s in session.card_sets],
        "cards": [card_to_dict(c) for c in session.cards],
        "selection": [
            {"attempts": o.attempts, "degraded": o.degraded} for o in session.outcomes
        ],
        "cards_hash": cards_hash(session.cards),
    }


def emit_cards_json(
    path: Path,
    *,
    session: GenerationSession,
    run_meta: Dict[str, object],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    data = {"run_meta": run_meta, **session_to_dict(session)}
    write_json(path, data, mkdirs=mkdirs, overwrite=overwrite)


def icon_usage(cards: List[Card]) -> Dict[str, int]:
    counts: Counter[str] = Counter()
    for card in cards:
        for _r, _c, cell in card.cells():
            if cell.icon is not None:
                counts[cell.icon.id] += 1
    return dict(counts)


def emit_summary_csv(
    path: Path,
    *,
    usage: Dict[str, int],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    with prepare_output(path, mkdirs=mkdirs, overwrite=overwrite).open("w", newline="", encoding="utf-8") as fh:
        out = csv.writer(fh)
        out.writerow(["icon_id", "total"])
        out.writerows(sorted(usage.items()))
