from __future__ import annotations

import hashlib
import json
from typing import FrozenSet, Iterable, Sequence

from .models import Card, Icon


def icon_id_set(icons: Iterable[Icon]) -> FrozenSet[str]:
    return frozenset(icon.id for icon in icons)


def differs_from_all(candidate: FrozenSet[str], previous: Iterable[FrozenSet[str]]) -> bool:
    """True when the symmetric difference with every previous set is non-empty."""
    return all(candidate ^ prev for prev in previous)


def card_matrix(card: Card) -> list:
    """Grid of icon ids, ``None`` for free cells."""
    return [[cell.icon.id if cell.icon else None for cell in row] for row in card.grid]


def card_hash(card: Card) -> str:
    payload = json.dumps(
        {
            "ids": card_matrix(card),
            "hits": [[cell.hit_count if cell.is_multi_hit_target else 0 for cell in row] for row in card.grid],
        },
        ensure_ascii=True,
        separators=(",", ":"),
    )
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def cards_hash(cards: Sequence[Card]) -> str:
    hashes = [card_hash(c) for c in cards]
    payload = json.dumps(hashes, ensure_ascii=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()
