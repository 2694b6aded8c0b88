from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Dict, List, Mapping

from .identifier import IDENTIFIER_LENGTH
from .models import GenerationSession
from .serialize import session_to_dict


def compute_frequencies(cards: List[Mapping[str, Any]]) -> Dict[str, int]:
    counts: Counter[str] = Counter()
    for card in cards:
        for row in card["grid"]:
            counts.update(cell["icon_id"] for cell in row if cell["icon_id"] is not None)
    return dict(counts)


def check_no_duplicates_within_cards(cards: List[Mapping[str, Any]]) -> bool:
    for card in cards:
        ids = [cell["icon_id"] for row in card["grid"] for cell in row if cell["icon_id"] is not None]
        if len(ids) != len(set(ids)):
            return False
    return True


def check_free_space(cards: List[Mapping[str, Any]], center_blank: bool) -> bool:
    for card in cards:
        g = card["grid_size"]
        expect_free = center_blank and g % 2 == 1
        mid = g // 2
        for r, row in enumerate(card["grid"]):
            for c, cell in enumerate(row):
                should_be_free = expect_free and r == mid and c == mid
                if cell["free"] != should_be_free:
                    return False
                if cell["free"] != (cell["icon_id"] is None):
                    return False
    return True


def check_multi_hit(cards: List[Mapping[str, Any]], enabled: bool) -> bool:
    for card in cards:
        for row in card["grid"]:
            for cell in row:
                if not cell["multi_hit"]:
                    if cell["hit_count"] != 1:
                        return False
                    continue
                if not enabled or cell["free"] or cell.get("excluded", False):
                    return False
    return True


def _grid_signature(card: Mapping[str, Any]) -> tuple:
    return tuple(
        (cell["icon_id"], cell["free"], cell["multi_hit"], cell["hit_count"])
        for row in card["grid"]
        for cell in row
    )


def check_same_card_identity(cards: List[Mapping[str, Any]]) -> bool:
    by_set: Dict[int, set] = defaultdict(set)
    for card in cards:
        by_set[card["set_index"]].add(_grid_signature(card))
    return all(len(sigs) == 1 for sigs in by_set.values())


def check_identifiers(doc: Mapping[str, Any]) -> bool:
    set_ids = {s["set_index"]: s["identifier"] for s in doc["sets"]}
    for s in doc["sets"]:
        if len(s["identifier"]) != IDENTIFIER_LENGTH:
            return False
    return all(card["identifier"] == set_ids.get(card["set_index"]) for card in doc["cards"])


def count_duplicate_sets(sets: List[Mapping[str, Any]]) -> int:
    seen: Counter = Counter(frozenset(s["icon_ids"]) for s in sets)
    return sum(c - 1 for c in seen.values() if c > 1)


def verify_document(doc: Mapping[str, Any]) -> Dict[str, object]:
    """Check a serialized generation (as written to cards.json)."""
    request = doc["request"]
    cards = list(doc["cards"])
    freqs = compute_frequencies(cards)
    report: Dict[str, object] = {
        "frequencies": freqs,
        "set_count": len(doc["sets"]),
        "card_count": len(cards),
        "duplicate_icon_sets": count_duplicate_sets(list(doc["sets"])),
        "degraded_sets": sum(1 for s in doc.get("selection", []) if s.get("degraded")),
        "ok_no_duplicates_within_cards": check_no_duplicates_within_cards(cards),
        "ok_free_space": check_free_space(cards, bool(request["center_blank"])),
        "ok_multi_hit": check_multi_hit(cards, bool(request["multi_hit_mode"])),
        "ok_identifiers": check_identifiers(doc),
    }
    if request.get("same_card_across_set"):
        report["ok_same_card_identity"] = check_same_card_identity(cards)
    return report


def verify(session: GenerationSession) -> Dict[str, object]:
    return verify_document(session_to_dict(session))


def report_ok(report: Mapping[str, object]) -> bool:
    return all(bool(v) for k, v in report.items() if k.startswith("ok_"))
