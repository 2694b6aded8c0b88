"""Set selection and card assembly."""

from .assembler import assemble_cards, expected_multi_hit_count
from .selector import select_card_sets, select_icons_for_set

__all__ = [
    "assemble_cards",
    "expected_multi_hit_count",
    "select_card_sets",
    "select_icons_for_set",
]
