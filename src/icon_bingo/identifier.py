"""Short display fingerprint of an icon collection.

The identifier depends only on the set of icon ids, so every card of a set
reports the same code whatever its shuffle order. It is a 32-bit rolling hash
rendered as five base-36 characters; collisions are possible and accepted,
the code is printed on cards for humans and is never used as a key.
"""

from __future__ import annotations

from typing import Iterable

from .models import Icon

IDENTIFIER_LENGTH = 5
_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def fold_hash(text: str) -> int:
    """Polynomial rolling hash ``h = h*31 + unit`` wrapped to signed 32 bits.

    Folds UTF-16 code units so non-BMP ids hash the same way a browser's
    ``charCodeAt`` loop would.
    """
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_DIGITS[rem])
    return "".join(reversed(digits))


def compute_identifier_from_ids(ids: Iterable[str]) -> str:
    canonical = "".join(sorted(ids))
    code = to_base36(abs(fold_hash(canonical)))
    return code.rjust(IDENTIFIER_LENGTH, "0")[:IDENTIFIER_LENGTH]


def compute_identifier(icons: Iterable[Icon]) -> str:
    return compute_identifier_from_ids(icon.id for icon in icons)
