"""Seedable random sources and the Fisher-Yates shuffle built on them."""

from __future__ import annotations

import hashlib
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Type, TypeVar

import numpy as np

T = TypeVar("T")

SEED_BITS = 63


class RandomSource(ABC):
    engine = ""

    @abstractmethod
    def randint(self, a: int, b: int) -> int:
        """Uniform integer in the closed range ``[a, b]``."""

    @abstractmethod
    def random(self) -> float:
        """Uniform float in ``[0, 1)``."""


class PyRandomSource(RandomSource):
    engine = "py_random"

    def __init__(self, seed: Optional[int] = None):
        self._gen = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        return self._gen.randint(a, b)

    def random(self) -> float:
        return self._gen.random()


class NumpyPCG64Source(RandomSource):
    engine = "numpy_pcg64"

    def __init__(self, seed: Optional[int] = None):
        self._gen = np.random.Generator(np.random.PCG64(seed))

    def randint(self, a: int, b: int) -> int:
        return int(self._gen.integers(a, b, endpoint=True))

    def random(self) -> float:
        return float(self._gen.random())


ENGINES: Dict[str, Type[RandomSource]] = {
    PyRandomSource.engine: PyRandomSource,
    NumpyPCG64Source.engine: NumpyPCG64Source,
}


def create_rng(engine: str, seed: Optional[int]) -> RandomSource:
    """Build a source for ``engine``; ``seed=None`` seeds from the OS."""
    name = (engine or PyRandomSource.engine).strip().lower()
    try:
        cls = ENGINES[name]
    except KeyError:
        raise ValueError(f"Unknown RNG engine {engine!r}; expected one of {sorted(ENGINES)}") from None
    return cls(seed)


def derive_seed(base_seed: int, purpose: str, index: int = 0) -> int:
    """Independent, reproducible seed for one step of a seeded run."""
    digest = hashlib.sha256(f"{purpose}:{index}:{base_seed}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") >> (64 - SEED_BITS)


def shuffled(items: Sequence[T], rng: RandomSource) -> List[T]:
    """Return a uniformly permuted copy of ``items`` (Fisher-Yates).

    For i from len-1 down to 1, swap position i with a uniformly chosen
    j in [0, i]. Empty and single-element inputs come back unchanged.
    """
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out
