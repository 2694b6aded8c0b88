"""Generation pipeline: validate, select sets, assemble cards."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from ..builder.assembler import assemble_cards
from ..builder.selector import select_card_sets
from ..feasibility import require_sufficient_icons, validate_pool, validate_request
from ..models import GenerationRequest, GenerationSession, Icon
from ..rng import RandomSource, create_rng, derive_seed

logger = logging.getLogger(__name__)


@dataclass
class BuildMetrics:
    """Metrics for card generation."""

    total_time: float
    selection_attempts: int
    degraded_sets: int


@dataclass
class BuildResult:
    """Result of card generation."""

    session: GenerationSession
    metrics: BuildMetrics


class CardBuilder:
    """Runs the generation steps over a fresh session."""

    def __init__(self, rng_engine: str = "py_random", seed: Optional[int] = None):
        self.rng_engine = rng_engine
        self.seed = seed

    def _rng(self, purpose: str) -> RandomSource:
        if self.seed is None:
            return create_rng(self.rng_engine, None)
        return create_rng(self.rng_engine, derive_seed(self.seed, purpose))

    def build(self, request: GenerationRequest, pool: Sequence[Icon]) -> BuildResult:
        start = time.perf_counter()
        validate_request(request)
        validate_pool(pool)
        require_sufficient_icons(request=request, pool_size=len(pool))

        session = GenerationSession(request=request, pool=tuple(pool))
        session = select_card_sets(session, self._rng("select"))
        session = assemble_cards(session, self._rng("assemble"))

        metrics = BuildMetrics(
            total_time=time.perf_counter() - start,
            selection_attempts=sum(o.attempts for o in session.outcomes),
            degraded_sets=session.degraded_count,
        )
        logger.info(
            "Generated %d set(s), %d card(s) from %d icons in %.3fs",
            len(session.card_sets),
            len(session.cards),
            len(pool),
            metrics.total_time,
        )
        return BuildResult(session=session, metrics=metrics)


def generate(
    request: GenerationRequest,
    pool: Sequence[Icon],
    *,
    seed: Optional[int] = None,
    rng_engine: str = "py_random",
) -> GenerationSession:
    return CardBuilder(rng_engine=rng_engine, seed=seed).build(request, pool).session
