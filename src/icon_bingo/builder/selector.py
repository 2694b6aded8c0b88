from __future__ import annotations

import logging
import warnings
from dataclasses import replace
from typing import FrozenSet, List, Sequence

from ..errors import DegradedUniquenessWarning
from ..feasibility import require_sufficient_icons
from ..identifier import compute_identifier
from ..models import CardSet, GenerationSession, Icon, SelectionOutcome
from ..rng import RandomSource, shuffled
from ..uniqueness import differs_from_all, icon_id_set

logger = logging.getLogger(__name__)


def draw_subset(pool: Sequence[Icon], needed: int, rng: RandomSource) -> List[Icon]:
    return shuffled(pool, rng)[:needed]


def select_icons_for_set(
    *,
    pool: Sequence[Icon],
    needed: int,
    previous: Sequence[FrozenSet[str]],
    rng: RandomSource,
    max_attempts: int = 50,
) -> SelectionOutcome:
    """Draw ``needed`` icons that differ from every previous set by at least one id.

    Retries up to ``max_attempts`` draws. When the budget runs out the last
    candidate is accepted and the outcome is tagged ``degraded``.
    """
    candidate: List[Icon] = []
    for attempt in range(1, max_attempts + 1):
        candidate = draw_subset(pool, needed, rng)
        if differs_from_all(icon_id_set(candidate), previous):
            return SelectionOutcome(icons=tuple(candidate), attempts=attempt)
    return SelectionOutcome(icons=tuple(candidate), attempts=max_attempts, degraded=True)


def select_card_sets(session: GenerationSession, rng: RandomSource) -> GenerationSession:
    """Pick one icon subset per set and attach its identifier."""
    request = session.request
    pool = session.pool
    needed = request.icons_per_set
    require_sufficient_icons(request=request, pool_size=len(pool))

    fast_path = request.set_count == 1 or len(pool) == needed
    accepted: List[FrozenSet[str]] = []
    card_sets: List[CardSet] = []
    outcomes: List[SelectionOutcome] = []

    for set_index in range(request.set_count):
        if fast_path or set_index == 0:
            outcome = SelectionOutcome(icons=tuple(draw_subset(pool, needed, rng)), attempts=1)
        else:
            outcome = select_icons_for_set(
                pool=pool,
                needed=needed,
                previous=accepted,
                rng=rng,
                max_attempts=request.max_set_attempts,
            )
            if outcome.degraded:
                logger.warning(
                    "Set %d: no distinct icon subset after %d attempts; accepting a repeat",
                    set_index + 1,
                    outcome.attempts,
                )
                warnings.warn(
                    f"set {set_index + 1} may repeat an earlier set's icons "
                    f"(retry budget of {outcome.attempts} exhausted)",
                    DegradedUniquenessWarning,
                    stacklevel=2,
                )
        accepted.append(icon_id_set(outcome.icons))
        outcomes.append(outcome)
        card_sets.append(
            CardSet(
                set_index=set_index,
                identifier=compute_identifier(outcome.icons),
                selected_icons=outcome.icons,
            )
        )
        logger.debug(
            "Set %d selected %d icons in %d attempt(s), identifier %s",
            set_index + 1,
            needed,
            outcome.attempts,
            card_sets[-1].identifier,
        )

    return replace(session, card_sets=tuple(card_sets), outcomes=tuple(outcomes))
