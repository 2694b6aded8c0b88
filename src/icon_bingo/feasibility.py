from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .errors import InsufficientIconsError, ValidationError
from .models import GenerationRequest, Icon


@dataclass
class Feasibility:
    feasible: bool
    reasons: List[str] = field(default_factory=list)
    required: int = 0
    available: int = 0


def validate_request(request: GenerationRequest) -> None:
    """Fail fast on a malformed request, before any randomized work."""
    reasons: List[str] = []
    for name in ("grid_size", "set_count", "cards_per_set"):
        value = getattr(request, name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            reasons.append(f"{name} must be a positive integer, got {value!r}")
    if not 0.0 <= float(request.multi_hit_probability) <= 1.0:
        reasons.append("multi_hit_probability must be within [0, 1]")
    if not isinstance(request.max_set_attempts, int) or request.max_set_attempts < 1:
        reasons.append("max_set_attempts must be a positive integer")
    if reasons:
        raise ValidationError("; ".join(reasons))


def validate_pool(pool: Sequence[Icon]) -> None:
    seen = set()
    dupes = []
    for icon in pool:
        if icon.id in seen:
            dupes.append(icon.id)
        seen.add(icon.id)
    if dupes:
        raise ValidationError(f"Duplicate icon ids in pool: {sorted(set(dupes))}")


def check_icon_capacity(*, request: GenerationRequest, pool_size: int) -> Feasibility:
    required = request.icons_per_set
    ok = pool_size >= required
    return Feasibility(
        feasible=ok,
        reasons=[] if ok else [f"pool has {pool_size} icons, one set needs {required}"],
        required=required,
        available=pool_size,
    )


def require_sufficient_icons(*, request: GenerationRequest, pool_size: int) -> None:
    result = check_icon_capacity(request=request, pool_size=pool_size)
    if not result.feasible:
        raise InsufficientIconsError(required=result.required, available=result.available)
