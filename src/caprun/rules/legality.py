from __future__ import annotations

from caprun.contracts import Finances, LegalityResult, MissionOption, RunEvent
from caprun.rules.metrics import apply_financial_deltas

CAP_MIN_LIMIT_M = 0
DEAD_CAP_SOFT_LIMIT_M = 85

CAP_BELOW_ZERO = "Projected cap space drops below zero."
DEAD_CAP_OVER_LIMIT = "Projected dead cap exceeds classroom soft limit."


def check_legality(finances: Finances, option: MissionOption | RunEvent) -> LegalityResult:
    """Project ``option`` onto ``finances`` without committing anything."""
    projected = apply_financial_deltas(finances, option.cap_delta_m, option.dead_cap_delta_m)
    reasons: list[str] = []
    if projected.cap_space_m < CAP_MIN_LIMIT_M:
        reasons.append(CAP_BELOW_ZERO)
    if projected.dead_cap_m > DEAD_CAP_SOFT_LIMIT_M:
        reasons.append(DEAD_CAP_OVER_LIMIT)
    return LegalityResult(legal=not reasons, reasons=tuple(reasons), projected=projected)
