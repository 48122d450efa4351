from __future__ import annotations

import math
from typing import Mapping

from caprun.contracts import METRIC_KEYS, Finances

COMPOSITE_WEIGHTS: dict[str, float] = {
    "cap_health": 0.25,
    "roster_strength": 0.2,
    "flexibility": 0.2,
    "player_relations": 0.15,
    "franchise_value_growth": 0.2,
}

METRIC_FLOOR = 0
METRIC_CEILING = 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_tenth(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def clamp_metric(value: float) -> int:
    return max(METRIC_FLOOR, min(METRIC_CEILING, round_half_up(value)))


def empty_metric_deltas(**overrides: int) -> dict[str, int]:
    unknown = set(overrides) - set(METRIC_KEYS)
    if unknown:
        raise KeyError(f"unknown metric keys: {sorted(unknown)}")
    return {key: int(overrides.get(key, 0)) for key in METRIC_KEYS}


def apply_metric_deltas(metrics: Mapping[str, int], deltas: Mapping[str, int]) -> dict[str, int]:
    """Add deltas key by key, clamping each metric on its own."""
    return {key: clamp_metric(metrics[key] + deltas.get(key, 0)) for key in METRIC_KEYS}


def apply_financial_deltas(finances: Finances, cap_delta_m: float = 0.0, dead_cap_delta_m: float = 0.0) -> Finances:
    return Finances(
        cap_space_m=round_tenth(finances.cap_space_m + cap_delta_m),
        dead_cap_m=round_tenth(finances.dead_cap_m + dead_cap_delta_m),
    )


def calculate_composite(metrics: Mapping[str, int]) -> int:
    return round_half_up(
        metrics["cap_health"] * COMPOSITE_WEIGHTS["cap_health"]
        + metrics["roster_strength"] * COMPOSITE_WEIGHTS["roster_strength"]
        + metrics["flexibility"] * COMPOSITE_WEIGHTS["flexibility"]
        + metrics["player_relations"] * COMPOSITE_WEIGHTS["player_relations"]
        + metrics["franchise_value_growth"] * COMPOSITE_WEIGHTS["franchise_value_growth"]
    )


def composite_formula_string(metrics: Mapping[str, int]) -> str:
    return (
        "composite = round("
        f"{metrics['cap_health']}*0.25 + "
        f"{metrics['roster_strength']}*0.20 + "
        f"{metrics['flexibility']}*0.20 + "
        f"{metrics['player_relations']}*0.15 + "
        f"{metrics['franchise_value_growth']}*0.20"
        ")"
    )
