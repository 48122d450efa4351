from __future__ import annotations

import math
from dataclasses import replace

from caprun.contracts import METRIC_KEYS, LearnerTuning, Mission, MissionOption
from caprun.rules.metrics import round_half_up, round_tenth


def in_final_third(index: int, total_missions: int) -> bool:
    return index >= math.ceil((total_missions * 2) / 3)


def apply_deadline_pressure(option: MissionOption, multiplier: float) -> MissionOption:
    """Scale only the unfavorable terms of ``option`` by ``multiplier``."""
    if multiplier == 1:
        return replace(option, metric_deltas=dict(option.metric_deltas))
    metric_deltas: dict[str, int] = {}
    for key in METRIC_KEYS:
        value = option.metric_deltas.get(key, 0)
        metric_deltas[key] = round_half_up(value * multiplier) if value < 0 else value
    return replace(
        option,
        cap_delta_m=round_tenth(option.cap_delta_m * multiplier) if option.cap_delta_m < 0 else option.cap_delta_m,
        dead_cap_delta_m=(
            round_tenth(option.dead_cap_delta_m * multiplier) if option.dead_cap_delta_m > 0 else option.dead_cap_delta_m
        ),
        metric_deltas=metric_deltas,
    )


def build_effective_mission(mission: Mission, multiplier: float, apply_pressure: bool) -> Mission:
    if not apply_pressure or multiplier == 1:
        options = tuple(replace(o, metric_deltas=dict(o.metric_deltas)) for o in mission.options)
    else:
        options = tuple(apply_deadline_pressure(o, multiplier) for o in mission.options)
    return replace(mission, options=options)


def tune_learner_option(option: MissionOption, tuning: LearnerTuning) -> MissionOption:
    """Amplify favorable moves and dampen unfavorable ones for the learner."""
    metric_deltas: dict[str, int] = {}
    for key, raw in option.metric_deltas.items():
        factor = tuning.positive_metric if raw >= 0 else tuning.negative_metric
        metric_deltas[key] = round_half_up(raw * factor)

    if option.cap_delta_m >= 0:
        cap_delta_m = round_tenth(option.cap_delta_m * tuning.cap_gain)
    else:
        cap_delta_m = round_tenth(option.cap_delta_m * tuning.cap_cost)

    dead_cap_delta_m = option.dead_cap_delta_m
    if dead_cap_delta_m > 0:
        dead_cap_delta_m = round_tenth(dead_cap_delta_m * tuning.dead_cap_increase)

    return replace(option, cap_delta_m=cap_delta_m, dead_cap_delta_m=dead_cap_delta_m, metric_deltas=metric_deltas)
