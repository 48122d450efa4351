from .gates import evaluate_gates, evaluate_run_gates, gate_flags_text
from .legality import CAP_MIN_LIMIT_M, DEAD_CAP_SOFT_LIMIT_M, check_legality
from .metrics import (
    COMPOSITE_WEIGHTS,
    apply_financial_deltas,
    apply_metric_deltas,
    calculate_composite,
    clamp_metric,
    composite_formula_string,
    empty_metric_deltas,
    round_half_up,
    round_tenth,
)
from .tuning import apply_deadline_pressure, build_effective_mission, in_final_third, tune_learner_option

__all__ = [
    "CAP_MIN_LIMIT_M",
    "COMPOSITE_WEIGHTS",
    "DEAD_CAP_SOFT_LIMIT_M",
    "apply_deadline_pressure",
    "apply_financial_deltas",
    "apply_metric_deltas",
    "build_effective_mission",
    "calculate_composite",
    "check_legality",
    "clamp_metric",
    "composite_formula_string",
    "empty_metric_deltas",
    "evaluate_gates",
    "evaluate_run_gates",
    "gate_flags_text",
    "in_final_third",
    "round_half_up",
    "round_tenth",
    "tune_learner_option",
]
