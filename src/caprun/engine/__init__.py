from .hints import adaptive_hint, weakest_metric
from .ledger import (
    build_decision_row,
    build_summary_row,
    compute_review_checksum,
    create_claim_code,
    serialize_metric_deltas,
)
from .run import RunEngine, RunState, format_timestamp, participant_from_team

__all__ = [
    "RunEngine",
    "RunState",
    "adaptive_hint",
    "build_decision_row",
    "build_summary_row",
    "compute_review_checksum",
    "create_claim_code",
    "format_timestamp",
    "participant_from_team",
    "serialize_metric_deltas",
    "weakest_metric",
]
