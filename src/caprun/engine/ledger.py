from __future__ import annotations

import json
from typing import Mapping

from caprun.contracts import METRIC_KEYS, Difficulty, GateResult, LearnerDecision, LedgerRow, metric_row
from caprun.core.ids import to_base36
from caprun.rules import gate_flags_text

CLAIM_PREFIX = "M1-201-NFL"
CHECKSUM_PREFIX = "CHK"
SUMMARY_MISSION_ID = "RUN_SUMMARY"
SUMMARY_ROLE = "SUMMARY"
SUMMARY_OPTION_ID = "FINAL"
PENDING = "pending"


def serialize_metric_deltas(deltas: Mapping[str, int]) -> str:
    return json.dumps({key: deltas.get(key, 0) for key in METRIC_KEYS}, separators=(",", ":"))


def compute_review_checksum(
    *,
    run_id: str,
    difficulty: Difficulty,
    team_id: str,
    gates: GateResult,
    events_triggered: int,
    legal_pass: bool,
) -> str:
    """Order-dependent 32-bit string hash; tamper evidence only, not a MAC.

    The base36 digest is left-padded to six characters. Hashes at or above
    36**6 render as seven and are never truncated.
    """
    base = "|".join(
        [
            run_id,
            difficulty.value,
            team_id,
            str(gates.learner_composite),
            str(gates.ai_composite),
            str(gates.margin),
            str(events_triggered),
            "1" if legal_pass else "0",
        ]
    )
    value = 0
    for ch in base:
        value = (value * 31 + ord(ch)) % 2**32
    return f"{CHECKSUM_PREFIX}-{to_base36(value).rjust(6, '0')}"


def create_claim_code(
    *,
    difficulty: Difficulty,
    team_id: str,
    gates: GateResult,
    mission_index: int,
    events_triggered: int,
    seed: int,
) -> str | None:
    if not gates.cleared:
        return None
    hash_base = gates.learner_composite + gates.margin + mission_index + events_triggered
    suffix = to_base36(abs(hash_base * 137 + int(seed) * 17)).rjust(3, "0")[-3:]
    return f"{CLAIM_PREFIX}-{difficulty.value}-{team_id}-{suffix}"


def build_decision_row(
    *,
    timestamp: str,
    run_id: str,
    difficulty: Difficulty,
    learner_team: str,
    ai_team: str,
    mission_id: str,
    decision: LearnerDecision,
    gates: GateResult,
) -> LedgerRow:
    deltas = metric_row(decision.metric_deltas)
    return LedgerRow(
        timestamp=timestamp,
        run_id=run_id,
        difficulty=difficulty.value,
        learner_team=learner_team,
        ai_team=ai_team,
        mission_id=mission_id,
        role=decision.role.value,
        option_id=decision.option_id,
        legal=decision.legal,
        delta_cap_health=deltas["cap_health"],
        delta_roster_strength=deltas["roster_strength"],
        delta_flexibility=deltas["flexibility"],
        delta_player_relations=deltas["player_relations"],
        delta_franchise_value_growth=deltas["franchise_value_growth"],
        cap_delta_m=decision.cap_delta_m,
        dead_cap_delta_m=decision.dead_cap_delta_m,
        composite_after=decision.composite_after,
        gate_flags=gate_flags_text(gates),
        cleared=PENDING,
        claim_code="",
        review_checksum="",
        metric_deltas=serialize_metric_deltas(deltas),
    )


def build_summary_row(
    *,
    timestamp: str,
    run_id: str,
    difficulty: Difficulty,
    learner_team: str,
    ai_team: str,
    gates: GateResult,
    claim_code: str | None,
    review_checksum: str,
) -> LedgerRow:
    zero = metric_row({})
    return LedgerRow(
        timestamp=timestamp,
        run_id=run_id,
        difficulty=difficulty.value,
        learner_team=learner_team,
        ai_team=ai_team,
        mission_id=SUMMARY_MISSION_ID,
        role=SUMMARY_ROLE,
        option_id=SUMMARY_OPTION_ID,
        legal=gates.legal_gate,
        delta_cap_health=0,
        delta_roster_strength=0,
        delta_flexibility=0,
        delta_player_relations=0,
        delta_franchise_value_growth=0,
        cap_delta_m=0.0,
        dead_cap_delta_m=0.0,
        composite_after=gates.learner_composite,
        gate_flags=gate_flags_text(gates),
        cleared=gates.cleared,
        claim_code=claim_code or "",
        review_checksum=review_checksum,
        metric_deltas=serialize_metric_deltas(zero),
    )
