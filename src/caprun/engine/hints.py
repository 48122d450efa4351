from __future__ import annotations

from caprun.contracts import METRIC_KEYS, Hint, Mission
from caprun.engine.run import RunState
from caprun.rules import evaluate_run_gates

RECENT_ROW_WINDOW = 4
CAP_STRESS_SPACE_M = 3
CAP_STRESS_DEAD_M = 120
WEAK_METRIC_THRESHOLD = 58

FALLBACK_KID = "Pick the option that keeps balance across money, talent, and trust."
FALLBACK_FRONT_OFFICE = (
    "Run a quick tradeoff check: cap effect, dead-cap effect, and net composite impact before locking the decision."
)

METRIC_TEXT: dict[str, tuple[str, str]] = {
    "cap_health": (
        "You are getting close to running out of safe money space.",
        "Cap health is trending down. Prefer options that preserve current-year cap and avoid dead-cap spikes.",
    ),
    "roster_strength": (
        "Your team talent score is dropping.",
        "Roster strength is softening. Protect impact positions while avoiding panic overpay.",
    ),
    "flexibility": (
        "Future choices are getting tighter.",
        "Flexibility is shrinking. Avoid stacking guarantees that reduce next-year decision room.",
    ),
    "player_relations": (
        "Player trust is slipping.",
        "Relations are under pressure. Balance cap discipline with communication and fair structure.",
    ),
    "franchise_value_growth": (
        "Business growth is slowing down.",
        "Franchise value momentum is cooling. Favor stable growth over short-term noise.",
    ),
}


def weakest_metric(metrics: dict[str, int]) -> str:
    weakest = METRIC_KEYS[0]
    for key in METRIC_KEYS:
        if metrics[key] < metrics[weakest]:
            weakest = key
    return weakest


def has_recent_legal_fail(run: RunState) -> bool:
    return any(row.legal is False for row in run.run_log[-RECENT_ROW_WINDOW:])


def adaptive_hint(run: RunState, mission: Mission | None = None) -> Hint:
    """Coaching hint for the learner's next decision, most urgent trigger first."""
    if has_recent_legal_fail(run) or not run.legal_pass:
        return Hint(
            trigger="recent-legal-fail",
            kid="Pick a safer money option next. Do not go below zero cap space.",
            front_office=(
                "Recent legality risk detected. Prioritize cap-positive or cap-neutral options and contain dead-cap growth."
            ),
        )

    finances = run.learner.finances
    if finances.cap_space_m <= CAP_STRESS_SPACE_M or finances.dead_cap_m >= CAP_STRESS_DEAD_M:
        return Hint(
            trigger="cap-stress",
            kid="Your money room is tight. Choose the option that protects cap safety.",
            front_office="Cap stress is elevated. Weight cap health and flexibility over marginal short-term upgrades.",
        )

    gates = evaluate_run_gates(run)
    if gates.margin < gates.margin_required:
        return Hint(
            trigger="ai-margin-pressure",
            kid="You need to beat the AI by more points. Choose a stronger overall move.",
            front_office=(
                "AI margin gate is currently behind target. Favor balanced composite gains instead of one-metric spikes."
            ),
        )

    weak = weakest_metric(run.learner.metrics)
    if run.learner.metrics[weak] < WEAK_METRIC_THRESHOLD:
        kid, front_office = METRIC_TEXT[weak]
        return Hint(trigger=f"weak-{weak}", kid=kid, front_office=front_office)

    target = mission if mission is not None else run.current_mission()
    kid = target.hints.for_level(run.difficulty_config.hint_level) if target is not None else FALLBACK_KID
    return Hint(trigger="difficulty-default", kid=kid or FALLBACK_KID, front_office=FALLBACK_FRONT_OFFICE)
