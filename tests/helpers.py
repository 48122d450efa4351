from __future__ import annotations

from datetime import UTC, datetime

from caprun.contracts import METRIC_KEYS, ActionRequest, ActionResult, ActionType
from caprun.core import make_id
from caprun.engine import RunEngine

FIXED_TIME = datetime(2025, 9, 7, 17, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_TIME


def flat_metrics(value: int) -> dict[str, int]:
    return {key: value for key in METRIC_KEYS}


def start_run(team_id: str = "KC", difficulty: str = "ROOKIE", seed: int = 123) -> RunEngine:
    return RunEngine.create(team_id, difficulty, seed, clock=fixed_clock)


def play_through(engine: RunEngine, option_index: int = 0, inject_events: bool = True) -> None:
    while True:
        mission = engine.current_mission()
        if mission is None:
            break
        engine.submit_learner_option(mission.id, mission.options[option_index].id)
        engine.apply_ai_choice()
        if inject_events:
            engine.maybe_inject_event()


def play_turns(engine: RunEngine, turns: int, option_index: int = 0) -> None:
    for _ in range(turns):
        mission = engine.current_mission()
        assert mission is not None
        engine.submit_learner_option(mission.id, mission.options[option_index].id)
        engine.apply_ai_choice()


def run_action(runtime, action_type: ActionType | str, payload: dict | None = None) -> ActionResult:
    return runtime.handle_action(ActionRequest(make_id("req"), action_type, payload or {}))


def start_runtime_run(runtime, team_id: str = "KC", difficulty: str = "ROOKIE", seed: int = 123) -> ActionResult:
    result = run_action(runtime, ActionType.START_RUN, {"team_id": team_id, "difficulty": difficulty, "seed": seed})
    if not result.success:
        raise RuntimeError(f"start_runtime_run failed: {result.message} data={result.data}")
    return result
