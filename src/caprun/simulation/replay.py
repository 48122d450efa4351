from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from caprun.contracts import ActionRequest, ActionType
from caprun.core import make_id
from caprun.simulation.runtime import RunRuntime

REPLAY_EPOCH = datetime(2025, 7, 15, tzinfo=UTC)


def replay_clock() -> datetime:
    return REPLAY_EPOCH


@dataclass(slots=True)
class ReplayAction:
    action_type: str
    payload: dict


class ReplayHarness:
    def __init__(self, seed: int) -> None:
        self.seed = seed
        self.actions: list[ReplayAction] = []

    def record(self, action_type: ActionType | str, payload: dict | None = None) -> None:
        value = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        self.actions.append(ReplayAction(action_type=value, payload=dict(payload or {})))

    def save(self, path: Path) -> None:
        path.write_text(
            json.dumps({"seed": self.seed, "actions": [asdict(a) for a in self.actions]}, indent=2),
            encoding="utf-8",
        )

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        harness = ReplayHarness(seed=int(data["seed"]))
        for raw in data["actions"]:
            harness.actions.append(ReplayAction(action_type=raw["action_type"], payload=raw["payload"]))
        return harness

    def replay(self, root: Path) -> tuple[dict, dict]:
        runtime_a = RunRuntime(root=root / "replay_a", seed=self.seed, clock=replay_clock)
        runtime_b = RunRuntime(root=root / "replay_b", seed=self.seed, clock=replay_clock)

        for action in self.actions:
            runtime_a.handle_action(ActionRequest(make_id("req"), action.action_type, dict(action.payload)))
            runtime_b.handle_action(ActionRequest(make_id("req"), action.action_type, dict(action.payload)))

        return self._fingerprint(runtime_a), self._fingerprint(runtime_b)

    def _fingerprint(self, runtime: RunRuntime) -> dict:
        if runtime.engine is None:
            raise RuntimeError("replay runtime never started a run")
        state = runtime.engine.state
        return {
            "run_id": state.run_id,
            "mission_index": state.current_mission_index,
            "legal_pass": state.legal_pass,
            "learner_metrics": dict(state.learner.metrics),
            "ai_metrics": dict(state.ai.metrics),
            "learner_finances": asdict(state.learner.finances),
            "ai_finances": asdict(state.ai.finances),
            "event_ids": list(state.used_event_ids),
            "ledger": [asdict(row) for row in state.run_log],
            "final_result": asdict(state.final_result) if state.final_result else None,
        }
