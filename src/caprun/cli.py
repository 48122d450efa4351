from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from caprun.contracts import ActionRequest, ActionResult, ActionType, Difficulty
from caprun.core import make_id
from caprun.simulation import BalanceSimulator, RunRuntime
from caprun.simulation.balance import POLICIES, pick_option, policy_random


def _request(runtime: RunRuntime, action: ActionType, payload: dict | None = None) -> ActionResult:
    result = runtime.handle_action(ActionRequest(make_id("req"), action, payload or {}))
    if not result.success:
        raise RuntimeError(f"{action.value} failed: {result.message} {result.data}")
    return result


def autoplay(runtime: RunRuntime, team_id: str, difficulty: str, seed: int | None, policy: str) -> ActionResult:
    started = _request(runtime, ActionType.START_RUN, {"team_id": team_id, "difficulty": difficulty, "seed": seed})
    print(started.message)
    engine = runtime.engine
    if engine is None:
        raise RuntimeError("start_run did not create a run")
    policy_rand = policy_random(engine.state.seed)
    while True:
        mission = engine.current_mission()
        if mission is None:
            break
        option = pick_option(policy, engine.state, mission, policy_rand)
        turn = _request(runtime, ActionType.PLAY_TURN, {"mission_id": mission.id, "option_id": option.id})
        print(
            f"{turn.data['mission_id']}: learner {turn.data['learner_option_id']}"
            f"{'' if turn.data['learner_legal'] else ' (illegal)'} / AI {turn.data['ai_option_id']}"
            f"{' / event ' + turn.data['event_id'] if turn.data['event_id'] else ''}"
        )
    finished = _request(runtime, ActionType.FINISH_RUN)
    print(finished.message)
    print(json.dumps(finished.data, indent=2, default=str))
    return finished


def main() -> None:
    parser = argparse.ArgumentParser(description="Front-office cap run engine")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="runtime root directory")
    parser.add_argument("--seed", type=int, default=None, help="seed for deterministic runs")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("play", "autoplay one run"), ("export", "autoplay one run and export its ledger")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--team", default="KC", help="learner team id")
        cmd.add_argument("--difficulty", default=Difficulty.ROOKIE.value, help="ROOKIE, PRO or LEGEND")
        cmd.add_argument("--policy", choices=POLICIES, default="first", help="learner option policy")

    balance = sub.add_parser("balance", help="batch clear-rate statistics")
    balance.add_argument("--difficulty", default=None, help="limit to one difficulty")
    balance.add_argument("--runs", type=int, default=400, help="runs per difficulty")
    balance.add_argument("--policy", choices=POLICIES, default="best", help="learner option policy")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "balance":
        simulator = BalanceSimulator()
        difficulties = [args.difficulty] if args.difficulty else [d.value for d in Difficulty]
        base_seed = args.seed if args.seed is not None else 1000
        reports = [simulator.run_batch(d, runs=args.runs, base_seed=base_seed, policy=args.policy) for d in difficulties]
        print(json.dumps([asdict(r) for r in reports], indent=2, default=str))
        return

    runtime = RunRuntime(root=args.root, seed=args.seed)
    autoplay(runtime, args.team, args.difficulty, args.seed, args.policy)
    if args.command == "export":
        exported = _request(runtime, ActionType.EXPORT_RUN)
        for path in exported.data["paths"]:
            print(path)


if __name__ == "__main__":
    main()
