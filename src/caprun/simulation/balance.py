from __future__ import annotations

from dataclasses import dataclass

from caprun.catalog import CatalogResolver
from caprun.contracts import Difficulty, Mission, MissionOption, RandomSource, RunResult
from caprun.core import LcgRandomSource, parse_difficulty
from caprun.engine import RunEngine
from caprun.engine.run import RunState
from caprun.rules import check_legality

POLICIES = ("first", "best")
BALANCE_TEAMS = ("KC", "SF")
ILLEGAL_SCORE = -9999.0

BALANCE_WEIGHTS: dict[str, float] = {
    "cap_health": 0.28,
    "roster_strength": 0.2,
    "flexibility": 0.22,
    "player_relations": 0.15,
    "franchise_value_growth": 0.15,
}

# chance of taking the runner-up option instead of the top-scored one
RUNNER_UP_RATE: dict[Difficulty, float] = {
    Difficulty.ROOKIE: 0.18,
    Difficulty.PRO: 0.28,
    Difficulty.LEGEND: 0.36,
}


@dataclass(slots=True, frozen=True)
class BalanceReport:
    difficulty: Difficulty
    runs: int
    clear_rate: float
    legal_fail_rate: float
    margin_fail_rate: float
    difficulty_fail_rate: float


def score_option(option: MissionOption, state: RunState) -> float:
    if not check_legality(state.learner.finances, option).legal:
        return ILLEGAL_SCORE
    deltas = option.metric_deltas
    base = sum(deltas.get(key, 0) * weight for key, weight in BALANCE_WEIGHTS.items())
    cap_bias = 0.6 if option.cap_delta_m >= 0 else -0.4
    if state.difficulty == Difficulty.ROOKIE:
        return base + cap_bias + deltas.get("player_relations", 0) * 0.08
    if state.difficulty == Difficulty.LEGEND:
        return base + deltas.get("roster_strength", 0) * 0.08 - option.dead_cap_delta_m * 0.08
    return base + cap_bias * 0.5


def choose_best_option(state: RunState, mission: Mission, rand: RandomSource) -> MissionOption:
    scored = sorted(mission.options, key=lambda option: score_option(option, state), reverse=True)
    top = scored[:2]
    pick = 1 if rand.rand() < RUNNER_UP_RATE[state.difficulty] else 0
    return top[pick] if pick < len(top) else top[0]


def policy_random(seed: int) -> RandomSource:
    """Policy draws come from their own substream so they never shift run draws."""
    return LcgRandomSource(seed).spawn("balance-policy")


def pick_option(policy: str, state: RunState, mission: Mission, rand: RandomSource) -> MissionOption:
    if policy not in POLICIES:
        raise ValueError(f"Unknown policy: {policy}")
    if policy == "first":
        return mission.options[0]
    return choose_best_option(state, mission, rand)


class BalanceSimulator:
    """Autoplays whole runs with a fixed learner policy and tallies gate outcomes."""

    def __init__(self, catalog: CatalogResolver | None = None) -> None:
        self.catalog = catalog or CatalogResolver()

    def run_single(self, team_id: str, difficulty: Difficulty | str, seed: int, policy: str = "best") -> RunResult:
        if policy not in POLICIES:
            raise ValueError(f"Unknown policy: {policy}")
        engine = RunEngine.create(team_id, difficulty, seed, catalog=self.catalog)
        policy_rand = policy_random(seed)
        while True:
            mission = engine.current_mission()
            if mission is None:
                break
            option = pick_option(policy, engine.state, mission, policy_rand)
            engine.submit_learner_option(mission.id, option.id)
            engine.apply_ai_choice()
            engine.maybe_inject_event()
        return engine.finish_run()

    def run_batch(
        self,
        difficulty: Difficulty | str,
        runs: int = 400,
        base_seed: int = 1000,
        policy: str = "best",
    ) -> BalanceReport:
        if runs <= 0:
            raise ValueError("runs must be positive")
        resolved = parse_difficulty(difficulty)
        clears = legal_fails = margin_fails = difficulty_fails = 0
        for i in range(runs):
            team_id = BALANCE_TEAMS[i % len(BALANCE_TEAMS)]
            result = self.run_single(team_id, resolved, base_seed + i, policy)
            clears += result.cleared
            legal_fails += not result.legal_gate
            margin_fails += not result.ai_margin_gate
            difficulty_fails += not result.difficulty_gate

        def rate(count: int) -> float:
            return round(count / runs * 100, 2)

        return BalanceReport(
            difficulty=resolved,
            runs=runs,
            clear_rate=rate(clears),
            legal_fail_rate=rate(legal_fails),
            margin_fail_rate=rate(margin_fails),
            difficulty_fail_rate=rate(difficulty_fails),
        )
