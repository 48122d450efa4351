from __future__ import annotations

import pytest

from caprun.contracts import Difficulty
from caprun.cli import autoplay
from caprun.simulation import BalanceSimulator, RunRuntime
from caprun.simulation.balance import pick_option, policy_random
from tests.helpers import play_through, start_run


def test_first_policy_matches_direct_engine_run():
    simulator = BalanceSimulator()
    result = simulator.run_single("KC", "PRO", seed=321, policy="first")

    engine = start_run("KC", "PRO", seed=321)
    play_through(engine)
    direct = engine.finish_run()
    assert result.review_checksum == direct.review_checksum
    assert result.learner_metrics == direct.learner_metrics
    assert result.claim_code == direct.claim_code


def test_best_policy_is_reproducible_per_seed():
    simulator = BalanceSimulator()
    a = simulator.run_single("SF", "LEGEND", seed=1001)
    b = simulator.run_single("SF", "LEGEND", seed=1001)
    assert a == b


def test_batch_rates_are_percentages():
    report = BalanceSimulator().run_batch("ROOKIE", runs=4, base_seed=1000)
    assert report.difficulty == Difficulty.ROOKIE
    assert report.runs == 4
    for rate in (report.clear_rate, report.legal_fail_rate, report.margin_fail_rate, report.difficulty_fail_rate):
        assert 0 <= rate <= 100
        assert rate % 25 == 0


def test_batch_guards():
    simulator = BalanceSimulator()
    with pytest.raises(ValueError):
        simulator.run_batch("PRO", runs=0)
    with pytest.raises(ValueError):
        simulator.run_single("KC", "PRO", seed=1, policy="random")


def test_cli_autoplay_follows_the_simulator_policy(tmp_path, capsys):
    direct = BalanceSimulator().run_single("KC", "PRO", seed=31, policy="best")
    finished = autoplay(RunRuntime(tmp_path, seed=31), "KC", "PRO", 31, "best")

    assert finished.data["review_checksum"] == direct.review_checksum
    assert finished.data["learner_metrics"] == dict(direct.learner_metrics)
    assert finished.data["claim_code"] == direct.claim_code
    assert "run" in capsys.readouterr().out


def test_pick_option_rejects_unknown_policy():
    engine = start_run("KC", "ROOKIE", seed=5)
    mission = engine.current_mission()
    assert pick_option("first", engine.state, mission, policy_random(5)) == mission.options[0]
    with pytest.raises(ValueError):
        pick_option("random", engine.state, mission, policy_random(5))
