from __future__ import annotations

from caprun.contracts import Finances
from caprun.engine import adaptive_hint, weakest_metric
from tests.helpers import flat_metrics, play_turns, start_run


def test_default_hint_follows_tier_hint_level():
    rookie = start_run("KC", "ROOKIE", seed=1)
    hint = adaptive_hint(rookie.state)
    assert hint.trigger == "difficulty-default"
    assert hint.kid == rookie.current_mission().hints.rookie

    legend = start_run("KC", "LEGEND", seed=1)
    legend.state.learner.metrics = flat_metrics(90)
    hint = adaptive_hint(legend.state)
    assert hint.trigger == "difficulty-default"
    assert hint.kid == legend.current_mission().hints.legend


def test_margin_pressure_when_learner_trails():
    engine = start_run("SF", "ROOKIE", seed=2)
    assert adaptive_hint(engine.state).trigger == "ai-margin-pressure"

    pro = start_run("KC", "PRO", seed=2)
    assert pro.gates().margin == 2
    assert adaptive_hint(pro.state).trigger == "ai-margin-pressure"


def test_cap_stress_outranks_margin_pressure():
    engine = start_run("SF", "ROOKIE", seed=3)
    engine.state.learner.finances = Finances(cap_space_m=2.5, dead_cap_m=21.2)
    assert adaptive_hint(engine.state).trigger == "cap-stress"

    engine.state.learner.finances = Finances(cap_space_m=20.0, dead_cap_m=120.0)
    assert adaptive_hint(engine.state).trigger == "cap-stress"


def test_legal_failure_outranks_everything():
    engine = start_run("KC", "ROOKIE", seed=4)
    engine.state.learner.finances = Finances(cap_space_m=0.1, dead_cap_m=18.4)
    play_turns(engine, 1)
    hint = adaptive_hint(engine.state)
    assert hint.trigger == "recent-legal-fail"
    assert "zero cap space" in hint.kid


def test_weak_metric_hint_names_the_weakest_key():
    engine = start_run("KC", "ROOKIE", seed=5)
    engine.state.learner.metrics["flexibility"] = 50
    hint = adaptive_hint(engine.state)
    assert hint.trigger == "weak-flexibility"
    assert "Future choices" in hint.kid


def test_weakest_metric_prefers_first_key_on_ties():
    metrics = flat_metrics(60)
    metrics["player_relations"] = 40
    metrics["roster_strength"] = 40
    assert weakest_metric(metrics) == "roster_strength"
