from __future__ import annotations

import pytest

from caprun.contracts import Difficulty, Finances, MissionOption
from caprun.core import (
    LcgRandomSource,
    get_difficulty_config,
    get_learner_tuning,
    normalize_seed,
    parse_difficulty,
)
from caprun.rules import (
    apply_deadline_pressure,
    apply_financial_deltas,
    apply_metric_deltas,
    calculate_composite,
    check_legality,
    clamp_metric,
    composite_formula_string,
    empty_metric_deltas,
    evaluate_gates,
    gate_flags_text,
    in_final_third,
    round_half_up,
    round_tenth,
    tune_learner_option,
)
from tests.helpers import flat_metrics


def _option(cap: float, dead: float, **deltas: int) -> MissionOption:
    return MissionOption(
        id="A",
        label="test",
        summary_kid="",
        summary_front_office="",
        cap_delta_m=cap,
        dead_cap_delta_m=dead,
        metric_deltas=empty_metric_deltas(**deltas),
    )


def test_composite_matches_weighted_model():
    metrics = {
        "cap_health": 70,
        "roster_strength": 80,
        "flexibility": 60,
        "player_relations": 75,
        "franchise_value_growth": 90,
    }
    assert calculate_composite(metrics) == 75
    assert composite_formula_string(metrics).startswith("composite = round(70*0.25")


def test_rounding_is_half_up_for_negatives():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(-3.12) == -3
    assert round_tenth(-12.75) == -12.7
    assert round_tenth(8.375) == 8.4


def test_metrics_clamp_per_key():
    assert clamp_metric(104.2) == 100
    assert clamp_metric(-3) == 0
    updated = apply_metric_deltas(flat_metrics(98), empty_metric_deltas(cap_health=5, flexibility=-2))
    assert updated["cap_health"] == 100
    assert updated["flexibility"] == 96
    assert updated["roster_strength"] == 98


def test_financial_deltas_round_to_tenth():
    result = apply_financial_deltas(Finances(12.1, 18.4), -7.5, 0.04)
    assert result == Finances(cap_space_m=4.6, dead_cap_m=18.4)


def test_legality_flags_negative_cap_and_dead_cap_ceiling():
    finances = Finances(cap_space_m=1.0, dead_cap_m=84.0)
    assert check_legality(finances, _option(-1.0, 1.0)).legal

    verdict = check_legality(finances, _option(-1.1, 1.1))
    assert not verdict.legal
    assert len(verdict.reasons) == 2
    assert verdict.projected == Finances(cap_space_m=-0.1, dead_cap_m=85.1)


def test_deadline_pressure_scales_only_unfavorable_terms():
    option = _option(-10.2, 6.7, cap_health=-8, roster_strength=4, flexibility=-7, player_relations=8)
    pressured = apply_deadline_pressure(option, 1.25)
    assert pressured.metric_deltas["cap_health"] == -10
    assert pressured.metric_deltas["flexibility"] == -9
    assert pressured.metric_deltas["roster_strength"] == 4
    assert pressured.metric_deltas["player_relations"] == 8
    assert pressured.cap_delta_m == -12.7
    assert pressured.dead_cap_delta_m == 8.4

    favorable = apply_deadline_pressure(_option(5.6, -1.0, cap_health=4), 1.5)
    assert favorable.cap_delta_m == 5.6
    assert favorable.dead_cap_delta_m == -1.0
    assert option.cap_delta_m == -10.2


def test_final_third_boundaries():
    assert not in_final_third(5, 9)
    assert in_final_third(6, 9)
    assert not in_final_third(3, 6)
    assert in_final_third(4, 6)
    assert in_final_third(8, 12)


def test_rookie_tuning_softens_costs_and_boosts_gains():
    option = _option(-7.5, 4.2, cap_health=-4, roster_strength=4, flexibility=-5, player_relations=6, franchise_value_growth=2)
    tuned = tune_learner_option(option, get_learner_tuning(Difficulty.ROOKIE))
    assert dict(tuned.metric_deltas) == {
        "cap_health": -3,
        "roster_strength": 5,
        "flexibility": -4,
        "player_relations": 7,
        "franchise_value_growth": 2,
    }
    assert tuned.cap_delta_m == -6.1
    assert tuned.dead_cap_delta_m == 3.4


@pytest.mark.parametrize(
    ("difficulty", "learner", "passes"),
    [
        (Difficulty.ROOKIE, 80, True),
        (Difficulty.PRO, 80, False),
        (Difficulty.PRO, 83, True),
        (Difficulty.LEGEND, 80, False),
        (Difficulty.LEGEND, 85, True),
    ],
)
def test_ai_margin_thresholds(difficulty: Difficulty, learner: int, passes: bool):
    gates = evaluate_gates(
        legal_pass=True,
        learner_metrics=flat_metrics(learner),
        ai_metrics=flat_metrics(80),
        config=get_difficulty_config(difficulty),
    )
    assert gates.margin == learner - 80
    assert gates.ai_margin_gate is passes


def test_difficulty_gate_checks():
    pro = get_difficulty_config(Difficulty.PRO)
    metrics = flat_metrics(90)
    metrics["cap_health"] = 50
    gates = evaluate_gates(legal_pass=True, learner_metrics=metrics, ai_metrics=flat_metrics(60), config=pro)
    assert gates.learner_composite >= pro.min_composite
    assert not gates.checks.min_cap_health
    assert not gates.difficulty_gate
    assert not gates.cleared

    legend = get_difficulty_config(Difficulty.LEGEND)
    metrics = flat_metrics(95)
    metrics["player_relations"] = 45
    gates = evaluate_gates(legal_pass=True, learner_metrics=metrics, ai_metrics=flat_metrics(60), config=legend)
    assert not gates.checks.min_any_metric
    assert gates.checks.min_cap_health


def test_gate_flags_text():
    assert gate_flags_text(None) == "pending"
    gates = evaluate_gates(
        legal_pass=False,
        learner_metrics=flat_metrics(80),
        ai_metrics=flat_metrics(80),
        config=get_difficulty_config(Difficulty.ROOKIE),
    )
    assert gate_flags_text(gates) == "legal:fail|difficulty:pass|ai_margin:pass"
    assert not gates.cleared


def test_parse_difficulty_accepts_only_canonical_keys():
    assert parse_difficulty("PRO") == Difficulty.PRO
    assert parse_difficulty(Difficulty.LEGEND) == Difficulty.LEGEND
    with pytest.raises(ValueError):
        parse_difficulty("ALL_MADDEN")
    with pytest.raises(ValueError):
        parse_difficulty("pro")
    with pytest.raises(ValueError):
        get_difficulty_config("legend")
    with pytest.raises(ValueError):
        parse_difficulty(None)


def test_difficulty_tables():
    assert [get_difficulty_config(d).xp_base for d in Difficulty] == [50, 100, 150]
    assert [get_difficulty_config(d).mission_count for d in Difficulty] == [6, 9, 12]
    assert [get_difficulty_config(d).event_count for d in Difficulty] == [2, 3, 4]


def test_lcg_stream_is_reproducible():
    assert normalize_seed(0) == 1
    assert normalize_seed(2**32 + 5) == 5
    a = LcgRandomSource(2**32)
    b = LcgRandomSource(1)
    assert a.rand() == b.rand() == 1015568748 / 2**32
    assert [a.rand() for _ in range(5)] == [b.rand() for _ in range(5)]
    assert a.draws == 6


def test_lcg_choice_is_one_draw():
    items = ["a", "b", "c", "d"]
    a = LcgRandomSource(9)
    b = LcgRandomSource(9)
    assert a.choice(items) == items[int(b.rand() * len(items))]
    assert a.draws == 1
    with pytest.raises(ValueError):
        a.choice([])
