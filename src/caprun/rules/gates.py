from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from caprun.contracts import METRIC_KEYS, DifficultyConfig, GateChecks, GateResult
from caprun.rules.metrics import calculate_composite

if TYPE_CHECKING:
    from caprun.engine.run import RunState


def evaluate_gates(
    *,
    legal_pass: bool,
    learner_metrics: Mapping[str, int],
    ai_metrics: Mapping[str, int],
    config: DifficultyConfig,
) -> GateResult:
    learner_composite = calculate_composite(learner_metrics)
    ai_composite = calculate_composite(ai_metrics)
    margin = learner_composite - ai_composite

    min_composite = learner_composite >= config.min_composite
    min_cap_health = True
    if config.min_cap_health is not None:
        min_cap_health = learner_metrics["cap_health"] >= config.min_cap_health
    min_any_metric = True
    if config.min_any_metric is not None:
        min_any_metric = all(learner_metrics[key] >= config.min_any_metric for key in METRIC_KEYS)

    difficulty_gate = min_composite and min_cap_health and min_any_metric
    ai_margin_gate = margin >= config.ai_margin_required
    return GateResult(
        legal_gate=legal_pass,
        difficulty_gate=difficulty_gate,
        ai_margin_gate=ai_margin_gate,
        cleared=legal_pass and difficulty_gate and ai_margin_gate,
        margin=margin,
        margin_required=config.ai_margin_required,
        learner_composite=learner_composite,
        ai_composite=ai_composite,
        checks=GateChecks(
            min_composite=min_composite,
            min_cap_health=min_cap_health,
            min_any_metric=min_any_metric,
        ),
    )


def evaluate_run_gates(run: RunState) -> GateResult:
    """Gate snapshot for ``run``; safe to call mid-run and at finalization."""
    return evaluate_gates(
        legal_pass=run.legal_pass,
        learner_metrics=run.learner.metrics,
        ai_metrics=run.ai.metrics,
        config=run.difficulty_config,
    )


def gate_flags_text(gates: GateResult | None) -> str:
    if gates is None:
        return "pending"
    return "|".join(
        [
            f"legal:{'pass' if gates.legal_gate else 'fail'}",
            f"difficulty:{'pass' if gates.difficulty_gate else 'fail'}",
            f"ai_margin:{'pass' if gates.ai_margin_gate else 'fail'}",
        ]
    )
