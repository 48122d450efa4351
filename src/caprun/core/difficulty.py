from __future__ import annotations

from caprun.contracts import AIStyle, Difficulty, DifficultyConfig, HintLevel, LearnerTuning


def default_difficulty_configs() -> dict[Difficulty, DifficultyConfig]:
    return {
        Difficulty.ROOKIE: DifficultyConfig(
            name=Difficulty.ROOKIE,
            mission_count=6,
            event_count=2,
            deadline_pressure_multiplier=1.0,
            ai_margin_required=0,
            xp_base=50,
            min_composite=60,
            min_cap_health=None,
            min_any_metric=None,
            hint_level=HintLevel.HIGH,
            ai_style=AIStyle.CONSERVATIVE,
        ),
        Difficulty.PRO: DifficultyConfig(
            name=Difficulty.PRO,
            mission_count=9,
            event_count=3,
            deadline_pressure_multiplier=1.25,
            ai_margin_required=3,
            xp_base=100,
            min_composite=70,
            min_cap_health=55,
            min_any_metric=None,
            hint_level=HintLevel.MEDIUM,
            ai_style=AIStyle.BALANCED,
        ),
        Difficulty.LEGEND: DifficultyConfig(
            name=Difficulty.LEGEND,
            mission_count=12,
            event_count=4,
            deadline_pressure_multiplier=1.5,
            ai_margin_required=5,
            xp_base=150,
            min_composite=80,
            min_cap_health=None,
            min_any_metric=50,
            hint_level=HintLevel.LOW,
            ai_style=AIStyle.AGGRESSIVE,
        ),
    }


def default_learner_tuning() -> dict[Difficulty, LearnerTuning]:
    return {
        Difficulty.ROOKIE: LearnerTuning(
            positive_metric=1.22,
            negative_metric=0.78,
            cap_gain=1.15,
            cap_cost=0.82,
            dead_cap_increase=0.8,
        ),
        Difficulty.PRO: LearnerTuning(
            positive_metric=1.1,
            negative_metric=0.88,
            cap_gain=1.08,
            cap_cost=0.9,
            dead_cap_increase=0.88,
        ),
        Difficulty.LEGEND: LearnerTuning(
            positive_metric=1.2,
            negative_metric=0.86,
            cap_gain=1.08,
            cap_cost=0.9,
            dead_cap_increase=0.86,
        ),
    }


def parse_difficulty(value: Difficulty | str | None) -> Difficulty:
    if value is None or value == "":
        raise ValueError("difficulty is required")
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(str(value))
    except ValueError as exc:
        raise ValueError(f"Unknown difficulty: {value}") from exc


def get_difficulty_config(value: Difficulty | str) -> DifficultyConfig:
    difficulty = parse_difficulty(value)
    config = default_difficulty_configs()[difficulty]
    config.validate()
    return config


def get_learner_tuning(value: Difficulty | str) -> LearnerTuning:
    return default_learner_tuning()[parse_difficulty(value)]
