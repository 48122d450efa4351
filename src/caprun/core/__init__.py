from .difficulty import (
    default_difficulty_configs,
    default_learner_tuning,
    get_difficulty_config,
    get_learner_tuning,
    parse_difficulty,
)
from .errors import (
    EngineIntegrityError,
    NoMissionRemainingError,
    NoPendingTurnError,
    RunFinishedError,
    RunIncompleteError,
    RunStateError,
    StaleMissionError,
    TurnPendingError,
    UnknownOptionError,
    build_forensic_artifact,
    persist_forensic_artifact,
)
from .events import EventBus
from .ids import make_id, make_run_id, now_utc, to_base36
from .randomness import LcgRandomSource, normalize_seed, wall_clock_seed

__all__ = [
    "EngineIntegrityError",
    "EventBus",
    "LcgRandomSource",
    "NoMissionRemainingError",
    "NoPendingTurnError",
    "RunFinishedError",
    "RunIncompleteError",
    "RunStateError",
    "StaleMissionError",
    "TurnPendingError",
    "UnknownOptionError",
    "build_forensic_artifact",
    "default_difficulty_configs",
    "default_learner_tuning",
    "get_difficulty_config",
    "get_learner_tuning",
    "make_id",
    "make_run_id",
    "normalize_seed",
    "now_utc",
    "parse_difficulty",
    "persist_forensic_artifact",
    "to_base36",
    "wall_clock_seed",
]
