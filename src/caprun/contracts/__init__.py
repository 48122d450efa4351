from .types import (
    LEDGER_COLUMNS,
    METRIC_KEYS,
    ROLE_SEQUENCE,
    ActionRequest,
    ActionResult,
    ActionType,
    AIProfile,
    AIStyle,
    BacklogMission,
    Citation,
    CoreContract,
    Difficulty,
    DifficultyConfig,
    EventLogEntry,
    Finances,
    ForensicArtifact,
    GateChecks,
    GateResult,
    Hint,
    HintLevel,
    LearnerDecision,
    LearnerTuning,
    LedgerRow,
    LegalityResult,
    Mission,
    MissionHints,
    MissionOption,
    NarrativeEvent,
    Participant,
    ParticipantChoice,
    PendingTurn,
    RandomSource,
    ResourceManifest,
    Role,
    RunEvent,
    RunResult,
    SubmissionResult,
    TeamSnapshot,
    TurnPhase,
    Urgency,
    ValidationError,
    ValidationIssue,
    metric_row,
)

__all__ = [
    "LEDGER_COLUMNS",
    "METRIC_KEYS",
    "ROLE_SEQUENCE",
    "AIProfile",
    "AIStyle",
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "BacklogMission",
    "Citation",
    "CoreContract",
    "Difficulty",
    "DifficultyConfig",
    "EventLogEntry",
    "Finances",
    "ForensicArtifact",
    "GateChecks",
    "GateResult",
    "Hint",
    "HintLevel",
    "LearnerDecision",
    "LearnerTuning",
    "LedgerRow",
    "LegalityResult",
    "Mission",
    "MissionHints",
    "MissionOption",
    "NarrativeEvent",
    "Participant",
    "ParticipantChoice",
    "PendingTurn",
    "RandomSource",
    "ResourceManifest",
    "Role",
    "RunEvent",
    "RunResult",
    "SubmissionResult",
    "TeamSnapshot",
    "TurnPhase",
    "Urgency",
    "ValidationError",
    "ValidationIssue",
    "metric_row",
]
