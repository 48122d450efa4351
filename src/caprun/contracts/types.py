from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

METRIC_KEYS: tuple[str, ...] = (
    "cap_health",
    "roster_strength",
    "flexibility",
    "player_relations",
    "franchise_value_growth",
)


class Difficulty(str, Enum):
    ROOKIE = "ROOKIE"
    PRO = "PRO"
    LEGEND = "LEGEND"


class Role(str, Enum):
    AGENT = "AGENT"
    LEAGUE_OFFICE = "LEAGUE_OFFICE"
    OWNER = "OWNER"


ROLE_SEQUENCE: tuple[Role, ...] = (Role.AGENT, Role.LEAGUE_OFFICE, Role.OWNER)


class Urgency(str, Enum):
    NORMAL = "normal"
    DEADLINE = "deadline"


class AIStyle(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class HintLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TurnPhase(str, Enum):
    AWAITING_LEARNER = "awaiting_learner"
    AWAITING_AI = "awaiting_ai"


class ActionType(str, Enum):
    START_RUN = "start_run"
    GET_STATE = "get_state"
    GET_HINT = "get_hint"
    SUBMIT_OPTION = "submit_option"
    APPLY_AI = "apply_ai"
    INJECT_EVENT = "inject_event"
    PLAY_TURN = "play_turn"
    FINISH_RUN = "finish_run"
    EXPORT_RUN = "export_run"


class RandomSource(Protocol):
    def rand(self) -> float: ...

    def choice(self, items: Sequence[Any]) -> Any: ...

    def spawn(self, substream_id: str) -> RandomSource: ...


def metric_row(values: Mapping[str, int]) -> dict[str, int]:
    return {key: int(values.get(key, 0)) for key in METRIC_KEYS}


@dataclass(slots=True, frozen=True)
class Finances:
    cap_space_m: float
    dead_cap_m: float


@dataclass(slots=True, frozen=True)
class DifficultyConfig:
    name: Difficulty
    mission_count: int
    event_count: int
    deadline_pressure_multiplier: float
    ai_margin_required: int
    xp_base: int
    min_composite: int
    min_cap_health: int | None
    min_any_metric: int | None
    hint_level: HintLevel
    ai_style: AIStyle

    def validate(self) -> None:
        if self.mission_count <= 0 or self.event_count < 0:
            raise ValueError(f"{self.name.value}: mission and event counts must be positive")
        if self.deadline_pressure_multiplier <= 0:
            raise ValueError(f"{self.name.value}: deadline pressure multiplier must be positive")
        if self.xp_base <= 0:
            raise ValueError(f"{self.name.value}: xp_base must be positive")
        if self.min_cap_health is not None and self.min_any_metric is not None:
            raise ValueError(f"{self.name.value}: min_cap_health and min_any_metric are mutually exclusive")


@dataclass(slots=True, frozen=True)
class LearnerTuning:
    positive_metric: float
    negative_metric: float
    cap_gain: float
    cap_cost: float
    dead_cap_increase: float


@dataclass(slots=True, frozen=True)
class AIProfile:
    style: AIStyle
    legal_penalty: float
    cap_weight: float
    roster_weight: float
    flex_weight: float
    relations_weight: float
    value_weight: float
    noise: float

    def weights(self) -> dict[str, float]:
        return {
            "cap_health": self.cap_weight,
            "roster_strength": self.roster_weight,
            "flexibility": self.flex_weight,
            "player_relations": self.relations_weight,
            "franchise_value_growth": self.value_weight,
        }


@dataclass(slots=True, frozen=True)
class MissionOption:
    id: str
    label: str
    summary_kid: str
    summary_front_office: str
    cap_delta_m: float
    dead_cap_delta_m: float
    metric_deltas: Mapping[str, int]
    citation_ids: tuple[str, ...] = ()
    tuning_tags: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class MissionHints:
    rookie: str
    pro: str
    legend: str

    def for_level(self, level: HintLevel) -> str:
        if level == HintLevel.HIGH:
            return self.rookie
        if level == HintLevel.LOW:
            return self.legend
        return self.pro


@dataclass(slots=True, frozen=True)
class Mission:
    id: str
    role: Role
    zone: str
    urgency: Urgency
    title: str
    description: str
    hints: MissionHints
    options: tuple[MissionOption, ...]
    citation_ids: tuple[str, ...] = ()

    def option(self, option_id: str) -> MissionOption | None:
        return next((o for o in self.options if o.id == option_id), None)


@dataclass(slots=True, frozen=True)
class BacklogMission:
    id: str
    role: Role
    zone: str
    urgency: Urgency
    title: str
    description: str
    learning_objective: str
    status: str


@dataclass(slots=True, frozen=True)
class RunEvent:
    id: str
    title: str
    description: str
    type: str
    cap_delta_m: float
    dead_cap_delta_m: float
    metric_deltas: Mapping[str, int]
    citation_ids: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class CoreContract:
    player: str
    cap_hit_m: float
    dead_cap_m: float
    citation_id: str


@dataclass(slots=True, frozen=True)
class TeamSnapshot:
    id: str
    display_name: str
    season: int
    cap_space_m: float
    dead_cap_m: float
    core_contracts: tuple[CoreContract, ...]
    dead_cap_drivers: tuple[str, ...]
    initial_metrics: Mapping[str, int]
    field_citations: Mapping[str, tuple[str, ...]]


@dataclass(slots=True, frozen=True)
class Citation:
    id: str
    label: str
    field_group: str
    url: str


@dataclass(slots=True, frozen=True)
class LegalityResult:
    legal: bool
    reasons: tuple[str, ...]
    projected: Finances


@dataclass(slots=True, frozen=True)
class GateChecks:
    min_composite: bool
    min_cap_health: bool
    min_any_metric: bool


@dataclass(slots=True, frozen=True)
class GateResult:
    legal_gate: bool
    difficulty_gate: bool
    ai_margin_gate: bool
    cleared: bool
    margin: int
    margin_required: int
    learner_composite: int
    ai_composite: int
    checks: GateChecks


@dataclass(slots=True)
class ParticipantChoice:
    mission_id: str
    option_id: str
    legal: bool
    reasons: tuple[str, ...]


@dataclass(slots=True)
class Participant:
    team_id: str
    team_name: str
    finances: Finances
    metrics: dict[str, int]
    composite: int
    last_choice: ParticipantChoice | None = None


@dataclass(slots=True, frozen=True)
class LearnerDecision:
    role: Role
    option_id: str
    legal: bool
    cap_delta_m: float
    dead_cap_delta_m: float
    metric_deltas: Mapping[str, int]
    composite_after: int


@dataclass(slots=True, frozen=True)
class PendingTurn:
    effective_mission: Mission
    learner_decision: LearnerDecision


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    mission: Mission
    option: MissionOption
    legality: LegalityResult
    run_finished_by_progress: bool


@dataclass(slots=True, frozen=True)
class LedgerRow:
    timestamp: str
    run_id: str
    difficulty: str
    learner_team: str
    ai_team: str
    mission_id: str
    role: str
    option_id: str
    legal: bool
    delta_cap_health: int
    delta_roster_strength: int
    delta_flexibility: int
    delta_player_relations: int
    delta_franchise_value_growth: int
    cap_delta_m: float
    dead_cap_delta_m: float
    composite_after: int
    gate_flags: str
    cleared: bool | str
    claim_code: str
    review_checksum: str
    metric_deltas: str


LEDGER_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(LedgerRow))


@dataclass(slots=True, frozen=True)
class EventLogEntry:
    timestamp: str
    mission_checkpoint: int
    event_id: str
    event_type: str
    cap_delta_m: float
    dead_cap_delta_m: float
    metric_deltas: Mapping[str, int]


@dataclass(slots=True, frozen=True)
class RunResult:
    cleared: bool
    legal_gate: bool
    difficulty_gate: bool
    ai_margin_gate: bool
    margin: int
    margin_required: int
    learner_composite: int
    ai_composite: int
    checks: GateChecks
    xp_awarded: int
    claim_code: str | None
    difficulty: Difficulty
    run_id: str
    mission_count: int
    events_triggered: int
    learner_metrics: Mapping[str, int]
    ai_metrics: Mapping[str, int]
    review_checksum: str


@dataclass(slots=True, frozen=True)
class Hint:
    trigger: str
    kid: str
    front_office: str


@dataclass(slots=True)
class NarrativeEvent:
    event_id: str
    time: datetime
    scope: str
    event_type: str
    actors: list[str]
    claims: list[str]
    evidence_handles: list[str]
    severity: str


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any]


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResourceManifest:
    resource_type: str
    schema_version: str
    resource_version: str
    generated_at: str
    checksum: str


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.entity_id}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
