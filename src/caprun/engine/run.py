from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from caprun.ai import AIOpponent, get_ai_profile
from caprun.catalog import CatalogResolver
from caprun.contracts import (
    Difficulty,
    DifficultyConfig,
    EventLogEntry,
    Finances,
    GateResult,
    LearnerDecision,
    LearnerTuning,
    LedgerRow,
    Mission,
    NarrativeEvent,
    Participant,
    ParticipantChoice,
    PendingTurn,
    RunEvent,
    RunResult,
    SubmissionResult,
    TeamSnapshot,
    TurnPhase,
    metric_row,
)
from caprun.core import (
    EventBus,
    LcgRandomSource,
    NoMissionRemainingError,
    NoPendingTurnError,
    RunFinishedError,
    RunIncompleteError,
    StaleMissionError,
    TurnPendingError,
    UnknownOptionError,
    get_difficulty_config,
    get_learner_tuning,
    make_id,
    make_run_id,
    now_utc,
    parse_difficulty,
    wall_clock_seed,
)
from caprun.engine.ledger import build_decision_row, build_summary_row, compute_review_checksum, create_claim_code
from caprun.rules import (
    apply_financial_deltas,
    apply_metric_deltas,
    build_effective_mission,
    calculate_composite,
    check_legality,
    evaluate_run_gates,
    in_final_third,
    tune_learner_option,
)

logger = logging.getLogger(__name__)

EVENT_CHECKPOINT_INTERVAL = 3
NARRATIVE_SCOPE = "run"

Clock = Callable[[], datetime]


@dataclass(slots=True)
class RunState:
    run_id: str
    seed: int
    difficulty: Difficulty
    difficulty_config: DifficultyConfig
    learner_tuning: LearnerTuning
    mission_plan: tuple[Mission, ...]
    event_pool: tuple[RunEvent, ...]
    learner: Participant
    ai: Participant
    rand: LcgRandomSource
    started_at: str
    current_mission_index: int = 0
    legal_pass: bool = True
    events_triggered: int = 0
    used_event_ids: list[str] = field(default_factory=list)
    fired_checkpoints: set[int] = field(default_factory=set)
    event_log: list[EventLogEntry] = field(default_factory=list)
    run_log: list[LedgerRow] = field(default_factory=list)
    turn_phase: TurnPhase = TurnPhase.AWAITING_LEARNER
    pending_turn: PendingTurn | None = None
    finished: bool = False
    final_result: RunResult | None = None
    finished_at: str | None = None

    @property
    def event_quota(self) -> int:
        return self.difficulty_config.event_count

    @property
    def mission_count(self) -> int:
        return len(self.mission_plan)

    def current_mission(self) -> Mission | None:
        if self.current_mission_index >= len(self.mission_plan):
            return None
        return self.mission_plan[self.current_mission_index]


def participant_from_team(team: TeamSnapshot) -> Participant:
    metrics = metric_row(team.initial_metrics)
    return Participant(
        team_id=team.id,
        team_name=team.display_name,
        finances=Finances(cap_space_m=team.cap_space_m, dead_cap_m=team.dead_cap_m),
        metrics=metrics,
        composite=calculate_composite(metrics),
    )


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RunEngine:
    """One learner-vs-AI run: ordered missions, event checkpoints, gated finalization."""

    def __init__(
        self,
        state: RunState,
        *,
        catalog: CatalogResolver,
        clock: Clock = now_utc,
        event_bus: EventBus | None = None,
    ) -> None:
        self.state = state
        self.catalog = catalog
        self._clock = clock
        self.event_bus = event_bus or EventBus()
        self._ai = AIOpponent(get_ai_profile(state.difficulty_config.ai_style), state.rand)

    @classmethod
    def create(
        cls,
        learner_team_id: str,
        difficulty: Difficulty | str,
        seed: int | None = None,
        *,
        catalog: CatalogResolver | None = None,
        clock: Clock = now_utc,
        event_bus: EventBus | None = None,
    ) -> RunEngine:
        if not learner_team_id:
            raise ValueError("learner team is required")
        resolved = parse_difficulty(difficulty)
        catalog = catalog or CatalogResolver()
        config = get_difficulty_config(resolved)
        learner_team = catalog.team(learner_team_id)
        ai_team = catalog.opponent_for(learner_team.id)
        run_seed = int(seed) if seed is not None else wall_clock_seed()

        state = RunState(
            run_id=make_run_id(run_seed),
            seed=run_seed,
            difficulty=resolved,
            difficulty_config=config,
            learner_tuning=get_learner_tuning(resolved),
            mission_plan=catalog.build_mission_plan(resolved),
            event_pool=tuple(catalog.event_pool()),
            learner=participant_from_team(learner_team),
            ai=participant_from_team(ai_team),
            rand=LcgRandomSource(run_seed),
            started_at=format_timestamp(clock()),
        )
        engine = cls(state, catalog=catalog, clock=clock, event_bus=event_bus)
        logger.debug("run %s created: %s %s vs %s", state.run_id, resolved.value, learner_team.id, ai_team.id)
        engine._narrate(
            "run_started",
            [f"{learner_team.id} vs {ai_team.id} on {resolved.value}"],
            [f"seed:{run_seed}", f"missions:{len(state.mission_plan)}"],
        )
        return engine

    @property
    def run_id(self) -> str:
        return self.state.run_id

    @property
    def finished(self) -> bool:
        return self.state.finished

    def current_mission(self) -> Mission | None:
        return self.state.current_mission()

    def gates(self) -> GateResult:
        return evaluate_run_gates(self.state)

    def submit_learner_option(self, mission_id: str, option_id: str) -> SubmissionResult:
        state = self.state
        if state.finished:
            raise RunFinishedError("run already finished", run_id=state.run_id)
        if state.turn_phase == TurnPhase.AWAITING_AI:
            raise TurnPendingError("AI turn pending; apply the AI choice first", run_id=state.run_id)
        mission = state.current_mission()
        if mission is None:
            raise NoMissionRemainingError("no mission remaining", run_id=state.run_id)
        if mission.id != mission_id:
            raise StaleMissionError(
                f"mission {mission_id} is not current; expected {mission.id}",
                run_id=state.run_id,
            )

        pressure = in_final_third(state.current_mission_index, len(state.mission_plan))
        effective = build_effective_mission(mission, state.difficulty_config.deadline_pressure_multiplier, pressure)
        chosen = effective.option(option_id)
        if chosen is None:
            raise UnknownOptionError(f"option {option_id} not found on {mission.id}", run_id=state.run_id)

        tuned = tune_learner_option(chosen, state.learner_tuning)
        legality = check_legality(state.learner.finances, tuned)

        learner = state.learner
        learner.finances = legality.projected
        learner.metrics = apply_metric_deltas(learner.metrics, tuned.metric_deltas)
        learner.composite = calculate_composite(learner.metrics)
        learner.last_choice = ParticipantChoice(
            mission_id=mission.id,
            option_id=tuned.id,
            legal=legality.legal,
            reasons=legality.reasons,
        )
        if not legality.legal:
            state.legal_pass = False
            logger.debug("run %s legality latched off at %s: %s", state.run_id, mission.id, legality.reasons)

        decision = LearnerDecision(
            role=mission.role,
            option_id=tuned.id,
            legal=legality.legal,
            cap_delta_m=tuned.cap_delta_m,
            dead_cap_delta_m=tuned.dead_cap_delta_m,
            metric_deltas=metric_row(tuned.metric_deltas),
            composite_after=learner.composite,
        )
        state.pending_turn = PendingTurn(effective_mission=effective, learner_decision=decision)
        state.turn_phase = TurnPhase.AWAITING_AI

        self._narrate(
            "learner_decision",
            [f"{learner.team_id} chose {mission.id}/{tuned.id}"],
            [f"legal:{legality.legal}", f"composite:{learner.composite}"],
            severity="normal" if legality.legal else "high",
        )
        return SubmissionResult(
            mission=mission,
            option=tuned,
            legality=legality,
            run_finished_by_progress=state.current_mission_index + 1 >= len(state.mission_plan),
        )

    def apply_ai_choice(self) -> ParticipantChoice:
        state = self.state
        if state.finished:
            raise RunFinishedError("run already finished", run_id=state.run_id)
        pending = state.pending_turn
        if state.turn_phase != TurnPhase.AWAITING_AI or pending is None:
            raise NoPendingTurnError("no learner decision awaiting an AI response", run_id=state.run_id)

        mission = pending.effective_mission
        choice = self._ai.apply_choice(state.ai, mission)

        state.current_mission_index += 1
        state.pending_turn = None
        state.turn_phase = TurnPhase.AWAITING_LEARNER

        state.run_log.append(
            build_decision_row(
                timestamp=format_timestamp(self._clock()),
                run_id=state.run_id,
                difficulty=state.difficulty,
                learner_team=state.learner.team_id,
                ai_team=state.ai.team_id,
                mission_id=mission.id,
                decision=pending.learner_decision,
                gates=evaluate_run_gates(state),
            )
        )
        self._narrate(
            "ai_decision",
            [f"{state.ai.team_id} chose {mission.id}/{choice.option_id}"],
            [f"legal:{choice.legal}", f"composite:{state.ai.composite}"],
        )
        return choice

    def maybe_inject_event(self) -> RunEvent | None:
        state = self.state
        if state.finished:
            return None
        if state.turn_phase == TurnPhase.AWAITING_AI:
            raise TurnPendingError("AI turn pending; events fire between turns", run_id=state.run_id)

        index = state.current_mission_index
        if index <= 0 or index % EVENT_CHECKPOINT_INTERVAL != 0:
            return None
        if state.events_triggered >= state.event_quota:
            return None
        if index in state.fired_checkpoints:
            return None
        available = [event for event in state.event_pool if event.id not in state.used_event_ids]
        if not available:
            return None

        event = state.rand.choice(available)
        state.used_event_ids.append(event.id)
        state.fired_checkpoints.add(index)
        state.events_triggered += 1

        learner = state.learner
        learner.finances = apply_financial_deltas(learner.finances, event.cap_delta_m, event.dead_cap_delta_m)
        learner.metrics = apply_metric_deltas(learner.metrics, event.metric_deltas)
        learner.composite = calculate_composite(learner.metrics)

        state.event_log.append(
            EventLogEntry(
                timestamp=format_timestamp(self._clock()),
                mission_checkpoint=index,
                event_id=event.id,
                event_type=event.type,
                cap_delta_m=event.cap_delta_m,
                dead_cap_delta_m=event.dead_cap_delta_m,
                metric_deltas=metric_row(event.metric_deltas),
            )
        )
        logger.debug("run %s event %s fired at checkpoint %d", state.run_id, event.id, index)
        self._narrate("event_injected", [event.title], [f"event:{event.id}", f"checkpoint:{index}"])
        return event

    def finish_run(self) -> RunResult:
        state = self.state
        if state.finished and state.final_result is not None:
            return state.final_result
        if state.turn_phase == TurnPhase.AWAITING_AI:
            raise TurnPendingError("AI turn pending; cannot finish", run_id=state.run_id)
        if state.current_mission_index != len(state.mission_plan):
            raise RunIncompleteError(
                f"run incomplete: {state.current_mission_index}/{len(state.mission_plan)} missions played",
                run_id=state.run_id,
            )

        gates = evaluate_run_gates(state)
        claim_code = create_claim_code(
            difficulty=state.difficulty,
            team_id=state.learner.team_id,
            gates=gates,
            mission_index=state.current_mission_index,
            events_triggered=state.events_triggered,
            seed=state.seed,
        )
        checksum = compute_review_checksum(
            run_id=state.run_id,
            difficulty=state.difficulty,
            team_id=state.learner.team_id,
            gates=gates,
            events_triggered=state.events_triggered,
            legal_pass=state.legal_pass,
        )
        finished_at = format_timestamp(self._clock())
        state.run_log.append(
            build_summary_row(
                timestamp=finished_at,
                run_id=state.run_id,
                difficulty=state.difficulty,
                learner_team=state.learner.team_id,
                ai_team=state.ai.team_id,
                gates=gates,
                claim_code=claim_code,
                review_checksum=checksum,
            )
        )

        result = RunResult(
            cleared=gates.cleared,
            legal_gate=gates.legal_gate,
            difficulty_gate=gates.difficulty_gate,
            ai_margin_gate=gates.ai_margin_gate,
            margin=gates.margin,
            margin_required=gates.margin_required,
            learner_composite=gates.learner_composite,
            ai_composite=gates.ai_composite,
            checks=gates.checks,
            xp_awarded=state.difficulty_config.xp_base if gates.cleared else 0,
            claim_code=claim_code,
            difficulty=state.difficulty,
            run_id=state.run_id,
            mission_count=len(state.mission_plan),
            events_triggered=state.events_triggered,
            learner_metrics=dict(state.learner.metrics),
            ai_metrics=dict(state.ai.metrics),
            review_checksum=checksum,
        )
        state.final_result = result
        state.finished = True
        state.finished_at = finished_at

        logger.debug("run %s finished cleared=%s margin=%d", state.run_id, result.cleared, result.margin)
        self._narrate(
            "run_finished",
            [f"cleared={result.cleared} margin={result.margin}/{result.margin_required}"],
            [f"checksum:{checksum}", f"claim:{claim_code or 'none'}"],
            severity="normal" if result.cleared else "high",
        )
        return result

    def _narrate(self, event_type: str, claims: list[str], evidence: list[str], severity: str = "normal") -> None:
        self.event_bus.publish_narrative(
            NarrativeEvent(
                event_id=make_id("ne"),
                time=self._clock(),
                scope=NARRATIVE_SCOPE,
                event_type=event_type,
                actors=[self.state.learner.team_id, self.state.ai.team_id],
                claims=claims,
                evidence_handles=[f"run:{self.state.run_id}", *evidence],
                severity=severity,
            )
        )
