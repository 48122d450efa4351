from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from caprun.catalog import CatalogResolver
from caprun.contracts import ActionRequest, ActionResult, ActionType, Mission, Participant, ValidationError
from caprun.core import (
    EngineIntegrityError,
    EventBus,
    RunStateError,
    build_forensic_artifact,
    now_utc,
    persist_forensic_artifact,
)
from caprun.engine import RunEngine, adaptive_hint
from caprun.engine.run import Clock
from caprun.export import ExportService

logger = logging.getLogger(__name__)


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"


def participant_view(participant: Participant) -> dict[str, Any]:
    return {
        "team_id": participant.team_id,
        "team_name": participant.team_name,
        "cap_space_m": participant.finances.cap_space_m,
        "dead_cap_m": participant.finances.dead_cap_m,
        "metrics": dict(participant.metrics),
        "composite": participant.composite,
        "last_choice": asdict(participant.last_choice) if participant.last_choice else None,
    }


def mission_view(mission: Mission | None) -> dict[str, Any] | None:
    if mission is None:
        return None
    return {
        "id": mission.id,
        "role": mission.role.value,
        "zone": mission.zone,
        "urgency": mission.urgency.value,
        "title": mission.title,
        "description": mission.description,
        "options": [
            {
                "id": o.id,
                "label": o.label,
                "summary_kid": o.summary_kid,
                "summary_front_office": o.summary_front_office,
                "cap_delta_m": o.cap_delta_m,
                "dead_cap_delta_m": o.dead_cap_delta_m,
                "metric_deltas": dict(o.metric_deltas),
                "tuning_tags": list(o.tuning_tags),
            }
            for o in mission.options
        ],
    }


class RunRuntime:
    """Action-driven front end over a single active run."""

    def __init__(self, root: Path, seed: int | None = None, clock: Clock = now_utc) -> None:
        self.paths = RuntimePaths(root)
        self.seed = seed
        self.clock = clock
        self.catalog = CatalogResolver()
        self.event_bus = EventBus()
        self.export_service = ExportService()
        self.engine: RunEngine | None = None

        self.halted = False
        self.last_forensic_path: str | None = None

    def handle_action(self, request: ActionRequest) -> ActionResult:
        if self.halted:
            return ActionResult(
                request.request_id,
                False,
                f"runtime halted after integrity failure; forensic={self.last_forensic_path}",
                {"forensic_path": self.last_forensic_path},
            )

        try:
            return self._handle_action_core(request)
        except RunStateError as exc:
            logger.warning("rejected %s: %s (%s)", request.action_type, exc, exc.code)
            return ActionResult(request.request_id, False, str(exc), {"error_code": exc.code})
        except ValidationError as exc:
            logger.warning("rejected %s: %s", request.action_type, exc)
            return ActionResult(
                request.request_id,
                False,
                "request rejected by catalog validation",
                {"error_code": exc.issues[0].code if exc.issues else "VALIDATION", "issues": [asdict(i) for i in exc.issues]},
            )
        except EngineIntegrityError as exc:
            logger.exception("integrity failure during %s", request.action_type)
            self.last_forensic_path = str(persist_forensic_artifact(exc.artifact, self.paths.forensic_dir))
            self.halted = True
            return ActionResult(
                request.request_id,
                False,
                f"integrity failure: {exc.artifact.error_code}",
                {"forensic_path": self.last_forensic_path},
            )
        except Exception as exc:
            logger.exception("runtime hard-stop during %s", request.action_type)
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot=self._state_snapshot(),
                context={"action_type": str(request.action_type), "payload": request.payload},
                identifiers={"request_id": request.request_id, "run_id": self.engine.run_id if self.engine else ""},
                causal_fragment=["runtime_dispatch"],
            )
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
            self.halted = True
            return ActionResult(
                request.request_id,
                False,
                f"runtime hard-stopped: {exc}",
                {"forensic_path": self.last_forensic_path},
            )

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        action = self._normalize_action(request.action_type)
        if action is None:
            return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")
        payload = request.payload

        if action == ActionType.START_RUN:
            team_id = payload.get("team_id")
            difficulty = payload.get("difficulty")
            if not team_id or not difficulty:
                return ActionResult(request.request_id, False, "team_id and difficulty required", {"error_code": "MISSING_FIELDS"})
            try:
                seed = payload.get("seed", self.seed)
                self.engine = RunEngine.create(
                    str(team_id),
                    str(difficulty),
                    int(seed) if seed is not None else None,
                    catalog=self.catalog,
                    clock=self.clock,
                    event_bus=self.event_bus,
                )
            except ValidationError:
                raise
            except ValueError as exc:
                return ActionResult(request.request_id, False, str(exc), {"error_code": "INVALID_SETUP"})
            return ActionResult(request.request_id, True, f"run {self.engine.run_id} started", self._state_view())

        engine = self.engine
        if engine is None:
            return ActionResult(request.request_id, False, "no active run", {"error_code": "NO_ACTIVE_RUN"})

        if action == ActionType.GET_STATE:
            return ActionResult(request.request_id, True, "run state", self._state_view())

        if action == ActionType.GET_HINT:
            hint = adaptive_hint(engine.state)
            return ActionResult(request.request_id, True, hint.trigger, asdict(hint))

        if action == ActionType.SUBMIT_OPTION:
            mission_id = payload.get("mission_id")
            option_id = payload.get("option_id")
            if not mission_id or not option_id:
                return ActionResult(request.request_id, False, "mission_id and option_id required", {"error_code": "MISSING_FIELDS"})
            submission = engine.submit_learner_option(str(mission_id), str(option_id))
            return ActionResult(
                request.request_id,
                True,
                f"{submission.mission.id}/{submission.option.id} {'legal' if submission.legality.legal else 'illegal'}",
                {
                    "mission_id": submission.mission.id,
                    "option_id": submission.option.id,
                    "legal": submission.legality.legal,
                    "reasons": list(submission.legality.reasons),
                    "run_finished_by_progress": submission.run_finished_by_progress,
                },
            )

        if action == ActionType.APPLY_AI:
            choice = engine.apply_ai_choice()
            return ActionResult(request.request_id, True, f"AI chose {choice.option_id}", asdict(choice))

        if action == ActionType.INJECT_EVENT:
            event = engine.maybe_inject_event()
            if event is None:
                return ActionResult(request.request_id, True, "no event", {"event": None})
            return ActionResult(request.request_id, True, event.title, {"event": asdict(event)})

        if action == ActionType.PLAY_TURN:
            mission = engine.current_mission()
            option_id = payload.get("option_id")
            if not option_id:
                return ActionResult(request.request_id, False, "option_id required", {"error_code": "MISSING_FIELDS"})
            mission_id = payload.get("mission_id") or (mission.id if mission else "")
            submission = engine.submit_learner_option(str(mission_id), str(option_id))
            choice = engine.apply_ai_choice()
            event = engine.maybe_inject_event()
            return ActionResult(
                request.request_id,
                True,
                f"turn played: {submission.mission.id}",
                {
                    "mission_id": submission.mission.id,
                    "learner_option_id": submission.option.id,
                    "learner_legal": submission.legality.legal,
                    "ai_option_id": choice.option_id,
                    "event_id": event.id if event else None,
                    "run_finished_by_progress": submission.run_finished_by_progress,
                },
            )

        if action == ActionType.FINISH_RUN:
            self._check_ledger_integrity(engine)
            result = engine.finish_run()
            return ActionResult(
                request.request_id,
                True,
                "run cleared" if result.cleared else "run not cleared",
                asdict(result),
            )

        if action == ActionType.EXPORT_RUN:
            output_dir = Path(payload["output_dir"]) if payload.get("output_dir") else self.paths.export_dir / engine.run_id
            paths = self.export_service.export_run(engine.state, output_dir)
            return ActionResult(request.request_id, True, f"exported {len(paths)} files", {"paths": [str(p) for p in paths]})

        return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")

    def _state_view(self) -> dict[str, Any]:
        if self.engine is None:
            return {}
        state = self.engine.state
        return {
            "run_id": state.run_id,
            "seed": state.seed,
            "difficulty": state.difficulty.value,
            "mission_index": state.current_mission_index,
            "mission_count": state.mission_count,
            "turn_phase": state.turn_phase.value,
            "legal_pass": state.legal_pass,
            "events_triggered": state.events_triggered,
            "event_quota": state.event_quota,
            "finished": state.finished,
            "current_mission": mission_view(state.current_mission()),
            "learner": participant_view(state.learner),
            "ai": participant_view(state.ai),
            "gates": asdict(self.engine.gates()),
        }

    def _check_ledger_integrity(self, engine: RunEngine) -> None:
        state = engine.state
        if state.finished:
            return
        if len(state.run_log) != state.current_mission_index:
            raise EngineIntegrityError(
                build_forensic_artifact(
                    engine_scope="runtime",
                    error_code="LEDGER_ROW_MISMATCH",
                    message=f"ledger holds {len(state.run_log)} decision rows for {state.current_mission_index} missions",
                    state_snapshot=self._state_snapshot(),
                    context={"difficulty": state.difficulty.value},
                    identifiers={"run_id": state.run_id, "team_id": state.learner.team_id},
                    causal_fragment=["finish_run", "ledger_check"],
                )
            )

    def _state_snapshot(self) -> dict[str, object]:
        if self.engine is None:
            return {"run_id": None}
        state = self.engine.state
        return {
            "run_id": state.run_id,
            "mission_index": state.current_mission_index,
            "turn_phase": state.turn_phase.value,
            "finished": state.finished,
        }

    @staticmethod
    def _normalize_action(action_type: ActionType | str) -> ActionType | None:
        if isinstance(action_type, ActionType):
            return action_type
        try:
            return ActionType(str(action_type).lower())
        except ValueError:
            return None
