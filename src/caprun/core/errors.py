from __future__ import annotations

import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from caprun.contracts import ForensicArtifact


class RunStateError(RuntimeError):
    """Operation called in a state the run cannot accept it in."""

    code = "RUN_STATE_INVALID"

    def __init__(self, message: str, *, run_id: str | None = None) -> None:
        super().__init__(message)
        self.run_id = run_id


class RunFinishedError(RunStateError):
    code = "RUN_FINISHED"


class TurnPendingError(RunStateError):
    code = "AI_TURN_PENDING"


class NoPendingTurnError(RunStateError):
    code = "NO_PENDING_TURN"


class NoMissionRemainingError(RunStateError):
    code = "NO_MISSION_REMAINING"


class StaleMissionError(RunStateError):
    code = "STALE_MISSION"


class UnknownOptionError(RunStateError):
    code = "UNKNOWN_OPTION"


class RunIncompleteError(RunStateError):
    code = "RUN_INCOMPLETE"


class EngineIntegrityError(RuntimeError):
    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(artifact.message)
        self.artifact = artifact


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    state_snapshot: dict[str, object],
    context: dict[str, object],
    identifiers: dict[str, str],
    causal_fragment: list[str],
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=str(uuid4()),
        timestamp=datetime.now(UTC),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot,
        context=context,
        identifiers=identifiers,
        causal_fragment=causal_fragment,
    )


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"forensic_{artifact.artifact_id}.json"
    path.write_text(json.dumps(asdict(artifact), default=str, indent=2), encoding="utf-8")
    return path
