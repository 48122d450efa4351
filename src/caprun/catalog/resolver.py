from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, replace
from importlib import resources
from typing import Any, Sequence

from caprun.contracts import (
    METRIC_KEYS,
    ROLE_SEQUENCE,
    BacklogMission,
    Citation,
    CoreContract,
    Difficulty,
    Mission,
    MissionHints,
    MissionOption,
    ResourceManifest,
    Role,
    RunEvent,
    TeamSnapshot,
    Urgency,
    ValidationError,
    ValidationIssue,
    metric_row,
)
from caprun.core.difficulty import get_difficulty_config, parse_difficulty

EXPECTED_SCHEMA_VERSION = "1.0"
DATA_LOCK_DATE = "2025-07-15"

MISSIONS_PER_ROLE: dict[Difficulty, int] = {
    Difficulty.ROOKIE: 2,
    Difficulty.PRO: 3,
    Difficulty.LEGEND: 4,
}


@dataclass(slots=True)
class ResourceBundle:
    manifest: ResourceManifest
    resources_by_id: dict[str, dict[str, Any]]


def _issue(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message)


def derive_tuning_tags(cap_delta_m: float, dead_cap_delta_m: float, metric_deltas: dict[str, int]) -> tuple[str, ...]:
    tags: list[str] = []
    if cap_delta_m <= -4 or dead_cap_delta_m >= 4:
        tags.append("cap-risk")
    if metric_deltas.get("player_relations", 0) <= -2:
        tags.append("trust-risk")
    if metric_deltas.get("flexibility", 0) <= -2:
        tags.append("flexibility-risk")
    return tuple(tags) or ("stable-profile",)


def validate_role_order(plan: Sequence[Mission]) -> None:
    """Require AGENT, LEAGUE_OFFICE and OWNER blocks in that order, no interleaving."""
    issues: list[ValidationIssue] = []
    roles = [m.role for m in plan]
    for role in ROLE_SEQUENCE:
        if role not in roles:
            issues.append(_issue("MISSION_PLAN_MISSING_ROLE", "mission_plan", role.value, "required role is missing"))
    if issues:
        raise ValidationError(issues)

    rank = {role: i for i, role in enumerate(ROLE_SEQUENCE)}
    for prev, current in zip(plan, plan[1:]):
        if rank[current.role] < rank[prev.role]:
            issues.append(
                _issue(
                    "MISSION_PLAN_ROLE_ORDER",
                    "mission_plan",
                    current.id,
                    f"{current.role.value} mission follows {prev.role.value}; expected Agent -> League Office -> Owner",
                )
            )
    if issues:
        raise ValidationError(issues)


class CatalogResolver:
    """Data-pack backed registry for teams, missions, events and citations."""

    def __init__(self, bundle_overrides: dict[str, dict[str, Any]] | None = None) -> None:
        self._bundle_overrides = bundle_overrides or {}
        self._teams = self._load_bundle("teams.json", "team_snapshot")
        self._missions = self._load_bundle("missions.json", "mission")
        self._backlog = self._load_bundle("mission_backlog.json", "mission_backlog")
        self._events = self._load_bundle("events.json", "run_event")
        self._citations = self._load_bundle("citations.json", "citation")
        self._validate_cross_references()

    def teams(self) -> list[TeamSnapshot]:
        return [self._build_team(raw) for raw in self._teams.resources_by_id.values()]

    def team(self, team_id: str) -> TeamSnapshot:
        raw = self._teams.resources_by_id.get(team_id)
        if raw is None:
            raise ValidationError([_issue("UNKNOWN_TEAM", "learner_team_id", str(team_id), "team snapshot not found")])
        return self._build_team(raw)

    def opponent_for(self, team_id: str) -> TeamSnapshot:
        for other_id in self._teams.resources_by_id:
            if other_id != team_id:
                return self.team(other_id)
        raise ValidationError([_issue("MISSING_OPPONENT", "ai_team_id", team_id, "no opponent team snapshot available")])

    def missions(self) -> list[Mission]:
        return [self._build_mission(raw) for raw in self._missions.resources_by_id.values()]

    def mission(self, mission_id: str) -> Mission:
        raw = self._missions.resources_by_id.get(mission_id)
        if raw is None:
            raise ValidationError([_issue("UNKNOWN_MISSION", "mission_id", mission_id, "mission not found")])
        return self._build_mission(raw)

    def build_mission_plan(self, difficulty: Difficulty | str) -> tuple[Mission, ...]:
        diff = parse_difficulty(difficulty)
        count = MISSIONS_PER_ROLE[diff]
        missions = self.missions()
        plan: list[Mission] = []
        for role in ROLE_SEQUENCE:
            block = [m for m in missions if m.role == role][:count]
            if len(block) < count:
                raise ValidationError(
                    [_issue("MISSION_CATALOG_SHORT", "missions", role.value, f"need {count} missions, catalog has {len(block)}")]
                )
            plan.extend(block)
        expected = get_difficulty_config(diff).mission_count
        if len(plan) != expected:
            raise ValidationError(
                [_issue("MISSION_PLAN_SIZE", "mission_plan", diff.value, f"expected {expected} missions, built {len(plan)}")]
            )
        validate_role_order(plan)
        return tuple(plan)

    def role_mission_counts(self, difficulty: Difficulty | str) -> dict[Role, int]:
        count = MISSIONS_PER_ROLE[parse_difficulty(difficulty)]
        return {role: count for role in ROLE_SEQUENCE}

    def backlog_missions(self) -> list[BacklogMission]:
        return [
            BacklogMission(
                id=str(raw["id"]),
                role=Role(str(raw["role"])),
                zone=str(raw["zone"]),
                urgency=Urgency(str(raw["urgency"])),
                title=str(raw["title"]),
                description=str(raw["description"]),
                learning_objective=str(raw["learning_objective"]),
                status=str(raw["status"]),
            )
            for raw in self._backlog.resources_by_id.values()
        ]

    def event_pool(self) -> list[RunEvent]:
        return [
            RunEvent(
                id=str(raw["id"]),
                title=str(raw["title"]),
                description=str(raw["description"]),
                type=str(raw["type"]),
                cap_delta_m=float(raw["cap_delta_m"]),
                dead_cap_delta_m=float(raw["dead_cap_delta_m"]),
                metric_deltas=metric_row(raw["metric_deltas"]),
                citation_ids=tuple(str(c) for c in raw.get("citation_ids", [])),
            )
            for raw in self._events.resources_by_id.values()
        ]

    def citations(self) -> list[Citation]:
        return [self._build_citation(raw) for raw in self._citations.resources_by_id.values()]

    def citation(self, citation_id: str) -> Citation:
        raw = self._citations.resources_by_id.get(citation_id)
        if raw is None:
            raise ValidationError([_issue("UNKNOWN_CITATION", "citation_id", citation_id, "citation not found")])
        return self._build_citation(raw)

    def team_field_citations(self, team_id: str, field_key: str) -> list[Citation]:
        team = self.team(team_id)
        return [self.citation(cid) for cid in team.field_citations.get(field_key, ())]

    def resource_manifests(self) -> list[ResourceManifest]:
        return [
            self._teams.manifest,
            self._missions.manifest,
            self._backlog.manifest,
            self._events.manifest,
            self._citations.manifest,
        ]

    def _build_team(self, raw: dict[str, Any]) -> TeamSnapshot:
        return TeamSnapshot(
            id=str(raw["id"]),
            display_name=str(raw["display_name"]),
            season=int(raw["season"]),
            cap_space_m=float(raw["cap_space_m"]),
            dead_cap_m=float(raw["dead_cap_m"]),
            core_contracts=tuple(
                CoreContract(
                    player=str(c["player"]),
                    cap_hit_m=float(c["cap_hit_m"]),
                    dead_cap_m=float(c["dead_cap_m"]),
                    citation_id=str(c["citation_id"]),
                )
                for c in raw["core_contracts"]
            ),
            dead_cap_drivers=tuple(str(d) for d in raw["dead_cap_drivers"]),
            initial_metrics=metric_row(raw["initial_metrics"]),
            field_citations={str(k): tuple(str(c) for c in v) for k, v in raw["field_citations"].items()},
        )

    def _build_mission(self, raw: dict[str, Any]) -> Mission:
        options = []
        for opt in raw["options"]:
            metric_deltas = metric_row(opt["metric_deltas"])
            option = MissionOption(
                id=str(opt["id"]),
                label=str(opt["label"]),
                summary_kid=str(opt["summary_kid"]),
                summary_front_office=str(opt["summary_front_office"]),
                cap_delta_m=float(opt["cap_delta_m"]),
                dead_cap_delta_m=float(opt["dead_cap_delta_m"]),
                metric_deltas=metric_deltas,
                citation_ids=tuple(str(c) for c in opt.get("citation_ids", [])),
                tuning_tags=tuple(str(t) for t in opt.get("tuning_tags", [])),
            )
            if not option.tuning_tags:
                option = replace(
                    option,
                    tuning_tags=derive_tuning_tags(option.cap_delta_m, option.dead_cap_delta_m, metric_deltas),
                )
            options.append(option)
        hints = raw["hints"]
        return Mission(
            id=str(raw["id"]),
            role=Role(str(raw["role"])),
            zone=str(raw["zone"]),
            urgency=Urgency(str(raw["urgency"])),
            title=str(raw["title"]),
            description=str(raw["description"]),
            hints=MissionHints(rookie=str(hints["rookie"]), pro=str(hints["pro"]), legend=str(hints["legend"])),
            options=tuple(options),
            citation_ids=tuple(str(c) for c in raw.get("citation_ids", [])),
        )

    def _build_citation(self, raw: dict[str, Any]) -> Citation:
        return Citation(
            id=str(raw["id"]),
            label=str(raw["label"]),
            field_group=str(raw["field_group"]),
            url=str(raw["url"]),
        )

    def _load_bundle(self, filename: str, expected_type: str) -> ResourceBundle:
        if filename in self._bundle_overrides:
            payload = self._bundle_overrides[filename]
        else:
            package = resources.files("caprun.resources.catalog")
            payload = json.loads((package / filename).read_text(encoding="utf-8"))
        manifest_data = payload.get("manifest")
        resources_list = payload.get("resources")
        if not isinstance(manifest_data, dict) or not isinstance(resources_list, list):
            raise ValidationError(
                [_issue("INVALID_RESOURCE_BUNDLE", filename, expected_type, "resource bundle must provide manifest and resources list")]
            )

        required_manifest_fields = {"resource_type", "schema_version", "resource_version", "generated_at", "checksum"}
        missing_manifest = sorted(required_manifest_fields - set(manifest_data.keys()))
        if missing_manifest:
            raise ValidationError(
                [
                    _issue(
                        "MISSING_REQUIRED_RUNTIME_CONFIG",
                        f"{filename}.manifest",
                        expected_type,
                        f"manifest missing required fields {missing_manifest}",
                    )
                ]
            )

        manifest = ResourceManifest(
            resource_type=str(manifest_data["resource_type"]),
            schema_version=str(manifest_data["schema_version"]),
            resource_version=str(manifest_data["resource_version"]),
            generated_at=str(manifest_data["generated_at"]),
            checksum=str(manifest_data["checksum"]),
        )
        issues = self._validate_manifest(manifest, expected_type, resources_list)
        if issues:
            raise ValidationError(issues)

        by_id: dict[str, dict[str, Any]] = {}
        for entry in resources_list:
            if not isinstance(entry, dict):
                continue
            rid = str(entry.get("id", ""))
            if not rid:
                continue
            if rid in by_id:
                raise ValidationError([_issue("DUPLICATE_RESOURCE_ID", filename, rid, "resource id appears more than once")])
            by_id[rid] = dict(entry)
        if not by_id:
            raise ValidationError(
                [_issue("EMPTY_RESOURCE_SET", filename, expected_type, "resource bundle contains no usable resource ids")]
            )
        return ResourceBundle(manifest=manifest, resources_by_id=by_id)

    def _validate_manifest(
        self,
        manifest: ResourceManifest,
        expected_type: str,
        resources_list: list[dict[str, Any]],
    ) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if manifest.resource_type != expected_type:
            issues.append(
                _issue(
                    "RESOURCE_TYPE_MISMATCH",
                    "manifest.resource_type",
                    expected_type,
                    f"expected '{expected_type}', got '{manifest.resource_type}'",
                )
            )
        if manifest.schema_version != EXPECTED_SCHEMA_VERSION:
            issues.append(
                _issue(
                    "RESOURCE_SCHEMA_MISMATCH",
                    "manifest.schema_version",
                    expected_type,
                    f"expected schema {EXPECTED_SCHEMA_VERSION}, got {manifest.schema_version}",
                )
            )
        canonical = json.dumps(resources_list, sort_keys=True, separators=(",", ":")).encode("utf-8")
        checksum = hashlib.sha256(canonical).hexdigest()
        if manifest.checksum != checksum:
            issues.append(
                _issue(
                    "RESOURCE_CHECKSUM_MISMATCH",
                    "manifest.checksum",
                    expected_type,
                    f"expected {checksum}, got {manifest.checksum}",
                )
            )
        return issues

    def _validate_cross_references(self) -> None:
        issues: list[ValidationIssue] = []
        known_citations = set(self._citations.resources_by_id)

        for mission_id, mission in self._missions.resources_by_id.items():
            for field_name in ("role", "zone", "urgency", "title", "description", "hints", "options"):
                if field_name not in mission:
                    issues.append(
                        _issue(
                            "MISSING_REQUIRED_RUNTIME_CONFIG",
                            f"mission.{mission_id}.{field_name}",
                            mission_id,
                            f"required field '{field_name}' is missing",
                        )
                    )
            if str(mission.get("role")) not in {r.value for r in Role}:
                issues.append(_issue("INVALID_MISSION_ROLE", f"mission.{mission_id}.role", mission_id, f"unsupported role '{mission.get('role')}'"))
            options = mission.get("options")
            if not isinstance(options, list) or not options:
                issues.append(_issue("MISSION_WITHOUT_OPTIONS", f"mission.{mission_id}.options", mission_id, "mission must define options"))
                continue
            seen: set[str] = set()
            for opt in options:
                opt_id = str(opt.get("id", ""))
                if not opt_id or opt_id in seen:
                    issues.append(_issue("INVALID_OPTION_ID", f"mission.{mission_id}.options", mission_id, f"option id '{opt_id}' missing or duplicated"))
                seen.add(opt_id)
                unknown_keys = set(opt.get("metric_deltas", {})) - set(METRIC_KEYS)
                if unknown_keys:
                    issues.append(
                        _issue(
                            "UNKNOWN_METRIC_KEY",
                            f"mission.{mission_id}.options.{opt_id}.metric_deltas",
                            mission_id,
                            f"unknown metric keys {sorted(unknown_keys)}",
                        )
                    )
                for cid in opt.get("citation_ids", []):
                    if cid not in known_citations:
                        issues.append(
                            _issue("CITATION_REF_MISSING", f"mission.{mission_id}.options.{opt_id}", mission_id, f"references missing citation '{cid}'")
                        )

        for team_id, team in self._teams.resources_by_id.items():
            metrics = team.get("initial_metrics", {})
            for key in METRIC_KEYS:
                value = metrics.get(key)
                if not isinstance(value, int) or not 0 <= value <= 100:
                    issues.append(
                        _issue("INVALID_INITIAL_METRIC", f"team.{team_id}.initial_metrics.{key}", team_id, f"metric must be an int in [0, 100], got {value!r}")
                    )
            for ids in team.get("field_citations", {}).values():
                for cid in ids:
                    if cid not in known_citations:
                        issues.append(_issue("CITATION_REF_MISSING", f"team.{team_id}.field_citations", team_id, f"references missing citation '{cid}'"))

        if issues:
            raise ValidationError(issues)
