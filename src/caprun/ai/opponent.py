from __future__ import annotations

import logging
from dataclasses import dataclass

from caprun.contracts import (
    METRIC_KEYS,
    AIProfile,
    AIStyle,
    LegalityResult,
    Mission,
    MissionOption,
    Participant,
    ParticipantChoice,
    RandomSource,
)
from caprun.rules import apply_financial_deltas, apply_metric_deltas, calculate_composite, check_legality

logger = logging.getLogger(__name__)

CAP_GAIN_BIAS = 0.5
CAP_COST_BIAS = -0.3


def default_ai_profiles() -> dict[AIStyle, AIProfile]:
    return {
        AIStyle.CONSERVATIVE: AIProfile(
            style=AIStyle.CONSERVATIVE,
            legal_penalty=-1000,
            cap_weight=0.35,
            roster_weight=0.2,
            flex_weight=0.25,
            relations_weight=0.1,
            value_weight=0.1,
            noise=1.5,
        ),
        AIStyle.BALANCED: AIProfile(
            style=AIStyle.BALANCED,
            legal_penalty=-700,
            cap_weight=0.24,
            roster_weight=0.23,
            flex_weight=0.2,
            relations_weight=0.14,
            value_weight=0.19,
            noise=2.4,
        ),
        AIStyle.AGGRESSIVE: AIProfile(
            style=AIStyle.AGGRESSIVE,
            legal_penalty=-500,
            cap_weight=0.14,
            roster_weight=0.32,
            flex_weight=0.16,
            relations_weight=0.12,
            value_weight=0.26,
            noise=3.2,
        ),
    }


def get_ai_profile(style: AIStyle | str) -> AIProfile:
    try:
        key = AIStyle(style)
    except ValueError as exc:
        raise ValueError(f"Unknown AI style: {style}") from exc
    return default_ai_profiles()[key]


@dataclass(slots=True, frozen=True)
class ScoredOption:
    option: MissionOption
    legality: LegalityResult
    score: float


class AIOpponent:
    """Scripted opponent that picks the best-scoring option for its own books."""

    def __init__(self, profile: AIProfile, random_source: RandomSource) -> None:
        self._profile = profile
        self._rand = random_source

    @property
    def profile(self) -> AIProfile:
        return self._profile

    def score_option(self, participant: Participant, option: MissionOption) -> ScoredOption:
        legality = check_legality(participant.finances, option)
        weights = self._profile.weights()
        weighted = sum(option.metric_deltas.get(key, 0) * weights[key] for key in METRIC_KEYS)
        cap_bias = CAP_GAIN_BIAS if option.cap_delta_m > 0 else CAP_COST_BIAS
        legality_bias = 0.0 if legality.legal else self._profile.legal_penalty
        noise = (self._rand.rand() - 0.5) * self._profile.noise
        return ScoredOption(option=option, legality=legality, score=weighted + cap_bias + legality_bias + noise)

    def rank(self, participant: Participant, mission: Mission) -> list[ScoredOption]:
        # every option is scored in catalog order so the stream advances identically per mission
        return [self.score_option(participant, option) for option in mission.options]

    def choose(self, participant: Participant, mission: Mission) -> ScoredOption:
        if not mission.options:
            raise ValueError(f"mission {mission.id} has no options for the AI to choose from")
        scored = self.rank(participant, mission)
        best = scored[0]
        for candidate in scored[1:]:
            if candidate.score > best.score:
                best = candidate
        return best

    def apply_choice(self, participant: Participant, mission: Mission) -> ParticipantChoice:
        """Choose an option for ``mission`` and commit it to ``participant``."""
        best = self.choose(participant, mission)
        chosen = best.option
        participant.finances = apply_financial_deltas(participant.finances, chosen.cap_delta_m, chosen.dead_cap_delta_m)
        participant.metrics = apply_metric_deltas(participant.metrics, chosen.metric_deltas)
        participant.composite = calculate_composite(participant.metrics)
        participant.last_choice = ParticipantChoice(
            mission_id=mission.id,
            option_id=chosen.id,
            legal=best.legality.legal,
            reasons=best.legality.reasons,
        )
        logger.debug(
            "ai %s picked %s/%s score=%.3f legal=%s",
            participant.team_id,
            mission.id,
            chosen.id,
            best.score,
            best.legality.legal,
        )
        return participant.last_choice
