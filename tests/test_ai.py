from __future__ import annotations

from dataclasses import replace

import pytest

from caprun.ai import AIOpponent, default_ai_profiles, get_ai_profile
from caprun.catalog import CatalogResolver
from caprun.contracts import AIStyle, Finances
from caprun.core import LcgRandomSource
from caprun.engine import participant_from_team


class CenteredRandom:
    """Noise source that always lands on the midpoint, so scores are noise-free."""

    def __init__(self) -> None:
        self.calls = 0

    def rand(self) -> float:
        self.calls += 1
        return 0.5

    def choice(self, items):
        raise NotImplementedError

    def spawn(self, substream_id: str):
        raise NotImplementedError


def _kc():
    return participant_from_team(CatalogResolver().team("KC"))


def test_profile_table():
    profiles = default_ai_profiles()
    assert set(profiles) == set(AIStyle)
    conservative = profiles[AIStyle.CONSERVATIVE]
    assert conservative.legal_penalty == -1000
    assert conservative.noise == 1.5
    assert sum(conservative.weights().values()) == pytest.approx(1.0)
    assert get_ai_profile("aggressive").roster_weight == 0.32
    with pytest.raises(ValueError):
        get_ai_profile("reckless")


def test_scores_weighted_deltas_plus_cap_bias():
    mission = CatalogResolver().mission("AGENT-001")
    ai = AIOpponent(get_ai_profile(AIStyle.CONSERVATIVE), CenteredRandom())
    scores = {s.option.id: s.score for s in ai.rank(_kc(), mission)}
    assert scores["A"] == pytest.approx(-1.35)
    assert scores["B"] == pytest.approx(1.4)
    assert scores["C"] == pytest.approx(0.0)
    assert ai.choose(_kc(), mission).option.id == "B"


def test_illegal_options_are_penalized_for_the_ai_books():
    mission = CatalogResolver().mission("AGENT-001")
    participant = _kc()
    participant.finances = Finances(cap_space_m=0.5, dead_cap_m=18.4)
    ai = AIOpponent(get_ai_profile(AIStyle.CONSERVATIVE), CenteredRandom())
    best = ai.choose(participant, mission)
    assert best.option.id == "C"
    assert best.legality.legal


def test_ties_keep_first_seen_option():
    mission = CatalogResolver().mission("AGENT-001")
    first = mission.option("B")
    twin = replace(first, id="D")
    mission = replace(mission, options=(first, twin))
    ai = AIOpponent(get_ai_profile(AIStyle.BALANCED), CenteredRandom())
    assert ai.choose(_kc(), mission).option.id == "B"


def test_one_noise_draw_per_option():
    mission = CatalogResolver().mission("LEAGUE-001")
    rand = CenteredRandom()
    AIOpponent(get_ai_profile(AIStyle.AGGRESSIVE), rand).choose(_kc(), mission)
    assert rand.calls == len(mission.options)


def test_apply_choice_commits_to_ai_side():
    mission = CatalogResolver().mission("AGENT-001")
    participant = _kc()
    before = participant.finances
    choice = AIOpponent(get_ai_profile(AIStyle.CONSERVATIVE), CenteredRandom()).apply_choice(participant, mission)
    assert choice.option_id == "B"
    assert choice.legal
    assert participant.finances == Finances(cap_space_m=round(before.cap_space_m - 3.2, 1), dead_cap_m=20.0)
    assert participant.metrics["flexibility"] == 63
    assert participant.last_choice is choice


def test_seeded_choices_are_reproducible():
    mission = CatalogResolver().mission("OWNER-002")
    picks = []
    for _ in range(2):
        ai = AIOpponent(get_ai_profile(AIStyle.BALANCED), LcgRandomSource(77))
        picks.append([ai.choose(_kc(), mission).option.id for _ in range(5)])
    assert picks[0] == picks[1]
