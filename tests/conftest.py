from __future__ import annotations

from typing import Any, Dict

import pytest

from matchsim.models import MatchContext, TeamAttributes


@pytest.fixture()
def strong_home() -> TeamAttributes:
    return TeamAttributes(
        name="Galatasaray",
        recent_form=80.0,
        attack_strength=150.0,
        defense_strength=100.0,
        injury_impact=1.0,
        missing_key_players=("Icardi",),
    )


@pytest.fixture()
def average_away() -> TeamAttributes:
    return TeamAttributes(
        name="Fenerbahce",
        recent_form=50.0,
        attack_strength=100.0,
        defense_strength=100.0,
        injury_impact=1.0,
    )


@pytest.fixture()
def example_context(strong_home: TeamAttributes, average_away: TeamAttributes) -> MatchContext:
    return MatchContext(team_a=strong_home, team_b=average_away, weather_factor=1.0)


@pytest.fixture()
def symmetric_context(average_away: TeamAttributes) -> MatchContext:
    home = TeamAttributes(
        name="Besiktas",
        recent_form=average_away.recent_form,
        attack_strength=average_away.attack_strength,
        defense_strength=average_away.defense_strength,
        injury_impact=average_away.injury_impact,
    )
    return MatchContext(team_a=home, team_b=average_away, weather_factor=1.0)


@pytest.fixture()
def match_payload() -> Dict[str, Any]:
    return {
        "teamA": {
            "name": "Galatasaray",
            "recentForm": 80,
            "attackStrength": 150,
            "defenseStrength": 100,
            "injuryImpact": 1.0,
            "missingKeyPlayers": ["Icardi"],
            "last5Matches": ["W 3-1 vs Konyaspor", "D 1-1 vs Trabzonspor"],
        },
        "teamB": {
            "name": "Fenerbahce",
            "recentForm": 50,
            "attackStrength": 100,
            "defenseStrength": 100,
            "injuryImpact": 1.0,
            "missingKeyPlayers": [],
            "last5Matches": [],
        },
        "weatherForecast": "Clear, 18C",
        "tacticalAnalysis": "High press against a deep block.",
    }
