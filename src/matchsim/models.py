"""Data model shared by the simulation engine and its collaborators."""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import polars as pl

logger = logging.getLogger(__name__)


DEFAULT_WEATHER_FACTOR = 1.0
DEFAULT_REFEREE_STRICTNESS = 5.0

MAX_WEATHER_FACTOR = 10.0
"""Largest weather multiplier accepted; larger values push scoring rates past
the range the Poisson sampler draws from accurately."""


class InvalidTeamStatisticsError(ValueError):
    """Raised when team statistics fall outside their documented domains."""


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class TeamAttributes:
    """Strength profile of one side in a simulated match.

    ``recent_form`` runs from 0 to 100 (100 means winning every recent match),
    ``attack_strength`` and ``defense_strength`` run from 0 to 200 with 100 as
    league average, and ``injury_impact`` is the share of full-squad strength
    available.  Player lists are carried for display and never enter the
    rate formula.
    """

    name: str
    recent_form: float
    attack_strength: float
    defense_strength: float
    injury_impact: float = 1.0
    missing_key_players: Tuple[str, ...] = ()
    last_five_matches: Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class MatchContext:
    """Everything the engine needs to simulate one fixture.

    ``team_a`` is the home side.  ``referee_strictness`` is accepted for
    completeness of the input contract but does not modify scoring rates.
    """

    team_a: TeamAttributes
    team_b: TeamAttributes
    weather_factor: float = DEFAULT_WEATHER_FACTOR
    referee_strictness: float = DEFAULT_REFEREE_STRICTNESS


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class ScoreFrequency:
    """One row of the ranked scoreline table."""

    score: str
    count: int
    prob: float


@dataclasses.dataclass(frozen=True, slots=True)
class SimulationResult:
    """Aggregated outcome of a Monte Carlo run.

    All probabilities are percentages in ``[0, 100]``.  ``variance`` is the
    population variance of total goals per trial.
    """

    home_win_prob: float
    draw_prob: float
    away_win_prob: float
    over25_prob: float
    variance: float
    most_likely_score: str
    score_distribution: Tuple[ScoreFrequency, ...]
    total_simulations: int
    lambda_home: float = 0.0
    lambda_away: float = 0.0
    mean_goals: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready payload consumed by presentation layers."""

        return {
            "homeWinProb": self.home_win_prob,
            "drawProb": self.draw_prob,
            "awayWinProb": self.away_win_prob,
            "over25Prob": self.over25_prob,
            "variance": self.variance,
            "mostLikelyScore": self.most_likely_score,
            "scoreDistribution": [
                {"score": entry.score, "count": entry.count, "prob": entry.prob}
                for entry in self.score_distribution
            ],
            "totalSimulations": self.total_simulations,
            "lambdaHome": self.lambda_home,
            "lambdaAway": self.lambda_away,
            "meanGoals": self.mean_goals,
        }

    def commentary_summary(self) -> Dict[str, Any]:
        """Return the compact summary handed to the commentary collaborator."""

        return {
            "prob": {
                "home": self.home_win_prob,
                "draw": self.draw_prob,
                "away": self.away_win_prob,
            },
            "variance": self.variance,
        }

    def distribution_frame(self) -> pl.DataFrame:
        """Return the ranked scoreline table as a Polars frame."""

        return pl.DataFrame(
            {
                "score": [entry.score for entry in self.score_distribution],
                "count": [entry.count for entry in self.score_distribution],
                "prob": [entry.prob for entry in self.score_distribution],
            },
            schema={"score": pl.Utf8, "count": pl.Int64, "prob": pl.Float64},
        )


# ---------------------------------------------------------------------------
# Payload coercion
# ---------------------------------------------------------------------------


_TEAM_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "team", "teamName"),
    "recent_form": ("recent_form", "recentForm"),
    "attack_strength": ("attack_strength", "attackStrength"),
    "defense_strength": ("defense_strength", "defenseStrength"),
    "injury_impact": ("injury_impact", "injuryImpact"),
    "missing_key_players": ("missing_key_players", "missingKeyPlayers"),
    "last_five_matches": ("last_five_matches", "last5Matches"),
}

_CONTEXT_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "team_a": ("team_a", "teamA", "home"),
    "team_b": ("team_b", "teamB", "away"),
    "weather_factor": ("weather_factor", "weatherFactor"),
    "referee_strictness": ("referee_strictness", "refereeStrictness"),
}


def _lookup(values: Mapping[str, object], aliases: Sequence[str]) -> object | None:
    for alias in aliases:
        if alias in values:
            return values[alias]
    return None


def _coerce_str(value: object | None, field: str) -> str:
    if value is None:
        raise InvalidTeamStatisticsError(f"Missing required field '{field}'")
    text = str(value).strip()
    if not text:
        raise InvalidTeamStatisticsError(f"Field '{field}' cannot be empty")
    return text


def _coerce_float(value: object | None, field: str, default: float | None = None) -> float:
    if value is None:
        if default is None:
            raise InvalidTeamStatisticsError(f"Missing required field '{field}'")
        return default
    if isinstance(value, bool):
        raise InvalidTeamStatisticsError(f"Field '{field}' must be numeric")
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise InvalidTeamStatisticsError(
            f"Field '{field}' must be numeric, got {value!r}"
        ) from exc


def _coerce_str_sequence(value: object | None, field: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if isinstance(value, Sequence):
        if not all(isinstance(item, str) for item in value):
            raise InvalidTeamStatisticsError(f"Field '{field}' must be a list of strings")
        return tuple(value)
    raise InvalidTeamStatisticsError(f"Field '{field}' must be a list of strings")


def _coerce_mapping(value: object | None, field: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        return value
    raise InvalidTeamStatisticsError(f"Field '{field}' must be a mapping")


def build_team_attributes(payload: TeamAttributes | Mapping[str, object]) -> TeamAttributes:
    """Normalise a camelCase or snake_case mapping into :class:`TeamAttributes`."""

    if isinstance(payload, TeamAttributes):
        return payload
    values = _coerce_mapping(payload, "team")
    fields = _TEAM_FIELD_ALIASES
    return TeamAttributes(
        name=_coerce_str(_lookup(values, fields["name"]), "name"),
        recent_form=_coerce_float(_lookup(values, fields["recent_form"]), "recent_form"),
        attack_strength=_coerce_float(
            _lookup(values, fields["attack_strength"]), "attack_strength"
        ),
        defense_strength=_coerce_float(
            _lookup(values, fields["defense_strength"]), "defense_strength"
        ),
        injury_impact=_coerce_float(
            _lookup(values, fields["injury_impact"]), "injury_impact", 1.0
        ),
        missing_key_players=_coerce_str_sequence(
            _lookup(values, fields["missing_key_players"]), "missing_key_players"
        ),
        last_five_matches=_coerce_str_sequence(
            _lookup(values, fields["last_five_matches"]), "last_five_matches"
        ),
    )


def build_match_context(payload: MatchContext | Mapping[str, object]) -> MatchContext:
    """Normalise an acquisition payload into a validated :class:`MatchContext`.

    The data collaborator emits camelCase keys (``teamA``, ``attackStrength``
    and so on) while configuration files and tests tend to use snake_case.
    Both spellings are accepted.  The result is validated before it is
    returned so callers never hand an out-of-domain context to the engine.
    """

    if isinstance(payload, MatchContext):
        validate_match_context(payload)
        return payload
    values = _coerce_mapping(payload, "match")
    fields = _CONTEXT_FIELD_ALIASES
    team_a = _lookup(values, fields["team_a"])
    team_b = _lookup(values, fields["team_b"])
    if team_a is None or team_b is None:
        raise InvalidTeamStatisticsError("Match payload must define both teams")
    context = MatchContext(
        team_a=build_team_attributes(team_a),
        team_b=build_team_attributes(team_b),
        weather_factor=_coerce_float(
            _lookup(values, fields["weather_factor"]),
            "weather_factor",
            DEFAULT_WEATHER_FACTOR,
        ),
        referee_strictness=_coerce_float(
            _lookup(values, fields["referee_strictness"]),
            "referee_strictness",
            DEFAULT_REFEREE_STRICTNESS,
        ),
    )
    validate_match_context(context)
    return context


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


_TEAM_DOMAINS: Tuple[Tuple[str, float, float], ...] = (
    ("recent_form", 0.0, 100.0),
    ("attack_strength", 0.0, 200.0),
    ("defense_strength", 0.0, 200.0),
    ("injury_impact", 0.0, 1.0),
)


def _team_errors(label: str, team: TeamAttributes) -> List[str]:
    errors: List[str] = []
    if not team.name or not team.name.strip():
        errors.append(f"{label}.name cannot be empty")
    for field, low, high in _TEAM_DOMAINS:
        value = getattr(team, field)
        if not math.isfinite(value):
            errors.append(f"{label}.{field} must be finite")
        elif not low <= value <= high:
            errors.append(f"{label}.{field}={value:g} outside [{low:g}, {high:g}]")
    return errors


def validate_match_context(context: MatchContext) -> None:
    """Reject contexts the rate formula is not defined for.

    Raises:
        InvalidTeamStatisticsError: listing every offending field.
    """

    errors = _team_errors("team_a", context.team_a)
    errors.extend(_team_errors("team_b", context.team_b))
    if not math.isfinite(context.weather_factor):
        errors.append("weather_factor must be finite")
    elif context.weather_factor > MAX_WEATHER_FACTOR:
        errors.append(
            f"weather_factor={context.weather_factor:g} above {MAX_WEATHER_FACTOR:g}"
        )
    if not math.isfinite(context.referee_strictness):
        errors.append("referee_strictness must be finite")
    elif not 0.0 <= context.referee_strictness <= 10.0:
        errors.append(
            f"referee_strictness={context.referee_strictness:g} outside [0, 10]"
        )
    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise InvalidTeamStatisticsError(f"Invalid team statistics:\n{bullet_list}")
    if context.weather_factor <= 0.0:
        logger.warning(
            "Non-positive weather factor %.3f floors both scoring rates",
            context.weather_factor,
        )


__all__ = [
    "DEFAULT_REFEREE_STRICTNESS",
    "DEFAULT_WEATHER_FACTOR",
    "MAX_WEATHER_FACTOR",
    "InvalidTeamStatisticsError",
    "MatchContext",
    "ScoreFrequency",
    "SimulationResult",
    "TeamAttributes",
    "build_match_context",
    "build_team_attributes",
    "validate_match_context",
]
