"""Weighted expected-goal rates.

A team's scoring rate is the league base rate scaled by four multiplicative
weights::

    lambda = BASE_GOALS_AVG * w_strength * w_form * w_missing * weather

``w_strength`` is the attack-to-defence ratio against the opponent (with the
opponent's defence floored at :data:`DEFENSE_FLOOR`), ``w_form`` maps recent
form onto ``[0.8, 1.2]`` and ``w_missing`` is the available squad share.  The
result is floored at :data:`LAMBDA_FLOOR` so every team keeps a non-degenerate
Poisson law.  There is no upper clamp: a strong attack against a floored
defence may produce a large rate.

Inputs are assumed valid; see :func:`matchsim.models.validate_match_context`.
"""

from __future__ import annotations

from typing import Tuple

from .models import MatchContext, TeamAttributes

BASE_GOALS_AVG = 1.35
"""League-average goals per team per match."""

DEFENSE_FLOOR = 50.0
"""Lower bound applied to the defender's rating before division."""

LAMBDA_FLOOR = 0.1
"""Minimum expected goals for any team."""

FORM_BASE = 0.8
FORM_SPAN = 0.4


def form_weight(recent_form: float) -> float:
    return FORM_BASE + (recent_form / 100.0) * FORM_SPAN


def strength_weight(attack_strength: float, defense_strength: float) -> float:
    return attack_strength / max(defense_strength, DEFENSE_FLOOR)


def weighted_lambda(
    attacker: TeamAttributes,
    defender: TeamAttributes,
    weather_factor: float,
) -> float:
    """Expected goals for ``attacker`` when facing ``defender``."""

    w_form = form_weight(attacker.recent_form)
    w_strength = strength_weight(attacker.attack_strength, defender.defense_strength)
    w_missing = attacker.injury_impact
    lam = BASE_GOALS_AVG * w_strength * w_form * w_missing * weather_factor
    return max(lam, LAMBDA_FLOOR)


def match_lambdas(context: MatchContext) -> Tuple[float, float]:
    """Return ``(lambda_home, lambda_away)`` for a fixture."""

    lambda_home = weighted_lambda(context.team_a, context.team_b, context.weather_factor)
    lambda_away = weighted_lambda(context.team_b, context.team_a, context.weather_factor)
    return lambda_home, lambda_away


__all__ = [
    "BASE_GOALS_AVG",
    "DEFENSE_FLOOR",
    "LAMBDA_FLOOR",
    "form_weight",
    "match_lambdas",
    "strength_weight",
    "weighted_lambda",
]
