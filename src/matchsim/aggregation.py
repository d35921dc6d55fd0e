"""Reduction of simulated trials into a :class:`SimulationResult`."""

from __future__ import annotations

import collections
from typing import Dict, Iterable, MutableMapping, Tuple

from .models import ScoreFrequency, SimulationResult

DISTRIBUTION_SIZE = 10
"""Number of scorelines kept in the ranked table."""

OVER_UNDER_LINE = 2.5


def score_key(goals_a: int, goals_b: int) -> str:
    return f"{goals_a}-{goals_b}"


def _distribution_moments(distribution: Dict[int, int], trials: int) -> Tuple[float, float]:
    mean = sum(value * count for value, count in distribution.items()) / trials
    variance = (
        sum(count * (value - mean) ** 2 for value, count in distribution.items()) / trials
    )
    return mean, variance


class OutcomeTally:
    """Incremental counters for a stream of ``(goals_a, goals_b)`` trials.

    Scorelines are counted in a plain ``dict`` so first-seen order is kept;
    ranking relies on that order to break ties between equally frequent
    scorelines.  Total goals are tallied by value rather than stored per
    trial, which keeps memory flat regardless of the trial count.
    """

    __slots__ = (
        "trials",
        "home_wins",
        "draws",
        "away_wins",
        "over_count",
        "total_goals",
        "scorelines",
    )

    def __init__(self) -> None:
        self.trials = 0
        self.home_wins = 0
        self.draws = 0
        self.away_wins = 0
        self.over_count = 0
        self.total_goals: MutableMapping[int, int] = collections.defaultdict(int)
        self.scorelines: Dict[str, int] = {}

    def record(self, goals_a: int, goals_b: int) -> None:
        self.trials += 1
        if goals_a > goals_b:
            self.home_wins += 1
        elif goals_a == goals_b:
            self.draws += 1
        else:
            self.away_wins += 1
        total = goals_a + goals_b
        if total > OVER_UNDER_LINE:
            self.over_count += 1
        self.total_goals[total] += 1
        key = score_key(goals_a, goals_b)
        self.scorelines[key] = self.scorelines.get(key, 0) + 1

    def merge(self, other: "OutcomeTally") -> "OutcomeTally":
        """Fold ``other`` into this tally and return ``self``.

        Scorelines already present here keep their position; scorelines only
        seen by ``other`` are appended in ``other``'s first-seen order.  Merging
        partial tallies in a fixed order therefore yields a reproducible tie
        break.
        """

        self.trials += other.trials
        self.home_wins += other.home_wins
        self.draws += other.draws
        self.away_wins += other.away_wins
        self.over_count += other.over_count
        for total, count in other.total_goals.items():
            self.total_goals[total] += count
        for key, count in other.scorelines.items():
            self.scorelines[key] = self.scorelines.get(key, 0) + count
        return self

    def ranked_scorelines(self, limit: int = DISTRIBUTION_SIZE) -> Tuple[ScoreFrequency, ...]:
        # sorted() is stable, so equal counts keep first-seen order.
        ordered = sorted(self.scorelines.items(), key=lambda item: item[1], reverse=True)
        return tuple(
            ScoreFrequency(score=score, count=count, prob=count / self.trials * 100)
            for score, count in ordered[:limit]
        )

    def finalize(
        self,
        *,
        lambda_home: float = 0.0,
        lambda_away: float = 0.0,
        distribution_size: int = DISTRIBUTION_SIZE,
    ) -> SimulationResult:
        if self.trials <= 0:
            raise ValueError("Cannot aggregate an empty trial stream")
        if distribution_size < 1:
            raise ValueError("distribution_size must be at least 1")
        trials = self.trials
        mean, variance = _distribution_moments(dict(self.total_goals), trials)
        distribution = self.ranked_scorelines(distribution_size)
        return SimulationResult(
            home_win_prob=self.home_wins / trials * 100,
            draw_prob=self.draws / trials * 100,
            away_win_prob=self.away_wins / trials * 100,
            over25_prob=self.over_count / trials * 100,
            variance=variance,
            most_likely_score=distribution[0].score,
            score_distribution=distribution,
            total_simulations=trials,
            lambda_home=lambda_home,
            lambda_away=lambda_away,
            mean_goals=mean,
        )


def aggregate_trials(
    trials: Iterable[Tuple[int, int]],
    *,
    lambda_home: float = 0.0,
    lambda_away: float = 0.0,
    distribution_size: int = DISTRIBUTION_SIZE,
) -> SimulationResult:
    """Reduce an iterable of ``(goals_a, goals_b)`` pairs into a result."""

    tally = OutcomeTally()
    for goals_a, goals_b in trials:
        tally.record(goals_a, goals_b)
    return tally.finalize(
        lambda_home=lambda_home,
        lambda_away=lambda_away,
        distribution_size=distribution_size,
    )


__all__ = [
    "DISTRIBUTION_SIZE",
    "OVER_UNDER_LINE",
    "OutcomeTally",
    "aggregate_trials",
    "score_key",
]
