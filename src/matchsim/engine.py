"""Monte Carlo simulation engine.

The engine wires the three stages together: expected-goal rates are derived
once per team, each trial draws two Poisson goal counts, and the trials are
folded into an :class:`~matchsim.aggregation.OutcomeTally` as they are
produced.  Each engine owns its random source so concurrent engines never
share generator state; pass a seed (or a pre-built generator) for
reproducible runs.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Mapping

from .aggregation import DISTRIBUTION_SIZE, OutcomeTally
from .models import MatchContext, SimulationResult, build_match_context
from .rates import match_lambdas
from .sampling import RandomSource, make_rng, poisson_sample

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 10_000


def check_trial_count(trial_count: object) -> int:
    """Fail fast on a trial count the aggregator cannot normalise."""

    if isinstance(trial_count, bool) or not isinstance(trial_count, int):
        raise ValueError(f"trial_count must be an integer, got {trial_count!r}")
    if trial_count <= 0:
        raise ValueError(f"trial_count must be positive, got {trial_count}")
    return trial_count


@dataclasses.dataclass(slots=True)
class SimulationConfig:
    """Configuration for the simulation engine."""

    trial_count: int = DEFAULT_TRIALS
    seed: int | None = None
    distribution_size: int = DISTRIBUTION_SIZE


class SimulationEngine:
    """Run seeded Monte Carlo simulations of a single fixture.

    Usage:
        engine = SimulationEngine(SimulationConfig(seed=7))
        result = engine.simulate(context)
        print(result.home_win_prob, result.most_likely_score)
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        *,
        rng: RandomSource | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        check_trial_count(self.config.trial_count)
        if self.config.distribution_size < 1:
            raise ValueError("distribution_size must be at least 1")
        self._rng: RandomSource = rng if rng is not None else make_rng(self.config.seed)

    @property
    def rng(self) -> RandomSource:
        return self._rng

    def simulate(
        self,
        context: MatchContext | Mapping[str, object],
        trial_count: int | None = None,
    ) -> SimulationResult:
        """Simulate ``context`` and aggregate the trials.

        Args:
            context: Fixture to simulate; mappings are normalised and
                validated through :func:`~matchsim.models.build_match_context`.
            trial_count: Overrides the configured trial count for this call.

        Returns:
            A fully populated :class:`SimulationResult`.

        Raises:
            InvalidTeamStatisticsError: if team statistics are out of domain.
            ValueError: if the trial count is not a positive integer.
        """

        trials = check_trial_count(
            self.config.trial_count if trial_count is None else trial_count
        )
        match = build_match_context(context)
        lambda_home, lambda_away = match_lambdas(match)
        logger.debug(
            "Scoring rates %s %.3f vs %s %.3f",
            match.team_a.name,
            lambda_home,
            match.team_b.name,
            lambda_away,
        )

        start = time.perf_counter()
        rng = self._rng
        tally = OutcomeTally()
        for _ in range(trials):
            goals_a = poisson_sample(lambda_home, rng)
            goals_b = poisson_sample(lambda_away, rng)
            tally.record(goals_a, goals_b)
        result = tally.finalize(
            lambda_home=lambda_home,
            lambda_away=lambda_away,
            distribution_size=self.config.distribution_size,
        )
        logger.debug(
            "Simulated %s vs %s over %d trials in %.3fs -> H %.1f%% D %.1f%% A %.1f%% (%s)",
            match.team_a.name,
            match.team_b.name,
            trials,
            time.perf_counter() - start,
            result.home_win_prob,
            result.draw_prob,
            result.away_win_prob,
            result.most_likely_score,
        )
        return result


def simulate(
    context: MatchContext | Mapping[str, object],
    trial_count: int = DEFAULT_TRIALS,
    *,
    rng: RandomSource | None = None,
    seed: int | None = None,
) -> SimulationResult:
    """One-shot convenience wrapper around :class:`SimulationEngine`.

    ``rng`` takes precedence over ``seed`` when both are supplied.
    """

    engine = SimulationEngine(SimulationConfig(trial_count=trial_count, seed=seed), rng=rng)
    return engine.simulate(context)


__all__ = [
    "DEFAULT_TRIALS",
    "SimulationConfig",
    "SimulationEngine",
    "check_trial_count",
    "simulate",
]
