"""
matchsim: Monte Carlo football match prediction.

This package converts team strength indicators into expected-goal rates,
simulates a match many times under a Poisson scoring model and reduces the
trials into outcome probabilities, an over/under probability, a volatility
measure and a ranked scoreline table.
"""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - exercised in packaging workflows
    __version__ = version("matchsim")
except PackageNotFoundError:  # pragma: no cover - local editable installs
    __version__ = "0.0.0"

_EXPORTS = {
    # Data model
    "TeamAttributes": ".models",
    "MatchContext": ".models",
    "ScoreFrequency": ".models",
    "SimulationResult": ".models",
    "InvalidTeamStatisticsError": ".models",
    "build_match_context": ".models",
    "validate_match_context": ".models",
    # Engine stages
    "weighted_lambda": ".rates",
    "match_lambdas": ".rates",
    "poisson_sample": ".sampling",
    "make_rng": ".sampling",
    "OutcomeTally": ".aggregation",
    "aggregate_trials": ".aggregation",
    "SimulationEngine": ".engine",
    "simulate": ".engine",
    # Collaborators
    "run_match_prediction": ".pipeline",
    # Utility functions
    "get_config": ".config",
    "configure_logging": ".logging",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> object:  # pragma: no cover - thin lazy importer
    from importlib import import_module

    target_module = _EXPORTS.get(name)
    if not target_module:
        raise AttributeError(f"module {__name__} has no attribute {name}")
    module = import_module(target_module, __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(list(globals().keys()) + __all__)
