from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping

import pytest

from matchsim.acquisition import AcquisitionError, StaticMatchDataProvider
from matchsim.commentary import CommentaryGenerator, StaticCommentaryGenerator
from matchsim.engine import SimulationConfig, SimulationEngine
from matchsim.pipeline import MatchPrediction, run_match_prediction


class FailingCommentary(CommentaryGenerator):
    def __init__(self) -> None:
        self.retry_attempts = 0

    async def _generate_impl(
        self, team_a: str, team_b: str, summary: Mapping[str, Any]
    ) -> str:
        raise RuntimeError("quota exceeded")


@pytest.fixture()
def provider(match_payload: Dict[str, Any]) -> StaticMatchDataProvider:
    return StaticMatchDataProvider({("Galatasaray", "Fenerbahce"): match_payload})


def _engine() -> SimulationEngine:
    return SimulationEngine(SimulationConfig(trial_count=2_000, seed=31))


def test_prediction_runs_all_stages(provider: StaticMatchDataProvider) -> None:
    commentator = StaticCommentaryGenerator("Expect the hosts to press early.")
    prediction = asyncio.run(
        run_match_prediction("Galatasaray", "Fenerbahce", provider, _engine(), commentator)
    )
    assert isinstance(prediction, MatchPrediction)
    assert prediction.result == _engine().simulate(prediction.data.context)
    assert prediction.commentary == "Expect the hosts to press early."
    assert prediction.data.weather_forecast == "Clear, 18C"
    (_, _, summary), = commentator.requests
    assert summary == prediction.result.commentary_summary()


def test_prediction_without_commentator(provider: StaticMatchDataProvider) -> None:
    prediction = asyncio.run(
        run_match_prediction("Galatasaray", "Fenerbahce", provider, _engine())
    )
    assert prediction.commentary is None
    assert prediction.result.total_simulations == 2_000


def test_commentary_failure_is_logged_not_raised(
    provider: StaticMatchDataProvider, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.ERROR, logger="matchsim.pipeline")
    prediction = asyncio.run(
        run_match_prediction(
            "Galatasaray", "Fenerbahce", provider, _engine(), FailingCommentary()
        )
    )
    assert prediction.commentary is None
    assert any("Commentary unavailable" in record.getMessage() for record in caplog.records)


def test_acquisition_failure_propagates(provider: StaticMatchDataProvider) -> None:
    with pytest.raises(AcquisitionError):
        asyncio.run(run_match_prediction("Ajax", "PSV", provider, _engine()))
