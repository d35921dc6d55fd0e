"""End-to-end prediction: fetch statistics, simulate, comment."""

from __future__ import annotations

import dataclasses
import logging

from .acquisition import MatchDataProvider, ScrapedMatchData
from .commentary import CommentaryError, CommentaryGenerator
from .engine import SimulationEngine
from .models import SimulationResult

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class MatchPrediction:
    """Inputs, numeric result and optional commentary for one fixture."""

    data: ScrapedMatchData
    result: SimulationResult
    commentary: str | None = None


async def run_match_prediction(
    team_a: str,
    team_b: str,
    provider: MatchDataProvider,
    engine: SimulationEngine,
    commentator: CommentaryGenerator | None = None,
) -> MatchPrediction:
    """Fetch inputs for ``team_a`` vs ``team_b``, simulate and comment.

    Acquisition errors propagate since there is nothing to simulate without
    inputs.  Commentary is best-effort: a failing generator is logged and the
    prediction is returned without text.
    """

    logger.info("Fetching statistics for %s vs %s", team_a, team_b)
    data = await provider.fetch_match_data(team_a, team_b)

    logger.info("Running %d trials", engine.config.trial_count)
    result = engine.simulate(data.context)

    commentary: str | None = None
    if commentator is not None:
        try:
            commentary = await commentator.generate(
                team_a, team_b, result.commentary_summary()
            )
        except CommentaryError as err:
            logger.error("Commentary unavailable for %s vs %s: %s", team_a, team_b, err)
    return MatchPrediction(data=data, result=result, commentary=commentary)


__all__ = ["MatchPrediction", "run_match_prediction"]
