"""Team statistics acquisition.

The engine never fetches data itself.  This module defines the collaborator
that does: a provider returns a :class:`ScrapedMatchData` whose ``context``
is already normalised and validated, so the caller can hand it straight to
:meth:`matchsim.engine.SimulationEngine.simulate`.

The production provider asks Gemini, with Google Search grounding enabled,
to estimate team ratings and answer with a bare JSON object.  The grounding
tool does not support a JSON response mime type, so models occasionally wrap
the object in markdown fences; :func:`parse_scraped_payload` strips those
before decoding.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Mapping

from .client import AsyncHTTPClient, extract_text, generate_content_url
from .models import InvalidTeamStatisticsError, MatchContext, build_match_context

logger = logging.getLogger(__name__)

DEFAULT_ACQUISITION_MODEL = "gemini-2.5-flash"

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


class AcquisitionError(RuntimeError):
    """Raised when team statistics cannot be retrieved or decoded."""


@dataclasses.dataclass(frozen=True, slots=True)
class ScrapedMatchData:
    """Validated match inputs plus the free-text context returned with them."""

    context: MatchContext
    weather_forecast: str = ""
    tactical_analysis: str = ""


def build_acquisition_prompt(team_a: str, team_b: str) -> str:
    """Request text describing the JSON object the data model expects."""

    return f"""
Act as a football data scraper.
Search for the latest statistics, recent form (last 5 matches), current injuries,
and tactical strengths for {team_a} and {team_b}.

Based on the search results, estimate the following numeric values:
1. Recent Form (0-100): 100 is winning all recent games, 0 is losing all.
2. Attack Strength (0-200): 100 is average, >100 is strong.
3. Defense Strength (0-200): 100 is average.
4. Injury Impact (0.0-1.0): 1.0 means full squad available, 0.7 means key players missing.

Also provide a brief "weatherForecast" for the likely match location (guess based on the home team)
and a "tacticalAnalysis" summary (max 2 sentences).

RETURN ONLY A VALID JSON OBJECT. Do not wrap it in markdown code blocks.
Structure:
{{
  "teamA": {{
    "name": "{team_a}",
    "recentForm": number,
    "attackStrength": number,
    "defenseStrength": number,
    "injuryImpact": number,
    "missingKeyPlayers": ["string"],
    "last5Matches": ["string"]
  }},
  "teamB": {{
    "name": "{team_b}",
    "recentForm": number,
    "attackStrength": number,
    "defenseStrength": number,
    "injuryImpact": number,
    "missingKeyPlayers": ["string"],
    "last5Matches": ["string"]
  }},
  "weatherForecast": "string",
  "tacticalAnalysis": "string"
}}
""".strip()


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text).strip()


def scraped_data_from_mapping(payload: Mapping[str, Any]) -> ScrapedMatchData:
    """Build :class:`ScrapedMatchData` from a decoded payload."""

    try:
        context = build_match_context(payload)
    except InvalidTeamStatisticsError as exc:
        raise AcquisitionError(f"Retrieved team statistics are invalid: {exc}") from exc
    return ScrapedMatchData(
        context=context,
        weather_forecast=str(payload.get("weatherForecast") or payload.get("weather_forecast") or ""),
        tactical_analysis=str(
            payload.get("tacticalAnalysis") or payload.get("tactical_analysis") or ""
        ),
    )


def parse_scraped_payload(text: str) -> ScrapedMatchData:
    """Decode the provider's raw text answer.

    Raises:
        AcquisitionError: if the text is empty, is not a JSON object, or
            carries team statistics outside their documented domains.
    """

    if not text or not text.strip():
        raise AcquisitionError("No data returned by the statistics provider")
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Provider returned malformed JSON: %s", text)
        raise AcquisitionError("Provider returned an invalid JSON payload") from exc
    if not isinstance(payload, Mapping):
        raise AcquisitionError("Provider payload must be a JSON object")
    return scraped_data_from_mapping(payload)


class MatchDataProvider(ABC):
    """Base class for statistics providers with retry logic."""

    name: str = "generic"
    retry_attempts: int = 2
    retry_backoff: float = 0.5
    timeout_seconds: float = 30.0

    async def fetch_match_data(self, team_a: str, team_b: str) -> ScrapedMatchData:
        """Fetch match inputs with retry and timeout handling."""

        for attempt in range(1, self.retry_attempts + 2):
            try:
                return await asyncio.wait_for(
                    self._fetch_impl(team_a, team_b), timeout=self.timeout_seconds
                )
            except Exception as err:
                logger.warning(
                    "Provider %s attempt %s/%s failed: %s",
                    self.name,
                    attempt,
                    self.retry_attempts + 1,
                    err,
                )
                if attempt > self.retry_attempts:
                    if isinstance(err, AcquisitionError):
                        raise
                    raise AcquisitionError(
                        f"Could not fetch statistics for {team_a} vs {team_b}: {err}"
                    ) from err
                await asyncio.sleep(self.retry_backoff * attempt)
        raise AcquisitionError("Provider exhausted its retries")  # pragma: no cover

    async def aclose(self) -> None:
        """Release resources held by the provider."""

    @abstractmethod
    async def _fetch_impl(self, team_a: str, team_b: str) -> ScrapedMatchData:
        """Implementation hook for subclasses."""


class StaticMatchDataProvider(MatchDataProvider):
    """Deterministic provider used in tests and offline runs."""

    def __init__(
        self,
        payloads: Mapping[tuple[str, str], Mapping[str, Any] | ScrapedMatchData],
    ) -> None:
        self.name = "static"
        self._payloads = dict(payloads)
        self.retry_attempts = 0
        self.timeout_seconds = 1.0

    async def _fetch_impl(self, team_a: str, team_b: str) -> ScrapedMatchData:
        try:
            payload = self._payloads[(team_a, team_b)]
        except KeyError as exc:
            raise AcquisitionError(f"No statistics recorded for {team_a} vs {team_b}") from exc
        logger.debug("Static provider returning statistics for %s vs %s", team_a, team_b)
        if isinstance(payload, ScrapedMatchData):
            return payload
        return scraped_data_from_mapping(payload)


class GeminiMatchDataProvider(MatchDataProvider):
    """Estimate team ratings with Gemini and Google Search grounding."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_ACQUISITION_MODEL,
        client: AsyncHTTPClient | None = None,
    ) -> None:
        if not api_key:
            raise AcquisitionError("An API key is required for the Gemini provider")
        self.name = "gemini"
        self._api_key = api_key
        self.model = model
        self._client = client or AsyncHTTPClient(timeout=self.timeout_seconds)

    def request_body(self, team_a: str, team_b: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": build_acquisition_prompt(team_a, team_b)}]}],
            "tools": [{"google_search": {}}],
        }

    async def _fetch_impl(self, team_a: str, team_b: str) -> ScrapedMatchData:
        response = await self._client.post_json(
            generate_content_url(self.model),
            self.request_body(team_a, team_b),
            headers={"x-goog-api-key": self._api_key},
        )
        return parse_scraped_payload(extract_text(response))

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "AcquisitionError",
    "DEFAULT_ACQUISITION_MODEL",
    "GeminiMatchDataProvider",
    "MatchDataProvider",
    "ScrapedMatchData",
    "StaticMatchDataProvider",
    "build_acquisition_prompt",
    "parse_scraped_payload",
    "scraped_data_from_mapping",
    "strip_code_fences",
]
