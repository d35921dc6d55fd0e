"""Natural-language commentary on a finished simulation."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

from .client import AsyncHTTPClient, extract_text, generate_content_url

logger = logging.getLogger(__name__)

DEFAULT_COMMENTARY_MODEL = "gemini-3-pro-preview"
DEFAULT_THINKING_BUDGET = 2048
FALLBACK_COMMENTARY = "Analysis unavailable."


class CommentaryError(RuntimeError):
    """Raised when the commentary collaborator fails after its retries."""


def build_commentary_prompt(team_a: str, team_b: str, summary: Mapping[str, Any]) -> str:
    return f"""
Analyze this football match simulation result between {team_a} and {team_b}.
Simulation Output: {json.dumps(summary)}

Provide a professor-style commentary on why the math might be predicting this.
Focus on tactical mismatch or statistical variance. Keep it under 150 words.
""".strip()


class CommentaryGenerator(ABC):
    """Base class for commentary generators with retry logic."""

    name: str = "generic"
    retry_attempts: int = 1
    retry_backoff: float = 0.5
    timeout_seconds: float = 60.0

    async def generate(self, team_a: str, team_b: str, summary: Mapping[str, Any]) -> str:
        """Return commentary text, or :data:`FALLBACK_COMMENTARY` when empty."""

        for attempt in range(1, self.retry_attempts + 2):
            try:
                text = await asyncio.wait_for(
                    self._generate_impl(team_a, team_b, summary),
                    timeout=self.timeout_seconds,
                )
            except Exception as err:
                logger.warning(
                    "Commentary %s attempt %s/%s failed: %s",
                    self.name,
                    attempt,
                    self.retry_attempts + 1,
                    err,
                )
                if attempt > self.retry_attempts:
                    raise CommentaryError(f"Commentary generation failed: {err}") from err
                await asyncio.sleep(self.retry_backoff * attempt)
                continue
            return text.strip() or FALLBACK_COMMENTARY
        raise CommentaryError("Commentary exhausted its retries")  # pragma: no cover

    async def aclose(self) -> None:
        """Release resources held by the generator."""

    @abstractmethod
    async def _generate_impl(
        self, team_a: str, team_b: str, summary: Mapping[str, Any]
    ) -> str:
        """Implementation hook for subclasses."""


class StaticCommentaryGenerator(CommentaryGenerator):
    """Return canned text; records the summaries it was asked about."""

    def __init__(self, text: str = "") -> None:
        self.name = "static"
        self._text = text
        self.retry_attempts = 0
        self.requests: list[tuple[str, str, Mapping[str, Any]]] = []

    async def _generate_impl(
        self, team_a: str, team_b: str, summary: Mapping[str, Any]
    ) -> str:
        self.requests.append((team_a, team_b, summary))
        return self._text


class GeminiCommentaryGenerator(CommentaryGenerator):
    """Ask a Gemini thinking model for a short tactical reading of the numbers."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_COMMENTARY_MODEL,
        thinking_budget: int = DEFAULT_THINKING_BUDGET,
        client: AsyncHTTPClient | None = None,
    ) -> None:
        if not api_key:
            raise CommentaryError("An API key is required for Gemini commentary")
        self.name = "gemini"
        self._api_key = api_key
        self.model = model
        self.thinking_budget = thinking_budget
        self._client = client or AsyncHTTPClient(timeout=self.timeout_seconds)

    def request_body(
        self, team_a: str, team_b: str, summary: Mapping[str, Any]
    ) -> dict[str, Any]:
        return {
            "contents": [
                {"parts": [{"text": build_commentary_prompt(team_a, team_b, summary)}]}
            ],
            "generationConfig": {
                "thinkingConfig": {"thinkingBudget": self.thinking_budget}
            },
        }

    async def _generate_impl(
        self, team_a: str, team_b: str, summary: Mapping[str, Any]
    ) -> str:
        response = await self._client.post_json(
            generate_content_url(self.model),
            self.request_body(team_a, team_b, summary),
            headers={"x-goog-api-key": self._api_key},
        )
        return extract_text(response)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "CommentaryError",
    "CommentaryGenerator",
    "DEFAULT_COMMENTARY_MODEL",
    "FALLBACK_COMMENTARY",
    "GeminiCommentaryGenerator",
    "StaticCommentaryGenerator",
    "build_commentary_prompt",
]
