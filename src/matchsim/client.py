"""Shared async HTTP utilities for the Gemini collaborators."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import requests

GEMINI_API_ROOT = "https://generativelanguage.googleapis.com/v1beta"


class AsyncHTTPClient:
    """Very small async wrapper around :mod:`requests` for our collaborators."""

    def __init__(self, timeout: float | None = None) -> None:
        self._session = requests.Session()
        self._timeout = timeout

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._request_json(url, payload, params=params, headers=headers),
        )

    def _request_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._session.post(
            url,
            json=dict(payload),
            params=params,
            headers=headers,
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._session.close)


def generate_content_url(model: str) -> str:
    return f"{GEMINI_API_ROOT}/models/{model}:generateContent"


def extract_text(response: Mapping[str, Any]) -> str:
    """Concatenate the text parts of the first Gemini candidate."""

    candidates = response.get("candidates") or []
    if not candidates:
        return ""
    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, Mapping))


__all__ = ["AsyncHTTPClient", "GEMINI_API_ROOT", "extract_text", "generate_content_url"]
