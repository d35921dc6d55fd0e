"""Logging helpers for matchsim."""

from __future__ import annotations

import logging
from typing import Iterable


def configure_logging(
    level: int | str = logging.INFO, handlers: Iterable[logging.Handler] | None = None
) -> None:
    """Configure root logging for command line and embedded use.

    Simulation runs are short, but the collaborators talk to remote services
    and retry on failure; a consistent format makes it easier to line up a
    retry warning with the match being predicted.  Applications embedding
    the engine can call this helper to adopt the same layout.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=list(handlers) if handlers else None,
    )
