"""Poisson goal sampling for individual trials."""

from __future__ import annotations

import math
import random
from typing import Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Anything exposing a uniform ``[0, 1)`` draw, e.g. :class:`random.Random`."""

    def random(self) -> float:
        ...


def make_rng(seed: int | None = None) -> random.Random:
    """Build an independent generator; ``None`` seeds from system entropy."""

    return random.Random(seed)


def poisson_sample(lam: float, rng: RandomSource) -> int:
    """Draw one goal count from a Poisson law with mean ``lam``.

    Knuth's multiplication method: keep multiplying uniform draws into a
    running product until it drops to ``exp(-lam)`` or below; the number of
    draws minus one is Poisson distributed.  The cost grows linearly with
    ``lam``, which is fine for football scoring rates.  Rates large enough
    for ``exp(-lam)`` to underflow are rejected since the loop would only
    stop when the running product underflows too.
    """

    if not lam > 0.0:
        raise ValueError(f"Poisson rate must be positive, got {lam!r}")
    limit = math.exp(-lam)
    if limit == 0.0:
        raise ValueError(f"Poisson rate {lam!r} is too large to sample")
    k = 0
    p = 1.0
    while True:
        k += 1
        p *= rng.random()
        if p <= limit:
            return k - 1


__all__ = ["RandomSource", "make_rng", "poisson_sample"]
