"""Uniform random selection over the remaining pools."""

from __future__ import annotations

import random
from typing import Optional, Sequence, TypeVar

from core import get_logger
from core.exceptions import EmptyPoolError

logger = get_logger(__name__)

T = TypeVar("T")


class RandomSelector:
    """Draws one element from a candidate list with equal probability.

    Every call is independent: the selector keeps no memory of earlier
    picks, so fairness depends only on the caller passing the current pool.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.SystemRandom()

    @classmethod
    def seeded(cls, seed: Optional[int]) -> "RandomSelector":
        """Build a reproducible selector for rehearsals, or a system one."""
        if seed is None:
            return cls()
        logger.info(f"Using seeded selector (seed={seed}); draws are reproducible")
        return cls(random.Random(seed))

    def pick_uniform(self, candidates: Sequence[T]) -> T:
        """Return a uniformly chosen element of ``candidates``.

        Raises:
            EmptyPoolError: If ``candidates`` is empty
        """
        if not candidates:
            raise EmptyPoolError("Cannot pick from an empty pool")
        return candidates[self._rng.randrange(len(candidates))]
