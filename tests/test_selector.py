"""Tests for uniform random selection."""

import random
from collections import Counter

import pytest

from core.exceptions import EmptyPoolError
from services.selector import RandomSelector


def test_empty_pool_raises():
    with pytest.raises(EmptyPoolError):
        RandomSelector().pick_uniform([])


def test_single_candidate_always_chosen():
    selector = RandomSelector(random.Random(0))
    assert all(selector.pick_uniform(["only"]) == "only" for _ in range(20))


def test_selection_is_uniform():
    """Each of five candidates lands close to 20% over many draws."""
    selector = RandomSelector(random.Random(1234))
    candidates = ["a", "b", "c", "d", "e"]
    draws = 50_000

    counts = Counter(selector.pick_uniform(candidates) for _ in range(draws))

    assert set(counts) == set(candidates)
    for candidate in candidates:
        assert abs(counts[candidate] / draws - 0.2) < 0.01


def test_seeded_selector_is_reproducible():
    first = RandomSelector.seeded(42)
    second = RandomSelector.seeded(42)
    pool = list(range(100))

    assert [first.pick_uniform(pool) for _ in range(10)] == [second.pick_uniform(pool) for _ in range(10)]


def test_unseeded_selector_uses_system_random():
    selector = RandomSelector.seeded(None)
    assert isinstance(selector._rng, random.SystemRandom)
    assert selector.pick_uniform([1, 2, 3]) in {1, 2, 3}
