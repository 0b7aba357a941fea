"""Tests for random source helpers."""

from __future__ import annotations

from collections import Counter
from unittest.mock import patch

import pytest

from gauntlet.core.errors import EmptyInputError
from gauntlet.core.randomness import (
    SystemRandomSource,
    get_random_source,
    pick_one,
    shuffle,
)
from gauntlet.core.settings import Settings


class TestSystemRandomSource:
    """Test the default random source."""

    def test_integer_stays_in_inclusive_range(self):
        """Test integers are drawn from [low, high]."""
        rng = SystemRandomSource(seed=7)
        values = {rng.integer(2, 4) for _ in range(200)}

        assert values == {2, 3, 4}

    def test_single_value_range(self):
        """Test a degenerate range always yields its only value."""
        rng = SystemRandomSource(seed=1)

        assert rng.integer(5, 5) == 5

    def test_empty_range_raises(self):
        """Test low greater than high is rejected."""
        rng = SystemRandomSource()

        with pytest.raises(ValueError):
            rng.integer(3, 2)

    def test_same_seed_same_sequence(self):
        """Test seeded sources are reproducible."""
        first = SystemRandomSource(seed=42)
        second = SystemRandomSource(seed=42)

        assert [first.integer(0, 100) for _ in range(10)] == [
            second.integer(0, 100) for _ in range(10)
        ]


class TestGetRandomSource:
    """Test random source construction from settings."""

    def test_explicit_seed_wins(self):
        """Test an explicit seed is used as given."""
        a = get_random_source(3)
        b = get_random_source(3)

        assert a.integer(0, 1000) == b.integer(0, 1000)

    def test_seed_from_settings(self):
        """Test the configured seed is used when none is passed."""
        settings = Settings(GAUNTLET_RANDOM_SEED=11)
        with patch("gauntlet.core.settings.get_settings", return_value=settings):
            a = get_random_source()
            b = get_random_source()

        assert a.integer(0, 1000) == b.integer(0, 1000)


class TestShuffle:
    """Test Fisher-Yates shuffle."""

    def test_returns_permutation(self):
        """Test shuffle keeps every element exactly once."""
        items = list(range(20))
        result = shuffle(items, SystemRandomSource(seed=5))

        assert sorted(result) == items

    def test_does_not_mutate_input(self):
        """Test the input sequence is left untouched."""
        items = [1, 2, 3, 4]
        shuffle(items, SystemRandomSource(seed=5))

        assert items == [1, 2, 3, 4]

    def test_empty_and_single(self):
        """Test trivial sequences shuffle to themselves."""
        assert shuffle([]) == []
        assert shuffle(["a"]) == ["a"]

    def test_uses_fisher_yates_draws(self, scripted_rng):
        """Test one draw per position from the end down to index 1."""
        shuffle(["a", "b", "c", "d"], scripted_rng)

        assert scripted_rng.calls == [(0, 3), (0, 2), (0, 1)]

    def test_scripted_draws_give_expected_order(self, scripted_rng):
        """Test swaps follow the drawn indices."""
        scripted_rng.values = [0, 0, 0]

        # i=2 swaps with 0 -> c b a, i=1 swaps with 0 -> b c a
        assert shuffle(["a", "b", "c"], scripted_rng) == ["b", "c", "a"]

    def test_roughly_uniform(self):
        """Test every permutation of three elements shows up."""
        rng = SystemRandomSource(seed=123)
        counts = Counter(tuple(shuffle("abc", rng)) for _ in range(3000))

        assert len(counts) == 6
        assert min(counts.values()) > 350


class TestPickOne:
    """Test picking a single element."""

    def test_picks_element(self, scripted_rng):
        """Test the drawn index selects the element."""
        scripted_rng.values = [1]

        assert pick_one(["x", "y", "z"], scripted_rng) == "y"

    def test_empty_raises(self):
        """Test picking from nothing raises EmptyInputError."""
        with pytest.raises(EmptyInputError) as exc_info:
            pick_one([])

        assert exc_info.value.error_code == "EMPTY_INPUT"
