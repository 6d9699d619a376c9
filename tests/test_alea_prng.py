"""Tests for the Alea PRNG and seeding helpers."""

import pytest
from py_fourcolor.core.alea_prng import AleaPRNG
from py_fourcolor.utils.random import make_prng


class TestAleaPRNG:
    """Test the seeded generator."""

    def test_same_seed_same_sequence(self):
        a = AleaPRNG("test_seed")
        b = AleaPRNG("test_seed")
        assert [a.random() for _ in range(20)] == [b.random() for _ in range(20)]

    def test_different_seeds(self):
        a = AleaPRNG("seed1")
        b = AleaPRNG("seed2")
        assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]

    def test_unit_interval(self):
        prng = AleaPRNG(42)
        values = [prng.random() for _ in range(1000)]
        assert all(0.0 <= v < 1.0 for v in values)
        assert prng.call_count == 1000

    def test_uniform_range(self):
        prng = AleaPRNG("uniform")
        values = [prng.uniform(10, 20) for _ in range(500)]
        assert all(10 <= v < 20 for v in values)

    def test_randint(self):
        """Test integer draws cover the range and nothing else."""
        prng = AleaPRNG("randint")
        values = {prng.randint(4) for _ in range(500)}
        assert values == {0, 1, 2, 3}

    def test_randint_rejects_empty_range(self):
        with pytest.raises(ValueError):
            AleaPRNG("x").randint(0)

    def test_shuffle_is_permutation(self):
        prng = AleaPRNG("shuffle")
        items = list(range(50))
        prng.shuffle(items)
        assert sorted(items) == list(range(50))
        assert items != list(range(50))


class TestMakePrng:
    """Test generator construction."""

    def test_explicit_seed(self):
        assert make_prng("abc").random() == AleaPRNG("abc").random()

    def test_time_seed(self):
        """Test that no seed still yields a usable string-seeded generator."""
        prng = make_prng()
        assert isinstance(prng.seed, str)
        assert 0.0 <= prng.random() < 1.0
