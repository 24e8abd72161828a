"""Tests for the adaptive stopping criterion."""

import math

import pytest

from georobust.consensus.stopping import required_iterations


class TestRequiredIterations:

    def test_matches_closed_form(self):
        expected = math.ceil(math.log(0.01) / math.log(1.0 - 0.5 ** 3))
        assert required_iterations(0.5, 3, 0.99, 10000) == expected

    def test_zero_inlier_ratio_uses_budget(self):
        assert required_iterations(0.0, 4, 0.99, 1234) == 1234

    def test_all_inliers_needs_one_iteration(self):
        assert required_iterations(1.0, 6, 0.99, 5000) == 1

    def test_clamped_to_max_iterations(self):
        """A tiny inlier ratio would need millions of iterations."""
        assert required_iterations(0.01, 6, 0.999, 500) == 500

    def test_never_below_one(self):
        assert required_iterations(0.999, 2, 0.5, 100) >= 1

    def test_decreases_with_inlier_ratio(self):
        ks = [required_iterations(w, 4, 0.99, 100000) for w in (0.2, 0.4, 0.6, 0.8)]
        assert ks == sorted(ks, reverse=True)

    def test_increases_with_confidence(self):
        low = required_iterations(0.5, 4, 0.9, 100000)
        high = required_iterations(0.5, 4, 0.999, 100000)
        assert high > low

    @pytest.mark.parametrize("sample_size, max_iterations", [(0, 100), (3, 0)])
    def test_invalid_arguments(self, sample_size, max_iterations):
        with pytest.raises(ValueError):
            required_iterations(0.5, sample_size, 0.99, max_iterations)
