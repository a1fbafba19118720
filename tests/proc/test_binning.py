"""Tests for range binning, histogram and comparison template."""

import numpy as np
import pytest

from pypartialroc.proc import (
    BinnedSamples,
    InvalidInputError,
    bin_predictions,
    bin_template,
    build_bins_and_template,
    discretize,
)
from pypartialroc.proc._binning import _fractional_area, sample_size


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def uniform_samples():
    """Test and background predictions from U(0, 1)."""
    rng = np.random.default_rng(42)
    return rng.uniform(size=200), rng.uniform(size=1000)


# ---------------------------------------------------------------------------
# bin_predictions
# ---------------------------------------------------------------------------

class TestBinPredictions:
    """Bin index map."""

    def test_order_preserving(self):
        rng = np.random.default_rng(0)
        values = np.sort(rng.normal(size=500))
        bins = bin_predictions(values, values.min(), values.max(), 50)
        assert np.all(np.diff(bins) >= 0)

    def test_range(self):
        rng = np.random.default_rng(1)
        values = rng.exponential(size=500)
        bins = bin_predictions(values, values.min(), values.max(), 37)
        assert bins.min() >= 1
        assert bins.max() <= 37

    def test_endpoints(self):
        values = np.array([-2.0, 0.0, 3.0])
        bins = bin_predictions(values, -2.0, 3.0, 10)
        assert bins[0] == 1
        assert bins[-1] == 10

    def test_known_values(self):
        values = np.array([0.0, 0.24, 0.5, 0.99, 1.0])
        bins = bin_predictions(values, 0.0, 1.0, 5)
        # floor(v * 4) + 1
        assert list(bins) == [1, 1, 3, 4, 5]

    def test_clamp_out_of_range(self):
        """Values beyond the stated range are clamped into [1, n_bins]."""
        bins = bin_predictions(np.array([-1.0, 2.0]), 0.0, 1.0, 5)
        assert list(bins) == [1, 5]

    def test_no_clamp(self):
        bins = bin_predictions(np.array([-1.0, 2.0]), 0.0, 1.0, 5, clamp=False)
        assert list(bins) == [-3, 9]

    def test_integer_dtype(self):
        bins = bin_predictions(np.array([0.0, 1.0]), 0.0, 1.0, 5)
        assert np.issubdtype(bins.dtype, np.integer)

    def test_constant_range(self):
        with pytest.raises(InvalidInputError, match="identical"):
            bin_predictions(np.array([1.0, 1.0]), 1.0, 1.0, 5)


# ---------------------------------------------------------------------------
# discretize
# ---------------------------------------------------------------------------

class TestDiscretize:
    """Cleaning, pooling, binning and histogram."""

    def test_returns_binned_samples(self, uniform_samples):
        r = discretize(*uniform_samples, 100)
        assert isinstance(r, BinnedSamples)

    def test_split_sizes(self, uniform_samples):
        test, background = uniform_samples
        r = discretize(test, background, 100)
        assert r.n_test == 200
        assert r.n_background == 1000

    def test_split_matches_pooled_binning(self, uniform_samples):
        """Re-split halves equal binning each sample on the pooled range."""
        test, background = uniform_samples
        r = discretize(test, background, 100)
        assert np.array_equal(
            r.test_bins, bin_predictions(test, r.min_value, r.max_value, 100),
        )
        assert np.array_equal(
            r.background_bins,
            bin_predictions(background, r.min_value, r.max_value, 100),
        )

    def test_pooled_range(self):
        r = discretize(np.array([5.0, 2.0]), np.array([-1.0, 3.0]), 10)
        assert r.min_value == -1.0
        assert r.max_value == 5.0

    def test_all_bins_in_range(self, uniform_samples):
        r = discretize(*uniform_samples, 64)
        for bins in (r.test_bins, r.background_bins):
            assert bins.min() >= 1
            assert bins.max() <= 64

    def test_counts_exact(self, uniform_samples):
        test, background = uniform_samples
        r = discretize(test, background, 100)
        assert r.counts.shape == (100,)
        assert r.counts.sum() == 1000
        expected = np.array([np.sum(r.background_bins == k) for k in range(1, 101)])
        assert np.array_equal(r.counts, expected)

    def test_known_example(self):
        r = discretize(np.array([0.0, 1.0]), np.array([0.0, 0.5, 1.0]), 3)
        assert list(r.background_bins) == [1, 2, 3]
        assert list(r.test_bins) == [1, 3]
        assert list(r.counts) == [1, 1, 1]
        assert np.allclose(r.fractional_area, [1 / 3, 2 / 3, 1.0])

    def test_fractional_area_descending_order(self):
        """First element is the share of background in the top bin."""
        background = np.array([0.0, 0.0, 0.0, 1.0])
        r = discretize(np.array([0.5]), background, 4)
        assert r.fractional_area[0] == pytest.approx(0.25)
        assert r.fractional_area[-1] == pytest.approx(1.0)

    def test_fractional_area_monotone(self, uniform_samples):
        r = discretize(*uniform_samples, 100)
        assert np.all(np.diff(r.fractional_area) >= 0)
        assert r.fractional_area[-1] == pytest.approx(1.0)
        assert np.all((r.fractional_area >= 0) & (r.fractional_area <= 1))

    def test_non_finite_removed(self):
        test = np.array([0.1, np.nan, 0.9])
        background = np.array([0.0, np.inf, 0.5, -np.inf, np.nan, 1.0])
        r = discretize(test, background, 10)
        assert r.n_background == 3
        assert r.n_test == 2
        assert r.counts.sum() == 3

    def test_modes_agree_on_ordinary_input(self, uniform_samples):
        clamp = discretize(*uniform_samples, 100, mode="clamp")
        discard = discretize(*uniform_samples, 100, mode="discard")
        assert np.array_equal(clamp.test_bins, discard.test_bins)
        assert np.array_equal(clamp.counts, discard.counts)
        assert np.allclose(clamp.fractional_area, discard.fractional_area)

    def test_fractional_area_zero_counts(self):
        assert np.array_equal(_fractional_area(np.zeros(5, dtype=np.int64)), np.zeros(5))


# ---------------------------------------------------------------------------
# discretize validation
# ---------------------------------------------------------------------------

class TestDiscretizeValidation:
    """Invalid inputs raise before any binning."""

    def test_empty_test(self):
        with pytest.raises(InvalidInputError, match="empty"):
            discretize(np.array([]), np.array([0.0, 1.0]), 10)

    def test_empty_background(self):
        with pytest.raises(InvalidInputError, match="empty"):
            discretize(np.array([0.0, 1.0]), np.array([]), 10)

    def test_background_all_non_finite(self):
        with pytest.raises(InvalidInputError, match="finite"):
            discretize(np.array([0.0, 1.0]), np.array([np.nan, np.inf]), 10)

    def test_test_all_non_finite(self):
        with pytest.raises(InvalidInputError, match="finite"):
            discretize(np.array([np.nan]), np.array([0.0, 1.0]), 10)

    def test_constant_values(self):
        with pytest.raises(InvalidInputError, match="identical"):
            discretize(np.full(5, 0.3), np.full(10, 0.3), 10)

    @pytest.mark.parametrize("n_bins", [1, 0, -5])
    def test_bad_n_bins(self, n_bins):
        with pytest.raises(InvalidInputError, match="n_bins"):
            discretize(np.array([0.0, 1.0]), np.array([0.0, 1.0]), n_bins)

    def test_bad_mode(self):
        with pytest.raises(InvalidInputError, match="mode"):
            discretize(np.array([0.0, 1.0]), np.array([0.0, 1.0]), 10, mode="wrap")

    def test_not_1d(self):
        with pytest.raises(ValueError, match="1-D"):
            discretize(np.ones((2, 2)), np.array([0.0, 1.0]), 10)


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------

class TestBinTemplate:
    """Descending threshold matrix."""

    def test_shape(self):
        assert bin_template(7, 12).shape == (7, 12)

    def test_columns_descending(self):
        t = bin_template(4, 6)
        for j in range(6):
            assert np.all(t[:, j] == 6 - j)

    def test_read_only(self):
        t = bin_template(3, 5)
        with pytest.raises(ValueError):
            t[0, 0] = 1.0

    def test_bad_n_samp(self):
        with pytest.raises(InvalidInputError, match="n_samp"):
            bin_template(0, 10)

    def test_bad_n_bins(self):
        with pytest.raises(InvalidInputError, match="n_bins"):
            bin_template(5, 1)


# ---------------------------------------------------------------------------
# Sample size and combined builder
# ---------------------------------------------------------------------------

class TestSampleSize:
    """Per-replicate subsample size."""

    def test_ceiling(self):
        assert sample_size(50.0, 7) == 4

    def test_at_least_one(self):
        assert sample_size(0.001, 10) == 1

    def test_full(self):
        assert sample_size(100.0, 9) == 9

    @pytest.mark.parametrize("pct", [0.0, -10.0, 150.0])
    def test_out_of_range(self, pct):
        with pytest.raises(InvalidInputError, match="sample_pct"):
            sample_size(pct, 10)


class TestBuildBinsAndTemplate:
    """Discretization and template together."""

    def test_default_one_row_per_test_value(self, uniform_samples):
        binned, template = build_bins_and_template(*uniform_samples, n_bins=200)
        assert template.shape == (binned.n_test, 200)
        assert binned.mode == "discard"

    def test_sample_percentage(self, uniform_samples):
        binned, template = build_bins_and_template(
            *uniform_samples, n_bins=50, sample_pct=25.0,
        )
        assert template.shape == (50, 50)
