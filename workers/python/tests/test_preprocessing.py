"""
Tests for Stream Preprocessing

Moving-average and Savitzky-Golay elevation smoothing.
"""

import pytest
from coach_engine.analysis.preprocessing import (
    moving_average,
    savgol_smooth,
    smooth_elevation,
)


class TestMovingAverage:
    """Tests for the clamped symmetric moving average"""

    def test_empty_input_returns_empty(self):
        """Empty input is not an error"""
        assert moving_average([]) == []

    def test_output_has_same_length(self):
        """Smoothing never changes the number of samples"""
        values = [float(v) for v in range(37)]
        assert len(moving_average(values)) == len(values)

    def test_window_is_clamped_at_boundaries(self):
        """End points average only the samples that exist"""
        result = moving_average([1.0, 2.0, 3.0, 4.0, 5.0], half_width=2)

        assert result == pytest.approx([2.0, 2.5, 3.0, 3.5, 4.0])

    def test_interior_point_uses_five_point_window(self):
        """Default half-width 2 averages five samples"""
        result = moving_average([0.0, 0.0, 10.0, 0.0, 0.0, 0.0, 0.0])

        assert result[2] == pytest.approx(2.0)
        assert result[4] == pytest.approx(2.0)
        assert result[5] == pytest.approx(0.0)

    def test_constant_signal_is_unchanged(self):
        """Smoothing a constant stream returns the constant"""
        assert moving_average([250.0] * 10) == pytest.approx([250.0] * 10)

    def test_window_wider_than_input(self):
        """Every point becomes the overall mean when the window covers everything"""
        assert moving_average([1.0, 2.0, 3.0], half_width=5) == pytest.approx([2.0, 2.0, 2.0])

    def test_zero_half_width_is_identity(self):
        """Half-width 0 returns the samples unchanged"""
        assert moving_average([1, 5, 2], half_width=0) == [1.0, 5.0, 2.0]

    def test_negative_half_width_raises(self):
        """Negative window is a caller error"""
        with pytest.raises(ValueError, match="half_width"):
            moving_average([1.0, 2.0], half_width=-1)

    def test_single_sample(self):
        """A single sample is returned as is"""
        assert moving_average([42.0]) == [42.0]


class TestSavgolSmooth:
    """Tests for Savitzky-Golay smoothing"""

    def test_short_input_returned_unchanged(self):
        """Streams shorter than the window are not filtered"""
        assert savgol_smooth([1.0, 2.0, 3.0], window_length=5) == [1.0, 2.0, 3.0]

    def test_linear_signal_is_preserved(self):
        """A polynomial filter reproduces a straight line"""
        values = [2.0 * i + 100 for i in range(20)]
        assert savgol_smooth(values) == pytest.approx(values)

    def test_even_window_is_made_odd(self):
        """Even window lengths are bumped to the next odd length"""
        values = [float(i) for i in range(10)]
        assert len(savgol_smooth(values, window_length=4)) == 10


class TestSmoothElevation:
    """Tests for the smoothing dispatcher"""

    def test_default_method_is_moving_average(self):
        """Default smoothing matches moving_average"""
        values = [100.0, 104.0, 98.0, 103.0, 101.0, 99.0]
        assert smooth_elevation(values) == moving_average(values)

    def test_savgol_method(self):
        """savgol method keeps the sample count"""
        values = [100.0 + (i % 3) for i in range(15)]
        assert len(smooth_elevation(values, method="savgol")) == 15

    def test_unknown_method_raises(self):
        """Unknown methods fail fast"""
        with pytest.raises(ValueError, match="Unknown smoothing method"):
            smooth_elevation([1.0, 2.0], method="loess")
