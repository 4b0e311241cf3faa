"""
Unit tests for the statistics helpers (mean, variance, CV, MAPE).
"""
import unittest

from price_forecasting.core.regression import fit_linear_trend, RegressionFit
from price_forecasting.core.statistics import (
    calculate_mean,
    calculate_variance,
    calculate_std_dev,
    calculate_coefficient_of_variation,
    calculate_mape
)
from price_forecasting.tests.fixtures import ZIGZAG_HISTORY

class TestBasicStatistics(unittest.TestCase):
    """Test cases for mean, variance and standard deviation."""

    def test_mean(self):
        self.assertEqual(calculate_mean([1, 2, 3, 4]), 2.5)
        self.assertEqual(calculate_mean([]), 0.0)

    def test_sample_variance(self):
        # Sum of squared deviations 227.5 over n - 1 = 13
        self.assertAlmostEqual(calculate_variance(ZIGZAG_HISTORY), 17.5)
        self.assertEqual(calculate_variance([5.0]), 0.0)

    def test_std_dev(self):
        self.assertAlmostEqual(calculate_std_dev([2, 4, 4, 4, 5, 5, 7, 9]), 2.138, places=3)

    def test_coefficient_of_variation(self):
        cv = calculate_coefficient_of_variation(ZIGZAG_HISTORY)
        self.assertAlmostEqual(cv, 17.5 ** 0.5 / 100.5 * 100, places=6)

    def test_coefficient_of_variation_zero_mean(self):
        self.assertEqual(calculate_coefficient_of_variation([0, 0, 0]), 0.0)

class TestMape(unittest.TestCase):
    """Test cases for the trend back-test."""

    def test_perfect_fit_has_zero_error(self):
        values = [10, 11, 12, 13, 14, 15]
        fit = fit_linear_trend(values)
        self.assertAlmostEqual(calculate_mape(values, fit), 0.0)

    def test_only_last_window_points_used(self):
        """Errors outside the trailing window are ignored."""
        values = [1000, 10, 10, 10]
        fit = RegressionFit(0.0, 10.0, float('nan'), 4)

        self.assertEqual(calculate_mape(values, fit, window=3), 0.0)
        self.assertAlmostEqual(calculate_mape(values, fit, window=4), 99.0 / 4)

    def test_zero_prices_skipped(self):
        values = [0, 0, 10, 10]
        fit = RegressionFit(0.0, 11.0, float('nan'), 4)

        self.assertAlmostEqual(calculate_mape(values, fit), 10.0)

    def test_all_zero_prices(self):
        fit = RegressionFit(0.0, 5.0, float('nan'), 3)
        self.assertEqual(calculate_mape([0, 0, 0], fit), 0.0)

    def test_zigzag_mape(self):
        fit = fit_linear_trend(ZIGZAG_HISTORY)
        mape = calculate_mape(ZIGZAG_HISTORY, fit, window=10)

        self.assertAlmostEqual(mape, 4.45, places=1)

if __name__ == '__main__':
    unittest.main()
