"""
Unit tests for the linear trend fit.
"""
import math
import unittest

from price_forecasting.core.regression import RegressionFit, fit_linear_trend, history_to_series
from price_forecasting.exceptions import CalculationError
from price_forecasting.tests.fixtures import ZIGZAG_HISTORY

class TestFitLinearTrend(unittest.TestCase):
    """Test cases for fit_linear_trend."""

    def test_perfect_line(self):
        """A straight line is recovered exactly with R² of 1."""
        fit = fit_linear_trend([10, 12, 14, 16, 18])

        self.assertAlmostEqual(fit.slope, 2.0)
        self.assertAlmostEqual(fit.intercept, 10.0)
        self.assertAlmostEqual(fit.r_squared, 1.0)
        self.assertEqual(fit.n_points, 5)
        self.assertAlmostEqual(fit.predict(5), 20.0)

    def test_zigzag_series(self):
        # Sxy = 24.5, Sxx = Syy = 227.5
        fit = fit_linear_trend(ZIGZAG_HISTORY)

        self.assertAlmostEqual(fit.slope, 24.5 / 227.5, places=6)
        self.assertAlmostEqual(fit.intercept, 99.8, places=6)
        self.assertAlmostEqual(fit.r_squared, (24.5 / 227.5) ** 2, places=6)

    def test_constant_series_is_degenerate(self):
        fit = fit_linear_trend([50.0] * 20)

        self.assertEqual(fit.slope, 0.0)
        self.assertEqual(fit.intercept, 50.0)
        self.assertTrue(fit.is_degenerate)
        self.assertTrue(math.isnan(fit.r_squared))

    def test_single_point(self):
        fit = fit_linear_trend([42.0])

        self.assertEqual(fit.slope, 0.0)
        self.assertEqual(fit.predict(10), 42.0)
        self.assertTrue(fit.is_degenerate)

    def test_empty_series(self):
        fit = fit_linear_trend([])

        self.assertEqual(fit.n_points, 0)
        self.assertTrue(fit.is_degenerate)

    def test_non_finite_values_rejected(self):
        with self.assertRaises(CalculationError):
            fit_linear_trend([1.0, float('nan'), 3.0])

    def test_predict_is_not_clamped(self):
        """Extrapolating a falling line may go negative."""
        fit = fit_linear_trend([30, 20, 10])
        self.assertLess(fit.predict(5), 0)

    def test_to_dict_hides_nan(self):
        fit = RegressionFit(0.0, 5.0, float('nan'), 1)
        self.assertIsNone(fit.to_dict()['r_squared'])

class TestHistoryToSeries(unittest.TestCase):

    def test_reverses_newest_first_history(self):
        history = [{'date': None, 'price': 3.0}, {'date': None, 'price': 2.0}, {'date': None, 'price': 1.0}]
        self.assertEqual(history_to_series(history), [1.0, 2.0, 3.0])

if __name__ == '__main__':
    unittest.main()
