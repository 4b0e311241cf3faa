"""
Unit tests for the composite confidence score.
"""
import unittest

from price_forecasting.core.confidence import (
    fit_quality_score,
    stability_score,
    accuracy_score,
    sufficiency_score,
    confidence_breakdown,
    calculate_confidence,
    apply_day_decay
)

class TestSubScores(unittest.TestCase):
    """Test cases for the individual confidence components."""

    def test_fit_quality(self):
        self.assertEqual(fit_quality_score(0.8), 0.8)
        self.assertEqual(fit_quality_score(float('nan')), 0.5)
        self.assertEqual(fit_quality_score(None), 0.5)
        self.assertEqual(fit_quality_score(1.2), 1.0)

    def test_stability_bands(self):
        self.assertEqual(stability_score(5.0), 1.0)
        self.assertEqual(stability_score(10.0), 1.0)
        self.assertAlmostEqual(stability_score(30.0), 0.5)
        self.assertEqual(stability_score(50.0), 0.0)
        self.assertEqual(stability_score(75.0), 0.0)

    def test_accuracy_bands(self):
        self.assertEqual(accuracy_score(4.9), 1.0)
        self.assertAlmostEqual(accuracy_score(15.0), 0.5)
        self.assertEqual(accuracy_score(25.0), 0.0)
        self.assertEqual(accuracy_score(40.0), 0.0)

    def test_sufficiency_bands(self):
        self.assertEqual(sufficiency_score(10), 0.5)
        self.assertAlmostEqual(sufficiency_score(14), 0.7)
        self.assertAlmostEqual(sufficiency_score(22), 0.85)
        self.assertEqual(sufficiency_score(30), 1.0)
        self.assertEqual(sufficiency_score(45), 1.0)

class TestCompositeConfidence(unittest.TestCase):

    def test_weighted_sum(self):
        breakdown = confidence_breakdown(0.5, 30.0, 15.0, 30)
        # 0.30*0.5 + 0.30*0.5 + 0.25*0.5 + 0.15*1.0
        self.assertAlmostEqual(breakdown['confidence'], 0.575)
        self.assertEqual(breakdown['sufficiency'], 1.0)

    def test_best_case_is_one(self):
        self.assertAlmostEqual(calculate_confidence(1.0, 2.0, 1.0, 30), 1.0)

    def test_worst_case_is_bounded(self):
        confidence = calculate_confidence(0.0, 90.0, 80.0, 5)
        self.assertAlmostEqual(confidence, 0.075)
        self.assertGreaterEqual(confidence, 0.0)

class TestDayDecay(unittest.TestCase):
    """Test cases for horizon decay."""

    def test_day_one_keeps_base(self):
        self.assertEqual(apply_day_decay(0.8, 1), 0.8)

    def test_three_percent_per_day(self):
        self.assertAlmostEqual(apply_day_decay(0.8, 2), 0.8 * 0.97)
        self.assertAlmostEqual(apply_day_decay(0.8, 7), 0.8 * 0.97 ** 6)

    def test_monotonic_over_horizon(self):
        values = [apply_day_decay(0.66, day) for day in range(1, 8)]
        self.assertEqual(values, sorted(values, reverse=True))

    def test_multiplier_floor(self):
        # 0.97^59 is well below 0.30
        self.assertAlmostEqual(apply_day_decay(0.9, 60), 0.9 * 0.30)

if __name__ == '__main__':
    unittest.main()
