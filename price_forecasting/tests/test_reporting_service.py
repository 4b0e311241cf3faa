"""
Tests for the calibration table and dashboard views.
"""
import unittest
from datetime import timedelta

from price_forecasting.models import Forecast, ForecastStatus
from price_forecasting.services.forecast_service import ForecastService
from price_forecasting.services.reporting_service import (
    ReportingService, confidence_level, accuracy_status
)
from price_forecasting.exceptions import NotFoundError, ReportingError
from price_forecasting.tests.fixtures import (
    make_engine, make_session, seed_catalog, add_history, ZIGZAG_HISTORY, LAST_OBSERVED
)

class TestLevels(unittest.TestCase):

    def test_confidence_level(self):
        self.assertEqual(confidence_level(0.70), 'HIGH')
        self.assertEqual(confidence_level(0.55), 'MEDIUM')
        self.assertEqual(confidence_level(0.30), 'LOW')
        self.assertEqual(confidence_level(0.1), 'VERY_LOW')
        self.assertEqual(confidence_level(None), 'UNKNOWN')

    def test_accuracy_status(self):
        self.assertEqual(accuracy_status(90.0), 'EXCELLENT')
        self.assertEqual(accuracy_status(70.0), 'GOOD')
        self.assertEqual(accuracy_status(65.9), 'FAIR')
        self.assertEqual(accuracy_status(10.0), 'POOR')

class TestReportingService(unittest.TestCase):
    """Test cases for ReportingService."""

    def setUp(self):
        self.engine = make_engine()
        self.session = make_session(self.engine)
        self.products, self.markets = seed_catalog(self.session, products=3, markets=2)
        self.market = self.markets[0]
        self.service = ReportingService(self.session)

        # Product 1 forecast, product 2 history only, product 3 nothing
        add_history(self.session, self.products[0].id, self.market.id, ZIGZAG_HISTORY)
        add_history(self.session, self.products[1].id, self.market.id, [20, 21])
        ForecastService(self.session).generate_forecast(self.products[0].id, self.market.id)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def test_calibration_table(self):
        table = self.service.get_calibration_table(self.market.id, as_of=LAST_OBSERVED)
        items = table['items']

        self.assertEqual(table['total_items'], 3)
        self.assertEqual(table['total_pages'], 1)
        self.assertEqual([i['product_name'] for i in items], ['Product 001', 'Product 002', 'Product 003'])

        forecast_row = items[0]
        self.assertEqual(forecast_row['current_price'], 107.0)
        self.assertAlmostEqual(forecast_row['trend_percentage'], -5.32, places=2)
        self.assertEqual(forecast_row['status'], 'NORMAL')
        self.assertEqual(forecast_row['confidence_level'], 'MEDIUM')

        pending = items[1]
        self.assertEqual(pending['current_price'], 21.0)
        self.assertEqual(pending['forecast_price'], 0.0)
        self.assertEqual(pending['status'], 'PENDING')

        self.assertEqual(items[2]['current_price'], 0.0)
        self.assertEqual(items[2]['trend_percentage'], 0.0)

    def test_calibration_paging(self):
        table = self.service.get_calibration_table(self.market.id, page=1, size=2, as_of=LAST_OBSERVED)

        self.assertEqual(table['total_pages'], 2)
        self.assertEqual([i['product_name'] for i in table['items']], ['Product 003'])

    def test_calibration_unknown_market(self):
        with self.assertRaises(NotFoundError):
            self.service.get_calibration_table(999)

    def test_calibration_bad_page(self):
        with self.assertRaises(ReportingError):
            self.service.get_calibration_table(self.market.id, page=-1)

    def test_dashboard_stats(self):
        self.session.add(Forecast(
            product_id=self.products[1].id,
            market_id=self.market.id,
            target_date=LAST_OBSERVED + timedelta(days=1),
            predicted_price=50.0,
            confidence_score=0.1,
            status=ForecastStatus.ANOMALY
        ))
        self.session.flush()

        stats = self.service.get_dashboard_stats(as_of=LAST_OBSERVED)

        self.assertEqual(stats['total_products'], 3)
        self.assertEqual(stats['active_markets'], 2)
        self.assertEqual(stats['total_forecasts'], 2)
        self.assertEqual(stats['anomalies'], 1)
        self.assertAlmostEqual(stats['model_accuracy'], 37.9, places=1)
        self.assertEqual(stats['accuracy_status'], 'POOR')
        self.assertIsNotNone(stats['last_updated'])

    def test_dashboard_without_forecasts(self):
        stats = self.service.get_dashboard_stats(as_of=LAST_OBSERVED + timedelta(days=30))

        self.assertEqual(stats['total_forecasts'], 0)
        self.assertIsNone(stats['model_accuracy'])
        self.assertEqual(stats['accuracy_status'], 'UNKNOWN')

    def test_active_markets(self):
        markets = self.service.get_active_markets(as_of=LAST_OBSERVED)

        self.assertEqual(len(markets), 2)
        first = markets[0]
        self.assertEqual(first['id'], self.market.id)
        self.assertEqual(first['product_count'], 2)
        self.assertEqual(first['forecast_count'], 1)
        self.assertEqual(first['anomaly_count'], 0)
        self.assertEqual(markets[1]['product_count'], 0)

    def test_analyze_pair(self):
        analysis = self.service.analyze_pair(self.products[0].id, self.market.id)

        self.assertEqual(analysis['data_points'], 14)
        self.assertEqual(analysis['trend_direction'], 'UP')
        self.assertEqual(analysis['confidence_level'], 'MEDIUM')
        self.assertAlmostEqual(analysis['confidence_breakdown']['sufficiency'], 0.7)
        self.assertIn('Usable', analysis['data_quality'])

    def test_analyze_pair_without_history(self):
        analysis = self.service.analyze_pair(self.products[2].id, self.market.id)

        self.assertEqual(analysis['data_points'], 0)
        self.assertNotIn('regression', analysis)

    def test_analyze_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.analyze_pair(999, self.market.id)

if __name__ == '__main__':
    unittest.main()
