# price_forecasting/services/reporting_service.py
from datetime import date
from typing import List, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from price_forecasting.models import (
    Product, Market, Forecast, PriceObservation, ForecastStatus, CatalogStatus
)
from price_forecasting.core.regression import fit_linear_trend, history_to_series
from price_forecasting.core.statistics import calculate_coefficient_of_variation, calculate_mape
from price_forecasting.core.confidence import confidence_breakdown
from price_forecasting.services.price_history_service import PriceHistoryService
from price_forecasting.services.forecast_store import ForecastStore
from price_forecasting.utils.date_utils import next_day
from price_forecasting.utils.math_utils import percent_change, safe_divide, round_price
from price_forecasting.exceptions import NotFoundError, ReportingError
from price_forecasting.logging_setup import get_logger

logger = get_logger(__name__)

PENDING_STATUS = 'PENDING'

def confidence_level(confidence: Optional[float]) -> str:
    """Bucket a confidence score into HIGH / MEDIUM / LOW / VERY_LOW."""
    if confidence is None:
        return 'UNKNOWN'
    if confidence >= 0.70:
        return 'HIGH'
    if confidence >= 0.50:
        return 'MEDIUM'
    if confidence >= 0.30:
        return 'LOW'
    return 'VERY_LOW'

def accuracy_status(model_accuracy: Optional[float]) -> str:
    if model_accuracy is None:
        return 'UNKNOWN'
    if model_accuracy >= 85.0:
        return 'EXCELLENT'
    if model_accuracy >= 70.0:
        return 'GOOD'
    if model_accuracy >= 50.0:
        return 'FAIR'
    return 'POOR'

class ReportingService:
    """Read-only views over forecasts for calibration and dashboards."""

    def __init__(self, session: Session):
        """Initialize the reporting service.

        Args:
            session: Database session
        """
        self.session = session
        self.history_service = PriceHistoryService(session)
        self.store = ForecastStore(session)

    def get_calibration_table(
        self,
        market_id: int,
        page: int = 0,
        size: int = 20,
        as_of: Optional[date] = None
    ) -> Dict:
        """Get the calibration table for one market.

        One row per active product, ordered by name, with the latest
        observed price, tomorrow's forecast and the trend between them.
        Products without a forecast for tomorrow show status PENDING.

        Args:
            market_id: Market ID
            page: Zero-based page number
            size: Page size
            as_of: Reference date (defaults to today)

        Returns:
            Dictionary with rows and paging information

        Raises:
            NotFoundError: If the market does not exist
            ReportingError: If the paging arguments are invalid
        """
        if page < 0 or size <= 0:
            raise ReportingError(f"Invalid page {page} or size {size}")

        market = self.session.get(Market, market_id)
        if market is None:
            raise NotFoundError(f"Market not found: {market_id}")

        target_date = next_day(as_of)

        base_query = self.session.query(Product).filter(Product.status == CatalogStatus.ACTIVE)
        total = base_query.count()
        products = base_query.order_by(Product.name, Product.id).offset(page * size).limit(size).all()

        product_ids = [p.id for p in products]
        current_prices = self.history_service.get_latest_prices(market_id, product_ids)

        forecasts = {}
        if product_ids:
            rows = self.session.query(Forecast).filter(
                Forecast.market_id == market_id,
                Forecast.target_date == target_date,
                Forecast.product_id.in_(product_ids)
            ).all()
            forecasts = {f.product_id: f for f in rows}

        items = []
        for product in products:
            current = current_prices.get(product.id, 0.0)
            forecast = forecasts.get(product.id)
            forecast_price = forecast.predicted_price if forecast else 0.0
            confidence = forecast.confidence_score if forecast else 0.0

            items.append({
                'product_id': product.id,
                'product_name': product.name,
                'market_id': market.id,
                'market_name': market.name,
                'current_price': round_price(current),
                'forecast_price': round_price(forecast_price),
                'trend_percentage': percent_change(forecast_price, current) if current > 0 else 0.0,
                'confidence_score': confidence,
                'confidence_level': confidence_level(confidence),
                'status': forecast.status.value if forecast else PENDING_STATUS
            })

        total_pages = (total + size - 1) // size
        logger.debug(f"Calibration table for market {market_id}: page {page} of {total_pages}, {len(items)} rows")

        return {
            'market_id': market.id,
            'market_name': market.name,
            'target_date': target_date,
            'page': page,
            'size': size,
            'total_items': total,
            'total_pages': total_pages,
            'items': items
        }

    def get_dashboard_stats(self, as_of: Optional[date] = None) -> Dict:
        """Get headline statistics for tomorrow's forecasts.

        Args:
            as_of: Reference date (defaults to today)

        Returns:
            Dictionary with dashboard statistics
        """
        target_date = next_day(as_of)

        total_products = self.session.query(func.count(Product.id)).filter(
            Product.status == CatalogStatus.ACTIVE
        ).scalar() or 0

        active_markets = self.session.query(func.count(Market.id)).filter(
            Market.status == CatalogStatus.ACTIVE
        ).scalar() or 0

        forecasts = self.store.find_latest_for_date(target_date)
        total_forecasts = len(forecasts)
        anomalies = sum(1 for f in forecasts if f.status is ForecastStatus.ANOMALY)

        model_accuracy = None
        if forecasts:
            mean_confidence = safe_divide(sum(f.confidence_score for f in forecasts), total_forecasts)
            model_accuracy = round(mean_confidence * 100, 1)

        last_updated = self.session.query(func.max(Forecast.updated_at)).scalar()

        return {
            'target_date': target_date,
            'total_products': total_products,
            'active_markets': active_markets,
            'model_accuracy': model_accuracy,
            'accuracy_status': accuracy_status(model_accuracy),
            'anomalies': anomalies,
            'total_forecasts': total_forecasts,
            'last_updated': last_updated
        }

    def get_active_markets(self, as_of: Optional[date] = None) -> List[Dict]:
        """Summarise each active market by products observed and tomorrow's forecasts."""
        target_date = next_day(as_of)

        markets = self.session.query(Market).filter(
            Market.status == CatalogStatus.ACTIVE
        ).order_by(Market.name, Market.id).all()

        product_counts = dict(
            self.session.query(
                PriceObservation.market_id,
                func.count(func.distinct(PriceObservation.product_id))
            ).group_by(PriceObservation.market_id).all()
        )

        forecast_counts = {}
        anomaly_counts = {}
        for forecast in self.store.find_latest_for_date(target_date):
            forecast_counts[forecast.market_id] = forecast_counts.get(forecast.market_id, 0) + 1
            if forecast.status is ForecastStatus.ANOMALY:
                anomaly_counts[forecast.market_id] = anomaly_counts.get(forecast.market_id, 0) + 1

        return [
            {
                'id': market.id,
                'name': market.name,
                'location': market.location,
                'product_count': product_counts.get(market.id, 0),
                'forecast_count': forecast_counts.get(market.id, 0),
                'anomaly_count': anomaly_counts.get(market.id, 0)
            }
            for market in markets
        ]

    def analyze_pair(self, product_id: int, market_id: int) -> Dict:
        """Explain how the confidence for a pair is made up.

        Args:
            product_id: Product ID
            market_id: Market ID

        Returns:
            Dictionary with history, fit, sub-scores and a data quality note

        Raises:
            NotFoundError: If the product or market does not exist
        """
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        market = self.session.get(Market, market_id)
        if market is None:
            raise NotFoundError(f"Market not found: {market_id}")

        history = self.history_service.get_recent_prices(product_id, market_id)
        series = history_to_series(history)

        result = {
            'product_id': product_id,
            'product_name': product.name,
            'market_id': market_id,
            'market_name': market.name,
            'data_points': len(series),
            'history': history
        }

        if not series:
            result['data_quality'] = 'No price history available for this pair.'
            return result

        fit = fit_linear_trend(series)
        cv = calculate_coefficient_of_variation(series)
        mape = calculate_mape(series, fit)
        breakdown = confidence_breakdown(fit.r_squared, cv, mape, len(series))

        if fit.slope > 0:
            direction = 'UP'
        elif fit.slope < 0:
            direction = 'DOWN'
        else:
            direction = 'FLAT'

        if len(series) < 14:
            quality = f"Insufficient data: {len(series)} points, at least 14 are needed to forecast."
        elif len(series) < 30:
            quality = f"Usable data: {len(series)} points; confidence improves up to 30 points."
        else:
            quality = f"Good data: {len(series)} points in the window."

        result.update({
            'regression': fit.to_dict(),
            'coefficient_of_variation': cv,
            'mape': mape,
            'confidence_breakdown': breakdown,
            'confidence_level': confidence_level(breakdown['confidence']),
            'trend_direction': direction,
            'data_quality': quality
        })

        return result
