# price_forecasting/services/forecast_service.py
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from price_forecasting.config import config
from price_forecasting.models import Product, Market, ForecastStatus
from price_forecasting.core.regression import fit_linear_trend, history_to_series
from price_forecasting.core.statistics import calculate_coefficient_of_variation, calculate_mape
from price_forecasting.core.confidence import calculate_confidence, apply_day_decay
from price_forecasting.core.anomaly import classify_forecast
from price_forecasting.services.price_history_service import PriceHistoryService
from price_forecasting.services.forecast_store import ForecastStore
from price_forecasting.utils.date_utils import get_forecast_dates
from price_forecasting.utils.math_utils import percent_change
from price_forecasting.utils.validation import validate_pair_ids
from price_forecasting.exceptions import InsufficientDataError, InvalidTargetError
from price_forecasting.logging_setup import get_logger

logger = get_logger(__name__)

class ForecastService:
    """Service for generating day-ahead price forecasts per (product, market) pair."""

    def __init__(
        self,
        session: Session,
        history_service: Optional[PriceHistoryService] = None,
        store: Optional[ForecastStore] = None
    ):
        """Initialize the forecast service.

        Args:
            session: Database session
            history_service: Optional price history loader
            store: Optional forecast store
        """
        self.session = session
        self.settings = config.forecast_config
        self.history_service = history_service or PriceHistoryService(
            session, window=self.settings['history_window']
        )
        self.store = store or ForecastStore(session)

    def build_forecast_rows(self, product_id: int, market_id: int, history: List[Dict]) -> Dict:
        """Build the forecast set for a pair from its price history.

        The regression, CV, MAPE and base confidence are computed once over
        the whole window; each day then gets its own decayed confidence and
        status. Price change is always measured against the latest actual.

        Args:
            product_id: Product ID
            market_id: Market ID
            history: Observations, newest first, as returned by the loader

        Returns:
            Dictionary with the rows and the metrics used to build them

        Raises:
            InsufficientDataError: If the history is shorter than the minimum
        """
        min_points = self.settings['min_history_points']
        if len(history) < min_points:
            raise InsufficientDataError(
                f"Product {product_id} in market {market_id} has {len(history)} "
                f"observations, {min_points} required",
                details={'product_id': product_id, 'market_id': market_id, 'points': len(history)}
            )

        series = history_to_series(history)
        n_points = len(series)
        latest_price = series[-1]
        latest_date = history[0]['date']

        fit = fit_linear_trend(series)
        cv = calculate_coefficient_of_variation(series)
        mape = calculate_mape(series, fit, window=self.settings['mape_window'])
        base_confidence = calculate_confidence(fit.r_squared, cv, mape, n_points)

        rows = []
        target_dates = get_forecast_dates(latest_date, self.settings['horizon_days'])
        for day, target_date in enumerate(target_dates, start=1):
            predicted_price = max(0.0, fit.predict(n_points + day - 1))
            confidence = apply_day_decay(
                base_confidence,
                day,
                daily_decay=self.settings['daily_decay'],
                floor=self.settings['decay_floor']
            )
            change_pct = percent_change(predicted_price, latest_price)
            status, reason = classify_forecast(change_pct, confidence, cv, day, mape)

            rows.append({
                'product_id': product_id,
                'market_id': market_id,
                'target_date': target_date,
                'day': day,
                'predicted_price': predicted_price,
                'confidence_score': confidence,
                'price_change_pct': change_pct,
                'status': status,
                'reason': reason
            })

        return {
            'rows': rows,
            'fit': fit,
            'coefficient_of_variation': cv,
            'mape': mape,
            'base_confidence': base_confidence,
            'latest_price': latest_price,
            'latest_date': latest_date
        }

    def _ensure_pair_exists(self, product_id: int, market_id: int) -> None:
        errors = validate_pair_ids(product_id, market_id)
        if errors:
            raise InvalidTargetError("Invalid product or market id", details=errors)

        if self.session.get(Product, product_id) is None:
            raise InvalidTargetError(f"Product {product_id} not found")
        if self.session.get(Market, market_id) is None:
            raise InvalidTargetError(f"Market {market_id} not found")

    def generate_forecast(self, product_id: int, market_id: int, force: bool = False) -> Dict:
        """Generate and store the forecast horizon for one pair.

        Rows whose key is already OVERRIDDEN are left untouched unless
        force is set. Short history skips the pair without writing.

        Args:
            product_id: Product ID
            market_id: Market ID
            force: Regenerate even overridden rows

        Returns:
            Dictionary with generation results

        Raises:
            InvalidTargetError: If the product or market does not exist
        """
        self._ensure_pair_exists(product_id, market_id)

        history = self.history_service.get_recent_prices(product_id, market_id)

        try:
            forecast = self.build_forecast_rows(product_id, market_id, history)
        except InsufficientDataError as e:
            logger.warning(f"Insufficient data for product {product_id} in market {market_id}: {e}")
            return {
                'success': True,
                'skipped': True,
                'reason': 'INSUFFICIENT_DATA',
                'product_id': product_id,
                'market_id': market_id,
                'points': len(history),
                'written': 0,
                'skipped_overridden': 0
            }

        rows = forecast['rows']
        counts = self.store.upsert_many(rows, force=force)

        anomalies = [r for r in rows if r['status'] is ForecastStatus.ANOMALY]
        for row in anomalies:
            logger.info(
                f"Anomaly for product {product_id} in market {market_id} on "
                f"{row['target_date']}: {row['reason']}"
            )

        logger.debug(
            f"Forecast for product {product_id} in market {market_id}: "
            f"{forecast['fit']!r}, CV={forecast['coefficient_of_variation']:.2f}, "
            f"MAPE={forecast['mape']:.2f}, confidence={forecast['base_confidence']:.3f}"
        )

        return {
            'success': True,
            'skipped': False,
            'reason': None,
            'product_id': product_id,
            'market_id': market_id,
            'points': len(history),
            'written': counts['inserted'] + counts['updated'],
            'inserted': counts['inserted'],
            'updated': counts['updated'],
            'skipped_overridden': counts['skipped'],
            'base_confidence': forecast['base_confidence'],
            'anomalies': len(anomalies),
            'statuses': {r['target_date']: r['status'].value for r in rows}
        }
