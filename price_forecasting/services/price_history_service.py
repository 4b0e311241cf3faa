# price_forecasting/services/price_history_service.py
from datetime import date
from typing import List, Dict, Tuple, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from price_forecasting.config import config
from price_forecasting.models import PriceObservation, Product, Market, CatalogStatus
from price_forecasting.logging_setup import get_logger

logger = get_logger(__name__)

class PriceHistoryService:
    """Read access to observed prices and the active (product, market) pairs."""

    def __init__(self, session: Session, window: Optional[int] = None):
        """Initialize the price history service.

        Args:
            session: Database session
            window: Number of observations to load per pair (defaults to config)
        """
        self.session = session
        self.window = window or config.forecast_config['history_window']

    def _pair_filter(self, product_id: int, market_id: int):
        return and_(
            PriceObservation.product_id == product_id,
            PriceObservation.market_id == market_id
        )

    def get_recent_prices(
        self,
        product_id: int,
        market_id: int,
        limit: Optional[int] = None
    ) -> List[Dict]:
        """Get the most recent observations for a pair, newest first.

        At most one price per calendar date is returned; when ingestion
        produced duplicates the latest recorded one wins. Short history is
        not an error.

        Args:
            product_id: Product ID
            market_id: Market ID
            limit: Maximum number of dates to return

        Returns:
            List of {'date', 'price'} dictionaries, newest first
        """
        limit = limit or self.window

        recent_dates = self.session.query(
            PriceObservation.observed_date
        ).filter(
            self._pair_filter(product_id, market_id)
        ).distinct().order_by(
            PriceObservation.observed_date.desc()
        ).limit(limit).subquery()

        rows = self.session.query(
            PriceObservation.observed_date,
            PriceObservation.price
        ).filter(
            self._pair_filter(product_id, market_id),
            PriceObservation.observed_date.in_(select(recent_dates.c.observed_date))
        ).order_by(
            PriceObservation.observed_date.desc(),
            PriceObservation.recorded_at.desc(),
            PriceObservation.id.desc()
        ).all()

        history = []
        seen_dates = set()
        for observed_date, price in rows:
            if observed_date in seen_dates:
                continue
            seen_dates.add(observed_date)
            history.append({'date': observed_date, 'price': float(price)})

        logger.debug(
            f"Loaded {len(history)} observations for product {product_id} in market {market_id}"
        )
        return history

    def list_active_pairs(self) -> List[Tuple[int, int]]:
        """Get all (product_id, market_id) pairs with history whose product and market are active.

        Returns:
            List of (product_id, market_id) tuples ordered by product then market
        """
        rows = self.session.query(
            PriceObservation.product_id,
            PriceObservation.market_id
        ).join(
            Product, PriceObservation.product_id == Product.id
        ).join(
            Market, PriceObservation.market_id == Market.id
        ).filter(
            Product.status == CatalogStatus.ACTIVE,
            Market.status == CatalogStatus.ACTIVE
        ).distinct().order_by(
            PriceObservation.product_id,
            PriceObservation.market_id
        ).all()

        return [(product_id, market_id) for product_id, market_id in rows]

    def get_latest_price(self, product_id: int, market_id: int) -> Optional[float]:
        """Get the most recent observed price for a pair."""
        history = self.get_recent_prices(product_id, market_id, limit=1)
        if not history:
            return None
        return history[0]['price']

    def get_latest_prices(self, market_id: int, product_ids: List[int]) -> Dict[int, float]:
        """Get the most recent observed price for several products in one market.

        Args:
            market_id: Market ID
            product_ids: Product IDs

        Returns:
            Dictionary mapping product ID to latest price (missing products omitted)
        """
        if not product_ids:
            return {}

        latest_dates = self.session.query(
            PriceObservation.product_id.label('product_id'),
            func.max(PriceObservation.observed_date).label('latest_date')
        ).filter(
            PriceObservation.market_id == market_id,
            PriceObservation.product_id.in_(product_ids)
        ).group_by(
            PriceObservation.product_id
        ).subquery()

        rows = self.session.query(
            PriceObservation.product_id,
            PriceObservation.price
        ).join(
            latest_dates,
            and_(
                PriceObservation.product_id == latest_dates.c.product_id,
                PriceObservation.observed_date == latest_dates.c.latest_date
            )
        ).filter(
            PriceObservation.market_id == market_id
        ).order_by(
            PriceObservation.product_id,
            PriceObservation.recorded_at.desc(),
            PriceObservation.id.desc()
        ).all()

        prices = {}
        for product_id, price in rows:
            # First row per product is the latest recorded
            prices.setdefault(product_id, float(price))

        return prices

    def get_latest_observed_date(self, product_id: int, market_id: int) -> Optional[date]:
        """Get the date of the most recent observation for a pair."""
        return self.session.query(
            func.max(PriceObservation.observed_date)
        ).filter(
            self._pair_filter(product_id, market_id)
        ).scalar()

    def count_observations(self, product_id: int, market_id: int) -> int:
        """Count all stored observations for a pair."""
        return self.session.query(
            func.count(PriceObservation.id)
        ).filter(
            self._pair_filter(product_id, market_id)
        ).scalar() or 0
