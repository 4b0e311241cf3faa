# price_forecasting/services/forecast_store.py
from datetime import date
from typing import List, Dict, Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from price_forecasting.models import Forecast, ForecastStatus
from price_forecasting.logging_setup import get_logger

logger = get_logger(__name__)

INSERTED = 'inserted'
UPDATED = 'updated'
SKIPPED = 'skipped'

class ForecastStore:
    """Persistence for forecast rows, keyed by (product, market, target date).

    Every write is a read-modify-write on a locked row: the OVERRIDDEN check
    and the update happen under the same row lock, so an automated run
    cannot overwrite an override committed in between.
    """

    def __init__(self, session: Session):
        """Initialize the forecast store.

        Args:
            session: Database session
        """
        self.session = session

    def find_by_key(self, product_id: int, market_id: int, target_date: date) -> Optional[Forecast]:
        """Get the forecast row for a key, if any."""
        return self.session.query(Forecast).filter(
            Forecast.product_id == product_id,
            Forecast.market_id == market_id,
            Forecast.target_date == target_date
        ).one_or_none()

    def lock_by_key(self, product_id: int, market_id: int, target_date: date) -> Optional[Forecast]:
        """Get the forecast row for a key with a row lock (SELECT ... FOR UPDATE)."""
        return self.session.query(Forecast).filter(
            Forecast.product_id == product_id,
            Forecast.market_id == market_id,
            Forecast.target_date == target_date
        ).with_for_update().populate_existing().one_or_none()

    def find_for_pair(
        self,
        product_id: int,
        market_id: int,
        start_date: Optional[date] = None
    ) -> List[Forecast]:
        """Get forecasts for a pair ordered by target date."""
        query = self.session.query(Forecast).filter(
            Forecast.product_id == product_id,
            Forecast.market_id == market_id
        )

        if start_date:
            query = query.filter(Forecast.target_date >= start_date)

        return query.order_by(Forecast.target_date).all()

    def find_latest_for_date(self, target_date: date, market_id: Optional[int] = None) -> List[Forecast]:
        """Get all forecasts for a target date, optionally for one market."""
        query = self.session.query(Forecast).filter(Forecast.target_date == target_date)

        if market_id is not None:
            query = query.filter(Forecast.market_id == market_id)

        return query.order_by(Forecast.product_id, Forecast.market_id).all()

    def _apply(self, forecast: Forecast, row: Dict, force: bool) -> None:
        forecast.predicted_price = max(0.0, float(row['predicted_price']))
        forecast.confidence_score = float(row['confidence_score'])
        forecast.status = row['status']

        if force:
            # A forced regeneration releases the pin
            forecast.override_price = None
            forecast.override_reason = None

    def _write_locked(self, existing: Optional[Forecast], row: Dict, force: bool) -> str:
        if existing is not None:
            if existing.status.is_pinned and not force:
                logger.info(
                    f"Skipping overridden forecast for product {row['product_id']} "
                    f"in market {row['market_id']} on {row['target_date']}"
                )
                return SKIPPED

            self._apply(existing, row, force)
            return UPDATED

        forecast = Forecast(
            product_id=row['product_id'],
            market_id=row['market_id'],
            target_date=row['target_date']
        )
        self._apply(forecast, row, force)
        self.session.add(forecast)
        return INSERTED

    def upsert(self, row: Dict, force: bool = False) -> str:
        """Insert or replace one forecast row unless it is pinned.

        Args:
            row: Dictionary with product_id, market_id, target_date,
                 predicted_price, confidence_score and status
            force: Overwrite even an OVERRIDDEN row

        Returns:
            'inserted', 'updated' or 'skipped'
        """
        try:
            with self.session.begin_nested():
                existing = self.lock_by_key(row['product_id'], row['market_id'], row['target_date'])
                outcome = self._write_locked(existing, row, force)
                self.session.flush()
            return outcome
        except IntegrityError:
            # Another transaction inserted the key first; re-evaluate against its row
            logger.warning(
                f"Concurrent insert for product {row['product_id']} in market "
                f"{row['market_id']} on {row['target_date']}, retrying as update"
            )
            with self.session.begin_nested():
                existing = self.lock_by_key(row['product_id'], row['market_id'], row['target_date'])
                outcome = self._write_locked(existing, row, force)
                self.session.flush()
            return outcome

    def upsert_many(self, rows: List[Dict], force: bool = False) -> Dict[str, int]:
        """Write one pair's forecast set with a single locking read and one flush.

        Args:
            rows: Forecast row dictionaries for the same (product, market)
            force: Overwrite OVERRIDDEN rows as well

        Returns:
            Dictionary with inserted, updated and skipped counts
        """
        counts = {INSERTED: 0, UPDATED: 0, SKIPPED: 0}
        if not rows:
            return counts

        product_id = rows[0]['product_id']
        market_id = rows[0]['market_id']
        if any(r['product_id'] != product_id or r['market_id'] != market_id for r in rows):
            raise ValueError("upsert_many expects rows for a single product/market pair")

        target_dates = [r['target_date'] for r in rows]

        try:
            with self.session.begin_nested():
                existing_rows = self.session.query(Forecast).filter(
                    and_(
                        Forecast.product_id == product_id,
                        Forecast.market_id == market_id,
                        Forecast.target_date.in_(target_dates)
                    )
                ).with_for_update().populate_existing().all()
                existing_by_date = {f.target_date: f for f in existing_rows}

                for row in rows:
                    outcome = self._write_locked(existing_by_date.get(row['target_date']), row, force)
                    counts[outcome] += 1

                self.session.flush()
        except IntegrityError:
            logger.warning(
                f"Concurrent insert while writing product {product_id} in market {market_id}, "
                f"falling back to row-by-row upsert"
            )
            counts = {INSERTED: 0, UPDATED: 0, SKIPPED: 0}
            for row in rows:
                counts[self.upsert(row, force=force)] += 1

        return counts

    def purge_old_forecasts(self, cutoff_date: date) -> int:
        """Delete automated forecasts targeting dates before cutoff_date.

        Overridden rows are kept.

        Returns:
            Number of deleted rows
        """
        deleted = self.session.query(Forecast).filter(
            Forecast.target_date < cutoff_date,
            Forecast.status != ForecastStatus.OVERRIDDEN
        ).delete(synchronize_session=False)

        logger.info(f"Purged {deleted} forecasts older than {cutoff_date}")
        return deleted
