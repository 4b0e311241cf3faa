# price_forecasting/services/override_service.py
from datetime import date
from typing import List, Dict, Tuple, Optional, Any

from sqlalchemy.orm import Session

from price_forecasting.models import Product, Market, Forecast, ForecastStatus, CatalogStatus
from price_forecasting.core.directives import parse_trend_directive, apply_trend
from price_forecasting.services.forecast_store import ForecastStore
from price_forecasting.services.price_history_service import PriceHistoryService
from price_forecasting.utils.date_utils import convert_to_date, next_day
from price_forecasting.utils.validation import validate_override_request
from price_forecasting.exceptions import (
    ValidationError, InvalidTargetError, DirectiveParseError, OverrideError
)
from price_forecasting.logging_setup import get_logger

logger = get_logger(__name__)

OVERRIDE_CONFIDENCE = 1.0

class OverrideRequest:
    """Manual override request.

    Targets are resolved in this order: a single product/market, explicit
    pairs, then the cross product of product_ids and market_ids. When only
    one side of the cross product is given, override_all_markets /
    override_all_products expand the other side to every active id.
    """

    def __init__(
        self,
        product_id: Optional[int] = None,
        market_id: Optional[int] = None,
        product_ids: Optional[List[int]] = None,
        market_ids: Optional[List[int]] = None,
        pairs: Optional[List[Tuple[int, int]]] = None,
        target_date: Optional[date] = None,
        force_trend: Optional[str] = None,
        manual_price: Optional[float] = None,
        reason: Optional[str] = None,
        override_all_markets: bool = False,
        override_all_products: bool = False
    ):
        self.product_id = product_id
        self.market_id = market_id
        self.product_ids = list(product_ids or [])
        self.market_ids = list(market_ids or [])
        self.pairs = [tuple(pair) for pair in (pairs or [])]
        self.target_date = convert_to_date(target_date) if target_date else None
        self.force_trend = force_trend
        self.manual_price = float(manual_price) if manual_price is not None else None
        self.reason = reason
        self.override_all_markets = bool(override_all_markets)
        self.override_all_products = bool(override_all_products)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OverrideRequest':
        """Build a request from a JSON-style dictionary."""
        pairs = []
        for pair in data.get('pairs') or []:
            if isinstance(pair, dict):
                pairs.append((pair['product_id'], pair['market_id']))
            else:
                pairs.append(tuple(pair))

        return cls(
            product_id=data.get('product_id'),
            market_id=data.get('market_id'),
            product_ids=data.get('product_ids'),
            market_ids=data.get('market_ids'),
            pairs=pairs,
            target_date=data.get('target_date'),
            force_trend=data.get('force_trend'),
            manual_price=data.get('manual_price'),
            reason=data.get('reason'),
            override_all_markets=data.get('override_all_markets', False),
            override_all_products=data.get('override_all_products', False)
        )

    def is_valid(self) -> bool:
        return not validate_override_request(self)

class OverrideService:
    """Service for pinning forecasts to operator-supplied prices."""

    def __init__(self, session: Session):
        """Initialize the override service.

        Args:
            session: Database session
        """
        self.session = session
        self.store = ForecastStore(session)
        self.history_service = PriceHistoryService(session)

    def resolve_pairs(self, request: OverrideRequest) -> List[Tuple[int, int]]:
        """Expand the request targets into a de-duplicated list of pairs.

        Args:
            request: Override request

        Returns:
            Ordered list of (product_id, market_id)
        """
        candidates = []
        product_ids = list(request.product_ids)
        market_ids = list(request.market_ids)

        if request.product_id is not None and request.market_id is not None:
            candidates.append((request.product_id, request.market_id))
        elif request.product_id is not None and request.product_id not in product_ids:
            # A lone product id behaves like a one-element product list
            product_ids.insert(0, request.product_id)

        candidates.extend(request.pairs)

        if product_ids and not market_ids and request.override_all_markets:
            market_ids = self._active_market_ids()
        elif market_ids and not product_ids and request.override_all_products:
            product_ids = self._active_product_ids()

        for product_id in product_ids:
            for market_id in market_ids:
                candidates.append((product_id, market_id))

        seen = set()
        pairs = []
        for pair in candidates:
            if pair not in seen:
                seen.add(pair)
                pairs.append(pair)

        return pairs

    def _active_market_ids(self) -> List[int]:
        rows = self.session.query(Market.id).filter(
            Market.status == CatalogStatus.ACTIVE
        ).order_by(Market.id).all()
        return [row[0] for row in rows]

    def _active_product_ids(self) -> List[int]:
        rows = self.session.query(Product.id).filter(
            Product.status == CatalogStatus.ACTIVE
        ).order_by(Product.id).all()
        return [row[0] for row in rows]

    def _load_catalog(self, pairs: List[Tuple[int, int]]) -> Tuple[Dict[int, Product], Dict[int, Market]]:
        """Load every referenced product and market with one query each."""
        product_ids = sorted({p for p, _ in pairs})
        market_ids = sorted({m for _, m in pairs})

        products = {}
        if product_ids:
            products = {
                p.id: p for p in self.session.query(Product).filter(Product.id.in_(product_ids)).all()
            }

        markets = {}
        if market_ids:
            markets = {
                m.id: m for m in self.session.query(Market).filter(Market.id.in_(market_ids)).all()
            }

        return products, markets

    def resolve_new_price(self, request: OverrideRequest, current_price: Optional[float]) -> float:
        """Work out the pinned price for one pair.

        A literal manual price wins over a directive. An unparseable
        directive keeps the current price.

        Raises:
            OverrideError: If a directive is used and no current price exists
        """
        if request.manual_price is not None:
            return request.manual_price

        if current_price is None:
            raise OverrideError("No current price available to apply the trend to")

        try:
            pct = parse_trend_directive(request.force_trend)
        except DirectiveParseError as e:
            logger.warning(f"{e}; keeping current price {current_price}")
            return current_price

        return apply_trend(current_price, pct)

    def _apply_to_pair(
        self,
        request: OverrideRequest,
        product: Product,
        market: Market,
        target_date: date
    ) -> Dict:
        with self.session.begin_nested():
            forecast = self.store.lock_by_key(product.id, market.id, target_date)

            if forecast is not None:
                current_price = forecast.predicted_price
            else:
                current_price = self.history_service.get_latest_price(product.id, market.id)

            new_price = self.resolve_new_price(request, current_price)

            if forecast is None:
                forecast = Forecast(
                    product_id=product.id,
                    market_id=market.id,
                    target_date=target_date
                )
                self.session.add(forecast)

            # Keep the price from before the first override
            if forecast.status is not ForecastStatus.OVERRIDDEN:
                forecast.override_price = current_price

            forecast.predicted_price = new_price
            forecast.confidence_score = OVERRIDE_CONFIDENCE
            forecast.status = ForecastStatus.OVERRIDDEN
            forecast.override_reason = request.reason.strip()
            self.session.flush()

        return {
            'old_price': current_price,
            'new_price': new_price,
            'status': forecast.status.value
        }

    def apply_override(self, request: OverrideRequest) -> Dict:
        """Apply a single or bulk manual override.

        Each pair is applied in its own savepoint and reported individually;
        a failing pair does not stop the others.

        Args:
            request: Override request

        Returns:
            Dictionary with aggregate counts and per-pair results

        Raises:
            ValidationError: If the request itself is malformed
        """
        errors = validate_override_request(request)
        if errors:
            raise ValidationError("Invalid override request", details=errors)

        pairs = self.resolve_pairs(request)
        if not pairs:
            raise ValidationError("Override request resolved to no product/market pairs")

        target_date = request.target_date or next_day()
        products, markets = self._load_catalog(pairs)

        logger.info(
            f"Applying override to {len(pairs)} pairs for {target_date} "
            f"(trend={request.force_trend}, manual_price={request.manual_price})"
        )

        results = []
        success_count = 0
        failed_count = 0

        for product_id, market_id in pairs:
            product = products.get(product_id)
            market = markets.get(market_id)
            result = {
                'product_id': product_id,
                'product_name': product.name if product else None,
                'market_id': market_id,
                'market_name': market.name if market else None,
                'success': False,
                'message': None,
                'old_price': None,
                'new_price': None,
                'status': None
            }

            try:
                if product is None:
                    raise InvalidTargetError(f"Product {product_id} not found")
                if market is None:
                    raise InvalidTargetError(f"Market {market_id} not found")

                outcome = self._apply_to_pair(request, product, market, target_date)
                result.update(outcome)
                result['success'] = True
                result['message'] = 'Override applied'
                success_count += 1

            except (InvalidTargetError, OverrideError) as e:
                logger.warning(f"Override failed for product {product_id} in market {market_id}: {e}")
                result['message'] = str(e)
                failed_count += 1

            except Exception as e:
                logger.error(
                    f"Unexpected error overriding product {product_id} in market {market_id}: {str(e)}",
                    exc_info=True
                )
                result['message'] = f"Error: {str(e)}"
                failed_count += 1

            results.append(result)

        logger.info(f"Override complete - Success: {success_count}, Failed: {failed_count}")

        return {
            'success': failed_count == 0,
            'message': f"Applied {success_count} of {len(pairs)} overrides",
            'target_date': target_date,
            'total_processed': len(pairs),
            'success_count': success_count,
            'failed_count': failed_count,
            'results': results
        }
