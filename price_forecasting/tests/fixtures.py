"""
Shared helpers for database-backed tests.
"""
from datetime import date, datetime, timedelta

from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from price_forecasting.db import create_db_engine
from price_forecasting.models import Base, Product, Market, PriceObservation, CatalogStatus, MarketType

# Prices oscillating around 100 with a slight upward drift, oldest first
ZIGZAG_HISTORY = [100, 101, 99, 102, 98, 103, 97, 104, 96, 105, 95, 106, 94, 107]

LAST_OBSERVED = date(2026, 3, 1)

def make_engine(url='sqlite://'):
    """Engine with the schema created; in-memory by default."""
    if url == 'sqlite://':
        engine = create_db_engine(url, poolclass=StaticPool)
    else:
        engine = create_db_engine(url)

    Base.metadata.create_all(engine)
    return engine

def make_session(engine):
    return sessionmaker(bind=engine)()

def seed_catalog(session, products=1, markets=1):
    """Create active products and markets named in sort order."""
    product_rows = [
        Product(name=f"Product {i:03d}", code=f"P{i:03d}", category='Vegetables', status=CatalogStatus.ACTIVE)
        for i in range(1, products + 1)
    ]
    market_rows = [
        Market(name=f"Market {i:03d}", location='City', market_type=MarketType.WET_MARKET,
               status=CatalogStatus.ACTIVE)
        for i in range(1, markets + 1)
    ]
    session.add_all(product_rows + market_rows)
    session.flush()
    return product_rows, market_rows

def add_history(session, product_id, market_id, prices, last_date=LAST_OBSERVED):
    """Add one observation per day, oldest first, ending on last_date."""
    count = len(prices)
    for i, price in enumerate(prices):
        session.add(PriceObservation(
            product_id=product_id,
            market_id=market_id,
            observed_date=last_date - timedelta(days=count - 1 - i),
            price=float(price),
            recorded_at=datetime(2026, 1, 1)
        ))
    session.flush()
