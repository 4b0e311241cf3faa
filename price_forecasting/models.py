# price_forecasting/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey, Text, Enum, Index,
    UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class ForecastStatus(enum.Enum):
    """Status of a forecast row.

    Values:
        NORMAL: Automated forecast within all plausibility rules
        ANOMALY: Automated forecast flagged by the anomaly classifier
        OVERRIDDEN: Price pinned by an operator; automated runs leave it alone
    """
    NORMAL = 'NORMAL'
    ANOMALY = 'ANOMALY'
    OVERRIDDEN = 'OVERRIDDEN'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @property
    def is_pinned(self) -> bool:
        return self is ForecastStatus.OVERRIDDEN

class CatalogStatus(enum.Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'

class MarketType(enum.Enum):
    WET_MARKET = 'WET_MARKET'
    SUPERMARKET = 'SUPERMARKET'

class Product(Base):
    __tablename__ = 'product'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    code = Column(String(50))
    category = Column(String(100))
    status = Column(Enum(CatalogStatus), default=CatalogStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=func.now())

    observations = relationship("PriceObservation", back_populates="product")
    forecasts = relationship("Forecast", back_populates="product")

    __table_args__ = (
        Index('idx_product_name', 'name'),
    )

class Market(Base):
    __tablename__ = 'market'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    location = Column(String(250))
    market_type = Column(Enum(MarketType))
    status = Column(Enum(CatalogStatus), default=CatalogStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=func.now())

    observations = relationship("PriceObservation", back_populates="market")
    forecasts = relationship("Forecast", back_populates="market")

class PriceObservation(Base):
    """Daily price reported for a product in a market. Read-only to the engine."""
    __tablename__ = 'price_observation'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    market_id = Column(Integer, ForeignKey('market.id'), nullable=False)
    observed_date = Column(Date, nullable=False)
    price = Column(Float, nullable=False)
    recorded_at = Column(DateTime, default=func.now(), nullable=False)

    product = relationship("Product", back_populates="observations")
    market = relationship("Market", back_populates="observations")

    __table_args__ = (
        Index('idx_observation_pair_date', 'product_id', 'market_id', 'observed_date'),
        Index('idx_observation_market', 'market_id'),
    )

class Forecast(Base):
    """Latest forecast per (product, market, target date)."""
    __tablename__ = 'price_forecast'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    market_id = Column(Integer, ForeignKey('market.id'), nullable=False)
    target_date = Column(Date, nullable=False)

    predicted_price = Column(Float, nullable=False)
    confidence_score = Column(Float, nullable=False)
    status = Column(Enum(ForecastStatus), default=ForecastStatus.NORMAL, nullable=False)

    # Price in effect before the first override was applied
    override_price = Column(Float)
    override_reason = Column(Text)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="forecasts")
    market = relationship("Market", back_populates="forecasts")

    __table_args__ = (
        UniqueConstraint('product_id', 'market_id', 'target_date', name='uq_forecast_key'),
        Index('idx_forecast_lookup', 'product_id', 'market_id', 'target_date'),
        Index('idx_forecast_status', 'status', 'target_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'market_id': self.market_id,
            'target_date': self.target_date,
            'predicted_price': self.predicted_price,
            'confidence_score': self.confidence_score,
            'status': self.status.value if self.status else None,
            'override_price': self.override_price,
            'override_reason': self.override_reason,
            'created_at': self.created_at
        }
