# price_tracker/models/orm.py
# SQLAlchemy rows backing SqlStore. Per-source columns are named
# "<source>_url" / "<source>_price" after Source values.

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from price_tracker.core.db import Base


class ProductRow(Base):
    __tablename__ = "product"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    amazon_url = Column(String, nullable=True)
    flipkart_url = Column(String, nullable=True)
    amazon_price = Column(Float, nullable=True)
    flipkart_price = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    history = relationship(
        "HistoryRow",
        cascade="all, delete-orphan",
        order_by="HistoryRow.id",
    )


class HistoryRow(Base):
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(
        String, ForeignKey("product.id", ondelete="CASCADE"), index=True, nullable=False
    )
    recorded_at = Column(DateTime, nullable=False)
    amazon_price = Column(Float, nullable=True)
    flipkart_price = Column(Float, nullable=True)


class AlertRow(Base):
    # no FK to product: alerts outlive the product they were raised for
    __tablename__ = "price_alert"

    id = Column(String, primary_key=True)
    product_id = Column(String, index=True, nullable=False)
    product_name = Column(String, nullable=False)
    source = Column(String, nullable=False)
    old_price = Column(Float, nullable=False)
    new_price = Column(Float, nullable=False)
    percent_change = Column(Float, nullable=False)
    created_at = Column(DateTime, nullable=False)
