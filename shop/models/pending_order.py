"""Pending order and pending gift models."""
from sqlalchemy import Column, BigInteger, String, Text, DateTime
from sqlalchemy.sql import func
from shop.database import Base


class PendingOrder(Base):
    """
    Checkout waiting for payment capture.

    Keyed by the payment provider's order id. Consumed (deleted) exactly once
    when the payment is finalized, or swept after the retention window.
    """

    __tablename__ = 'pending_orders'

    order_id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=True)
    email = Column(String(255), nullable=False, default='')
    amount_cents = Column(BigInteger, nullable=False)  # discounted total owed
    items_json = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    def __repr__(self):
        return f"<PendingOrder(order_id='{self.order_id}', amount_cents={self.amount_cents})>"


class PendingGift(Base):
    """Gift coupon purchase waiting for payment capture."""

    __tablename__ = 'pending_gifts'

    order_id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, default='')
    amount_cents = Column(BigInteger, nullable=False)  # base amount, bonus excluded
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    def __repr__(self):
        return f"<PendingGift(order_id='{self.order_id}', amount_cents={self.amount_cents})>"
