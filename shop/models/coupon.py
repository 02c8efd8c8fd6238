"""Coupon model."""
import uuid
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from shop.database import Base


class Coupon(Base):
    """Human-chosen discount code with a percentage or fixed reduction and a use count."""

    __tablename__ = 'coupons'
    __table_args__ = (
        CheckConstraint('remaining_uses >= 0', name='ck_coupons_remaining_uses'),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    code = Column(String(64), unique=True, nullable=False, index=True)  # stored uppercase
    percent_off = Column(Integer, nullable=True)
    amount_off = Column(BigInteger, nullable=True)  # cents
    remaining_uses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def has_valid_discount(self):
        """At least one discount kind is set to a positive value."""
        return (self.amount_off or 0) > 0 or (self.percent_off or 0) > 0

    @property
    def is_usable(self):
        return (self.remaining_uses or 0) > 0 and self.has_valid_discount

    def __repr__(self):
        return f"<Coupon(code='{self.code}', remaining_uses={self.remaining_uses})>"
