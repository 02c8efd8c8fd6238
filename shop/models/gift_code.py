"""Gift code model."""
import uuid
from sqlalchemy import Column, BigInteger, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from shop.database import Base


class GiftCode(Base):
    """
    Stored-value code bought as a gift coupon.

    The balance only goes down. A spent code keeps its row with a zero
    balance so it can still be looked up as "spent".
    """

    __tablename__ = 'gift_codes'
    __table_args__ = (
        CheckConstraint('remaining_cents >= 0', name='ck_gift_codes_remaining_cents'),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    code = Column(String(64), unique=True, nullable=False, index=True)
    value_cents = Column(BigInteger, nullable=False)
    remaining_cents = Column(BigInteger, nullable=False)
    customer_email = Column(String(255), nullable=False, default='')
    # Gift purchase that minted this code
    provider_order_id = Column(String(64), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def is_spent(self):
        return (self.remaining_cents or 0) <= 0

    def __repr__(self):
        return f"<GiftCode(code='{self.code}', remaining_cents={self.remaining_cents})>"
