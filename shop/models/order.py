"""Order model."""
import enum
import uuid
from sqlalchemy import Column, BigInteger, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shop.database import Base


class OrderKind(str, enum.Enum):
    """What the order paid for."""
    FOOD = 'food'
    GIFT_CODE = 'gift_code'


class Order(Base):
    """Finalized, paid order. Never mutated after creation."""

    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_order_id = Column(String(64), unique=True, nullable=True, index=True)
    user_id = Column(String(64), nullable=True)
    email = Column(String(255), nullable=False, default='')
    total_cents = Column(BigInteger, nullable=False)  # amount actually charged
    currency = Column(String(3), nullable=False, default='EUR', server_default='EUR')
    status = Column(String(20), nullable=False, default='completed', server_default='completed')
    kind = Column(String(20), nullable=False, default=OrderKind.FOOD.value)
    coupon_code = Column(String(64), nullable=True)
    discount_cents = Column(BigInteger, nullable=False, default=0, server_default='0')
    items_json = Column(Text, nullable=False, default='{}')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Order(id={self.id}, total_cents={self.total_cents}, kind={self.kind})>"
