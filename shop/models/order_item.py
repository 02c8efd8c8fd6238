"""Order Item model."""
import uuid
from sqlalchemy import Column, BigInteger, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from shop.database import Base


class OrderItem(Base):
    """Order line with the price snapshotted at purchase time."""

    __tablename__ = 'order_items'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_order_items_quantity'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String(36), ForeignKey('orders.id'), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False, default='')
    quantity = Column(Integer, nullable=False)
    unit_amount = Column(BigInteger, nullable=False)  # cents

    # Relationships
    order = relationship('Order', back_populates='items')

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
