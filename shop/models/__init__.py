"""Models package - exports all SQLAlchemy models."""
# Discount sources
from shop.models.coupon import Coupon
from shop.models.gift_code import GiftCode

# Checkout
from shop.models.pending_order import PendingOrder, PendingGift
from shop.models.order import Order, OrderKind
from shop.models.order_item import OrderItem

__all__ = [
    'Coupon', 'GiftCode',
    'PendingOrder', 'PendingGift',
    'Order', 'OrderKind', 'OrderItem',
]
