"""Read side of the order ledger."""
from typing import Dict, Any

from shop.exceptions import NotFoundError
from shop.models import Order
from shop.services.cart_snapshot import CartSnapshot


def get_order_details(session, order_id: str) -> Dict[str, Any]:
    """
    Order with its items, as shown on the thank-you page.

    Raises:
        NotFoundError: unknown order id
    """
    order = session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFoundError(f'Order {order_id} not found')

    discount_cents = order.discount_cents
    if not discount_cents and order.items_json:
        # Older rows only kept the discount inside the snapshot
        discount_cents = CartSnapshot.from_json(order.items_json).discount_cents

    return {
        'id': order.id,
        'email': order.email,
        'total_cents': order.total_cents,
        'currency': order.currency,
        'kind': order.kind,
        'coupon_code': order.coupon_code,
        'discount_cents': discount_cents,
        'items': [
            {
                'product_id': item.product_id,
                'name': item.name or 'Product Item',
                'quantity': item.quantity,
                'unit_amount': item.unit_amount,
            }
            for item in order.items
        ],
        'created_at': order.created_at.isoformat() if order.created_at else None,
    }
