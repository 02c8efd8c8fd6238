"""
Cart snapshot stored on a pending order.

The snapshot is what finalization works from: cart lines with the prices the
buyer saw, plus the discount that was applied at checkout. Parsing never
fails part-way; a missing key falls back to its default.
"""
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any

from shop.exceptions import ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _to_int(value, field_name: str) -> int:
    """Strict integer coercion for cart input. Bools and fractions are rejected."""
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    raise ValidationError(f'{field_name} must be an integer')


@dataclass(frozen=True)
class CartLine:
    """One cart line. unit_amount is in cents."""
    product_id: str
    name: str
    unit_amount: int
    quantity: int
    currency: str = 'EUR'

    @property
    def line_total(self) -> int:
        return self.unit_amount * self.quantity

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'CartLine':
        """
        Build a line from request JSON.

        The storefront sends camelCase (productId, unitAmount); snake_case is
        accepted as well.

        Raises:
            ValidationError: missing product id, non-integer or negative amounts
        """
        if not isinstance(data, dict):
            raise ValidationError('Each cart item must be an object')

        product_id = data.get('productId', data.get('product_id'))
        if product_id is None or str(product_id).strip() == '':
            raise ValidationError('Cart item is missing productId')

        unit_amount = _to_int(data.get('unitAmount', data.get('unit_amount')), 'unitAmount')
        quantity = _to_int(data.get('quantity'), 'quantity')

        if unit_amount < 0:
            raise ValidationError('unitAmount cannot be negative')
        if quantity < 0:
            raise ValidationError('quantity cannot be negative')

        return cls(
            product_id=str(product_id),
            name=str(data.get('name') or ''),
            unit_amount=unit_amount,
            quantity=quantity,
            currency=str(data.get('currency') or 'EUR'),
        )


def parse_cart(items) -> List[CartLine]:
    """Validate the cart list from a checkout request."""
    if not isinstance(items, list) or not items:
        raise ValidationError('The cart is empty')
    return [CartLine.from_payload(item) for item in items]


def cart_subtotal(lines: List[CartLine]) -> int:
    return sum(line.line_total for line in lines)


@dataclass
class CartSnapshot:
    """Versioned cart + discount snapshot serialized into pending_orders.items_json."""
    lines: List[CartLine] = field(default_factory=list)
    coupon_code: Optional[str] = None
    discount_cents: int = 0
    discount_source: Optional[str] = None  # 'gift_code' | 'coupon'
    version: int = SNAPSHOT_VERSION

    @property
    def subtotal_cents(self) -> int:
        return cart_subtotal(self.lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'cart': [asdict(line) for line in self.lines],
            'coupon_code': self.coupon_code,
            'discount_cents': self.discount_cents,
            'discount_source': self.discount_source,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: Optional[str]) -> 'CartSnapshot':
        """
        Parse a stored snapshot.

        Malformed JSON or malformed lines are logged and dropped; the result is
        always a usable snapshot.
        """
        try:
            data = json.loads(raw or '{}')
        except (TypeError, ValueError):
            logger.warning("[SNAPSHOT] Unparseable items_json, using empty snapshot")
            data = {}
        if not isinstance(data, dict):
            data = {}

        lines = []
        for item in data.get('cart') or []:
            try:
                lines.append(CartLine.from_payload(item))
            except ValidationError as e:
                logger.warning(f"[SNAPSHOT] Skipping malformed cart line {item!r}: {e.message}")

        try:
            discount_cents = max(int(data.get('discount_cents') or 0), 0)
        except (TypeError, ValueError):
            discount_cents = 0

        # Version 0 rows predate discount_source; the source is re-derived at decrement time
        try:
            version = int(data.get('version') or 0)
        except (TypeError, ValueError):
            version = 0

        return cls(
            lines=lines,
            coupon_code=data.get('coupon_code') or None,
            discount_cents=discount_cents,
            discount_source=data.get('discount_source') or None,
            version=version,
        )
