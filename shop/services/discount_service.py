"""
Discount resolution for coupons and gift codes.

A code is tried as a gift code first (case-insensitive), then as a coupon
(uppercase, exact). Coupons that are out of uses or carry no positive
discount behave exactly like unknown codes.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from sqlalchemy import func, case

from shop.models import Coupon, GiftCode
from shop.exceptions import ValidationError, NotFoundError
from shop.utils.money import percent_of

logger = logging.getLogger(__name__)


class DiscountSource(str, enum.Enum):
    """Where a discount comes from."""
    GIFT_CODE = 'gift_code'
    COUPON = 'coupon'


@dataclass(frozen=True)
class DiscountResult:
    """Outcome of evaluating a code against a subtotal."""
    applies: bool
    source: Optional[DiscountSource] = None
    discount_cents: int = 0
    canonical_code: Optional[str] = None

    @classmethod
    def none(cls) -> 'DiscountResult':
        return cls(applies=False)


def normalize_code(code: Optional[str]) -> str:
    return (code or '').strip()


def find_gift_code(session, code: str) -> Optional[GiftCode]:
    """Gift codes are opaque hex strings; match them regardless of case."""
    return session.query(GiftCode).filter(
        func.lower(GiftCode.code) == code.lower()
    ).first()


def find_coupon(session, code: str) -> Optional[Coupon]:
    return session.query(Coupon).filter(Coupon.code == code.upper()).first()


def evaluate(session, code: Optional[str], subtotal_cents: int) -> DiscountResult:
    """
    Resolve which discount source a code refers to and how much it takes off.

    Args:
        session: SQLAlchemy session
        code: Raw code as typed by the buyer (may be None or blank)
        subtotal_cents: Cart subtotal in cents

    Returns:
        DiscountResult; applies=False when nothing matches

    Raises:
        ValidationError: if subtotal_cents is negative
    """
    if subtotal_cents < 0:
        raise ValidationError('Subtotal cannot be negative')

    code = normalize_code(code)
    if not code:
        return DiscountResult.none()

    gift = find_gift_code(session, code)
    if gift is not None and gift.remaining_cents > 0:
        return DiscountResult(
            applies=True,
            source=DiscountSource.GIFT_CODE,
            discount_cents=min(gift.remaining_cents, subtotal_cents),
            canonical_code=gift.code,
        )

    coupon = find_coupon(session, code)
    if coupon is not None and coupon.is_usable:
        if (coupon.amount_off or 0) > 0:
            # Fixed amount takes priority over percentage
            discount = coupon.amount_off
        else:
            discount = percent_of(coupon.percent_off, subtotal_cents)
        return DiscountResult(
            applies=True,
            source=DiscountSource.COUPON,
            discount_cents=discount,
            canonical_code=coupon.code,
        )

    return DiscountResult.none()


def total(subtotal_cents: int, discount_cents: int) -> int:
    """Amount owed after discount. Never negative."""
    return max(0, subtotal_cents - discount_cents)


def describe_code(session, code: Optional[str], subtotal_cents: int) -> Dict[str, Any]:
    """
    Payload for the cart UI's "apply coupon" check. Nothing is persisted.

    Gift codes report the amount they would take off this cart; coupons report
    their configured amount_off / percent_off.
    """
    invalid = {'valid': False, 'amount_off': None, 'percent_off': None}

    code = normalize_code(code)
    if not code:
        return invalid

    result = evaluate(session, code, max(subtotal_cents, 0))
    if not result.applies:
        return invalid

    if result.source == DiscountSource.GIFT_CODE:
        if result.discount_cents <= 0:
            # Balance left but nothing in the cart to spend it on
            return invalid
        return {'valid': True, 'amount_off': result.discount_cents, 'percent_off': None}

    coupon = find_coupon(session, result.canonical_code)
    return {
        'valid': True,
        'amount_off': coupon.amount_off,
        'percent_off': coupon.percent_off,
    }


def lookup_code(session, code: Optional[str]) -> Dict[str, Any]:
    """
    Staff-side lookup of a scanned code (QR on a printed gift coupon).

    Raises:
        NotFoundError: unknown, spent or unusable code
    """
    code = normalize_code(code)
    if not code:
        raise NotFoundError('Invalid code')

    gift = find_gift_code(session, code)
    if gift is not None and gift.remaining_cents > 0:
        return {
            'id': gift.id,
            'code': gift.code,
            'balance': gift.remaining_cents,
            'customer_email': gift.customer_email,
        }

    coupon = find_coupon(session, code)
    if coupon is not None and (coupon.remaining_uses or 0) > 0:
        return {
            'id': coupon.id,
            'code': coupon.code,
            'balance': max(coupon.amount_off or 0, coupon.percent_off or 0),
            'customer_email': '',
        }

    raise NotFoundError('Invalid code')


def decrement(session, code: Optional[str], discount_cents: int,
              source: Optional[str] = None) -> int:
    """
    Consume one redemption of a discount source, with a floor at zero.

    Runs as a single UPDATE so concurrent finalizations against the same code
    cannot lose updates. Does not commit.

    Args:
        session: SQLAlchemy session (inside the finalization transaction)
        code: canonical code recorded at checkout
        discount_cents: amount taken off at checkout (gift codes only)
        source: 'gift_code' or 'coupon'; None tries gift code then coupon

    Returns:
        Number of rows updated (0 when the code no longer exists)
    """
    code = normalize_code(code)
    if not code:
        return 0

    if source in (None, DiscountSource.GIFT_CODE.value):
        amount = max(int(discount_cents or 0), 0)
        updated = session.query(GiftCode).filter(
            func.lower(GiftCode.code) == code.lower()
        ).update(
            {GiftCode.remaining_cents: case(
                (GiftCode.remaining_cents > amount, GiftCode.remaining_cents - amount),
                else_=0
            )},
            synchronize_session=False
        )
        if updated or source is not None:
            logger.info(f"[DISCOUNT] Gift code {code} debited {amount} cents (rows={updated})")
            return updated

    updated = session.query(Coupon).filter(Coupon.code == code.upper()).update(
        {Coupon.remaining_uses: case(
            (Coupon.remaining_uses > 1, Coupon.remaining_uses - 1),
            else_=0
        )},
        synchronize_session=False
    )
    logger.info(f"[DISCOUNT] Coupon {code.upper()} used once (rows={updated})")
    return updated
