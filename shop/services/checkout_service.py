"""
Checkout orchestration.

Prices the cart, applies the discount code, opens a PayPal order and records
a pending order keyed by the PayPal order id. Nothing is persisted when the
provider call fails.
"""
import logging
from dataclasses import dataclass
from typing import Optional, List, Any

from sqlalchemy.exc import SQLAlchemyError

from shop.exceptions import GatewayError, PersistenceError
from shop.services import discount_service
from shop.services.cart_snapshot import CartSnapshot, parse_cart, cart_subtotal
from shop.services.identity_service import Identity, resolve_buyer_email
from shop.services.pending_order_service import create_pending_order

logger = logging.getLogger(__name__)

RETURN_PATH = '/api/paypal/return'
CANCEL_PATH = '/api/paypal/cancel'


@dataclass(frozen=True)
class CheckoutResult:
    """Where to send the buyer next."""
    url: str
    ok: bool
    provider_order_id: Optional[str] = None
    subtotal_cents: int = 0
    discount_cents: int = 0
    total_cents: int = 0


def fallback_url(app_url: str) -> str:
    return f"{app_url}/thank-you"


def start_checkout(
    session,
    gateway,
    cart: List[Any],
    coupon_code: Optional[str],
    buyer_email: Optional[str],
    identity: Optional[Identity],
    app_url: str,
    currency: str = 'EUR'
) -> CheckoutResult:
    """
    Start a checkout.

    Args:
        session: SQLAlchemy session
        gateway: payment gateway (PayPalClient or a test double); None when not configured
        cart: raw cart items from the request body
        coupon_code: optional coupon or gift code
        buyer_email: email typed in the checkout form
        identity: authenticated buyer, if any
        app_url: storefront URL used for the fallback page
        currency: checkout currency

    Returns:
        CheckoutResult with the PayPal approval URL, or the fallback page when
        the provider could not be reached

    Raises:
        ValidationError: malformed cart or negative amounts
        PersistenceError: pending order could not be stored
    """
    lines = parse_cart(cart)
    subtotal = cart_subtotal(lines)

    discount = discount_service.DiscountResult.none()
    if discount_service.normalize_code(coupon_code):
        discount = discount_service.evaluate(session, coupon_code, subtotal)

    total_cents = discount_service.total(subtotal, discount.discount_cents)
    email = resolve_buyer_email(identity, buyer_email)

    logger.info(
        f"[CHECKOUT] subtotal={subtotal} discount={discount.discount_cents} "
        f"total={total_cents} code={discount.canonical_code}"
    )

    if gateway is None:
        logger.warning("[CHECKOUT] No payment gateway configured, returning fallback page")
        return CheckoutResult(url=fallback_url(app_url), ok=False, subtotal_cents=subtotal,
                              discount_cents=discount.discount_cents, total_cents=total_cents)

    try:
        provider_order = gateway.create_order(
            total_cents, currency, RETURN_PATH, CANCEL_PATH, "Cart checkout"
        )
    except GatewayError as e:
        logger.error(f"[CHECKOUT] Could not create PayPal order: {e.message}")
        return CheckoutResult(url=fallback_url(app_url), ok=False, subtotal_cents=subtotal,
                              discount_cents=discount.discount_cents, total_cents=total_cents)

    if not provider_order.approval_url:
        logger.error(f"[CHECKOUT] PayPal order {provider_order.id} has no approval link")
        return CheckoutResult(url=fallback_url(app_url), ok=False, subtotal_cents=subtotal,
                              discount_cents=discount.discount_cents, total_cents=total_cents)

    snapshot = CartSnapshot(
        lines=lines,
        coupon_code=discount.canonical_code if discount.applies else None,
        discount_cents=discount.discount_cents,
        discount_source=discount.source.value if discount.applies else None,
    )

    try:
        create_pending_order(
            session,
            provider_order_id=provider_order.id,
            email=email,
            amount_cents=total_cents,
            snapshot=snapshot,
            user_id=identity.user_id if identity else None,
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[CHECKOUT] Could not store pending order {provider_order.id}")
        raise PersistenceError(f"Could not store pending order: {e}")

    logger.info(f"[CHECKOUT] Pending order {provider_order.id} stored for {email or 'guest'}")
    return CheckoutResult(
        url=provider_order.approval_url,
        ok=True,
        provider_order_id=provider_order.id,
        subtotal_cents=subtotal,
        discount_cents=discount.discount_cents,
        total_cents=total_cents,
    )
