"""
Gift coupon purchases.

A buyer pays a base amount and receives a stored-value code worth the base
plus a bonus percentage. The purchase also lands in the order ledger as a
gift_code order.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from shop.exceptions import GatewayError, PersistenceError, ValidationError
from shop.models import GiftCode, Order, OrderKind
from shop.services.checkout_service import CheckoutResult, fallback_url
from shop.services.email_service import send_gift_code_email
from shop.services.finalization_service import FinalizationStatus
from shop.services.identity_service import Identity, resolve_buyer_email
from shop.services.paypal_client import STATUS_COMPLETED
from shop.services.pending_order_service import (
    create_pending_gift, get_pending_gift, consume_pending_gift
)
from shop.utils.money import percent_of

logger = logging.getLogger(__name__)

GIFT_RETURN_PATH = '/api/paypal/gift/return'
GIFT_CANCEL_PATH = '/api/paypal/gift/cancel'
DEFAULT_BONUS_PERCENT = 10


@dataclass(frozen=True)
class GiftIssuanceOutcome:
    status: FinalizationStatus
    code: Optional[str] = None
    value_cents: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status in (FinalizationStatus.FINALIZED, FinalizationStatus.ALREADY_PROCESSED)


def gift_value(base_amount_cents: int, bonus_percent: int = DEFAULT_BONUS_PERCENT) -> int:
    """
    Value loaded on a gift code: base plus bonus, bonus rounded half up.

    Examples:
        gift_value(5000) -> 5500
        gift_value(1005) -> 1106   (100.5 bonus rounds up)
    """
    return base_amount_cents + percent_of(bonus_percent, base_amount_cents)


def generate_code() -> str:
    """Opaque, unguessable code."""
    return uuid.uuid4().hex


def start_gift_purchase(
    session,
    gateway,
    amount_eur,
    buyer_email: Optional[str],
    identity: Optional[Identity],
    app_url: str,
    currency: str = 'EUR',
    bonus_percent: int = DEFAULT_BONUS_PERCENT
) -> CheckoutResult:
    """
    Open a PayPal order for a gift coupon and remember it as a pending gift.

    Raises:
        ValidationError: amount is not a positive whole number of euros
        PersistenceError: pending gift could not be stored
    """
    if isinstance(amount_eur, bool) or not isinstance(amount_eur, int) or amount_eur <= 0:
        raise ValidationError('amount_eur must be a positive integer')

    amount_cents = amount_eur * 100
    bonus_cents = percent_of(bonus_percent, amount_cents)
    email = resolve_buyer_email(identity, buyer_email)

    if gateway is None:
        logger.warning("[GIFT] No payment gateway configured, returning fallback page")
        return CheckoutResult(url=fallback_url(app_url), ok=False, total_cents=amount_cents)

    try:
        provider_order = gateway.create_order(
            amount_cents, currency, GIFT_RETURN_PATH, GIFT_CANCEL_PATH,
            f"Gift coupon {amount_cents} cents (+{bonus_cents} bonus)"
        )
    except GatewayError as e:
        logger.warning(f"[GIFT] Failed to create PayPal order for gift coupon: {e.message}")
        return CheckoutResult(url=fallback_url(app_url), ok=False, total_cents=amount_cents)

    if not provider_order.approval_url:
        logger.warning(f"[GIFT] PayPal order {provider_order.id} has no approval link")
        return CheckoutResult(url=fallback_url(app_url), ok=False, total_cents=amount_cents)

    logger.info(f"[GIFT] Creating pending gift for order {provider_order.id} with email: '{email}'")
    try:
        create_pending_gift(session, provider_order.id, email, amount_cents)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[GIFT] Could not store pending gift {provider_order.id}")
        raise PersistenceError(f"Could not store pending gift: {e}")

    return CheckoutResult(
        url=provider_order.approval_url,
        ok=True,
        provider_order_id=provider_order.id,
        subtotal_cents=amount_cents,
        total_cents=amount_cents,
    )


def _already_issued(session, provider_order_id: str) -> GiftIssuanceOutcome:
    existing = session.query(GiftCode).filter_by(provider_order_id=provider_order_id).first()
    if existing is None:
        return GiftIssuanceOutcome(status=FinalizationStatus.ALREADY_PROCESSED)
    return GiftIssuanceOutcome(
        status=FinalizationStatus.ALREADY_PROCESSED,
        code=existing.code,
        value_cents=existing.value_cents,
    )


def issue_gift_code(
    session,
    gateway,
    provider_order_id: str,
    bonus_percent: int = DEFAULT_BONUS_PERCENT
) -> GiftIssuanceOutcome:
    """
    Capture a gift purchase and mint the code.

    Same capture / idempotency rules as order finalization: the conditional
    delete of the pending gift gates the insert of the code and the audit
    order.

    Raises:
        PersistenceError: the atomic span failed and was rolled back
    """
    try:
        captured = gateway.capture_order(provider_order_id)
    except GatewayError as e:
        logger.error(f"[GIFT] Capture of {provider_order_id} failed: {e.message}")
        return GiftIssuanceOutcome(status=FinalizationStatus.TRANSIENT_FAILURE)

    if captured.status != STATUS_COMPLETED:
        logger.info(f"[GIFT] Gift order {provider_order_id} not settled (status={captured.status})")
        return GiftIssuanceOutcome(status=FinalizationStatus.NOT_SETTLED)

    pending = get_pending_gift(session, provider_order_id)
    if pending is None:
        logger.info(f"[GIFT] No pending gift for {provider_order_id}, already processed")
        return _already_issued(session, provider_order_id)

    base_cents = pending.amount_cents
    email = pending.email
    value_cents = gift_value(base_cents, bonus_percent)
    code = generate_code()

    try:
        if not consume_pending_gift(session, provider_order_id):
            session.rollback()
            return _already_issued(session, provider_order_id)

        session.add(GiftCode(
            code=code,
            value_cents=value_cents,
            remaining_cents=value_cents,
            customer_email=email,
            provider_order_id=provider_order_id,
        ))
        session.add(Order(
            provider_order_id=provider_order_id,
            email=email,
            total_cents=base_cents,
            kind=OrderKind.GIFT_CODE.value,
            items_json=json.dumps({
                'gift_code': code,
                'base_cents': base_cents,
                'bonus_cents': value_cents - base_cents,
                'value_cents': value_cents,
            }),
        ))
        session.commit()

    except IntegrityError:
        session.rollback()
        logger.warning(f"[GIFT] Duplicate issuance for {provider_order_id} rejected by storage")
        return _already_issued(session, provider_order_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[GIFT] Could not issue gift code for {provider_order_id}")
        raise PersistenceError(f"Could not issue gift code: {e}")

    logger.info(f"[GIFT] Issued gift code worth {value_cents} cents for PayPal order {provider_order_id}")

    if email:
        if not send_gift_code_email(email, code, value_cents, base_cents):
            logger.error(f"[GIFT] Gift code email to {email} failed for {provider_order_id}")
    else:
        logger.warning(f"[GIFT] No email on pending gift {provider_order_id}; code only shown on redirect")

    return GiftIssuanceOutcome(status=FinalizationStatus.FINALIZED, code=code, value_cents=value_cents)
