"""
Payment capture finalization.

Turns a captured PayPal order into a persisted Order with its items, consumes
the discount that was applied at checkout and sends the confirmation email.

Callbacks arrive at least once: the browser redirect and the webhook can both
fire for the same PayPal order, in any order or concurrently. The conditional
delete of the pending order is the only commit gate; whoever deletes the row
materializes the order, everybody else reports "already processed".
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from shop.exceptions import GatewayError, PersistenceError
from shop.models import Order, OrderItem, OrderKind
from shop.services import discount_service
from shop.services.cart_snapshot import CartSnapshot
from shop.services.email_service import send_order_confirmation
from shop.services.paypal_client import STATUS_COMPLETED
from shop.services.pending_order_service import (
    get_pending_order, consume_pending_order, get_pending_gift
)

logger = logging.getLogger(__name__)


class FinalizationStatus(str, enum.Enum):
    FINALIZED = 'finalized'
    ALREADY_PROCESSED = 'already_processed'
    NOT_SETTLED = 'not_settled'
    TRANSIENT_FAILURE = 'transient_failure'


@dataclass(frozen=True)
class FinalizationOutcome:
    status: FinalizationStatus
    order_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (FinalizationStatus.FINALIZED, FinalizationStatus.ALREADY_PROCESSED)


def find_order_by_provider_id(session, provider_order_id: str) -> Optional[Order]:
    return session.query(Order).filter_by(provider_order_id=provider_order_id).first()


def _already_processed(session, provider_order_id: str) -> FinalizationOutcome:
    existing = find_order_by_provider_id(session, provider_order_id)
    return FinalizationOutcome(
        status=FinalizationStatus.ALREADY_PROCESSED,
        order_id=existing.id if existing else None,
    )


def finalize_order(session, gateway, provider_order_id: str) -> FinalizationOutcome:
    """
    Capture and finalize a checkout.

    Args:
        session: SQLAlchemy session
        gateway: payment gateway with capture_order()
        provider_order_id: PayPal order id from the redirect or webhook

    Returns:
        FinalizationOutcome (FINALIZED carries the new internal order id)

    Raises:
        PersistenceError: the atomic span failed and was rolled back
    """
    # 1. Capture
    try:
        captured = gateway.capture_order(provider_order_id)
    except GatewayError as e:
        logger.error(f"[FINALIZE] Capture of {provider_order_id} failed: {e.message}")
        return FinalizationOutcome(status=FinalizationStatus.TRANSIENT_FAILURE)

    # 2. Settlement check
    if captured.status != STATUS_COMPLETED:
        logger.info(f"[FINALIZE] Order {provider_order_id} not settled (status={captured.status})")
        return FinalizationOutcome(status=FinalizationStatus.NOT_SETTLED)

    # 3. Pending order lookup
    pending = get_pending_order(session, provider_order_id)
    if pending is None:
        logger.info(f"[FINALIZE] No pending order for {provider_order_id}, already processed")
        return _already_processed(session, provider_order_id)

    # 4. Snapshot taken at checkout; discounts are never re-derived here
    snapshot = CartSnapshot.from_json(pending.items_json)
    email = pending.email
    amount_cents = pending.amount_cents
    user_id = pending.user_id
    items_json = pending.items_json

    # 5-8. Atomic span, gated by the conditional delete
    try:
        if not consume_pending_order(session, provider_order_id):
            session.rollback()
            logger.info(f"[FINALIZE] Lost the race for {provider_order_id}, already processed")
            return _already_processed(session, provider_order_id)

        order = Order(
            provider_order_id=provider_order_id,
            user_id=user_id,
            email=email,
            total_cents=amount_cents,
            kind=OrderKind.FOOD.value,
            coupon_code=snapshot.coupon_code,
            discount_cents=snapshot.discount_cents if snapshot.coupon_code else 0,
            items_json=items_json,
        )
        session.add(order)
        session.flush()
        order_id = order.id

        for line in snapshot.lines:
            if line.quantity < 1:
                continue
            session.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                name=line.name,
                quantity=line.quantity,
                unit_amount=line.unit_amount,
            ))

        if snapshot.coupon_code:
            discount_service.decrement(
                session,
                snapshot.coupon_code,
                snapshot.discount_cents,
                source=snapshot.discount_source,
            )

        session.commit()

    except IntegrityError:
        # Unique provider_order_id: another worker materialized this order first
        session.rollback()
        logger.warning(f"[FINALIZE] Duplicate order for {provider_order_id} rejected by storage")
        return _already_processed(session, provider_order_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[FINALIZE] Could not finalize {provider_order_id}")
        raise PersistenceError(f"Could not finalize order: {e}")

    logger.info(f"[FINALIZE] Order {order_id} created for PayPal order {provider_order_id}")

    # 9. Confirmation email; failures stay here
    if email:
        if not send_order_confirmation(
            email, order_id, snapshot.lines, amount_cents,
            discount_cents=snapshot.discount_cents, coupon_code=snapshot.coupon_code
        ):
            logger.error(f"[FINALIZE] Confirmation email for order {order_id} to {email} failed")

    # 10.
    return FinalizationOutcome(status=FinalizationStatus.FINALIZED, order_id=order_id)


def _webhook_ids(payload: Dict[str, Any]):
    """
    Provider order id and status from a webhook body.

    Accepts the bare order shape {id, status, ...} and the PayPal event
    envelope {event_type, resource: {id, status, supplementary_data}}.
    """
    resource = payload.get('resource')
    if isinstance(resource, dict):
        related = (resource.get('supplementary_data') or {}).get('related_ids') or {}
        # Capture events carry the capture id; the order id is in related_ids
        order_id = related.get('order_id') or resource.get('id')
        return order_id, resource.get('status')
    return payload.get('id'), payload.get('status')


def handle_webhook_event(session, gateway, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process a PayPal webhook delivery.

    Returns:
        JSON-able dict with a 'status' key: processed, already_processed,
        ignored, not_settled or failed
    """
    provider_order_id, status = _webhook_ids(payload)
    if not provider_order_id:
        logger.warning("[WEBHOOK] Payload without order id")
        return {'status': 'ignored', 'reason': 'missing order id'}

    logger.info(f"[WEBHOOK] PayPal order {provider_order_id} with status {status}")

    if status not in (STATUS_COMPLETED, 'APPROVED'):
        logger.info(f"[WEBHOOK] Ignoring non-completed payment status: {status}")
        return {'status': 'ignored', 'reason': 'non-completed status'}

    existing = find_order_by_provider_id(session, provider_order_id)
    if existing is not None:
        logger.info(f"[WEBHOOK] Order {provider_order_id} already processed")
        return {'status': 'already_processed', 'order_id': existing.id}

    if get_pending_gift(session, provider_order_id) is not None:
        from shop.services.gift_code_service import issue_gift_code
        gift = issue_gift_code(session, gateway, provider_order_id)
        return {
            'status': 'processed' if gift.succeeded else gift.status.value,
            'order_id': provider_order_id,
        }

    outcome = finalize_order(session, gateway, provider_order_id)
    if outcome.status == FinalizationStatus.FINALIZED:
        return {'status': 'processed', 'order_id': outcome.order_id}
    if outcome.status == FinalizationStatus.ALREADY_PROCESSED:
        return {'status': 'already_processed', 'order_id': outcome.order_id}
    if outcome.status == FinalizationStatus.NOT_SETTLED:
        return {'status': 'not_settled', 'order_id': provider_order_id}
    return {'status': 'failed', 'order_id': provider_order_id}
