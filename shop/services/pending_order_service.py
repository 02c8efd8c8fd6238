"""
Pending order store.

Pending orders and pending gifts bridge checkout start and payment capture.
They are keyed by the payment provider's order id and removed either by
finalization (conditional delete) or by the stale-row sweep.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from shop.models import PendingOrder, PendingGift
from shop.services.cart_snapshot import CartSnapshot

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)


def create_pending_order(
    session,
    provider_order_id: str,
    email: str,
    amount_cents: int,
    snapshot: CartSnapshot,
    user_id: Optional[str] = None
) -> PendingOrder:
    """
    Insert (or replace) the pending order for a provider order id. Does not commit.
    """
    pending = PendingOrder(
        order_id=provider_order_id,
        user_id=user_id,
        email=email or '',
        amount_cents=amount_cents,
        items_json=snapshot.to_json(),
    )
    return session.merge(pending)


def create_pending_gift(session, provider_order_id: str, email: str, amount_cents: int) -> PendingGift:
    """Insert (or replace) the pending gift purchase. Does not commit."""
    pending = PendingGift(
        order_id=provider_order_id,
        email=email or '',
        amount_cents=amount_cents,
    )
    return session.merge(pending)


def get_pending_order(session, provider_order_id: str) -> Optional[PendingOrder]:
    return session.query(PendingOrder).filter_by(order_id=provider_order_id).first()


def get_pending_gift(session, provider_order_id: str) -> Optional[PendingGift]:
    return session.query(PendingGift).filter_by(order_id=provider_order_id).first()


def consume_pending_order(session, provider_order_id: str) -> bool:
    """
    Conditional delete: True only for the caller whose DELETE removed the row.

    This is the commit gate of finalization. A concurrent duplicate blocks on
    the row until the winner commits and then deletes nothing.
    """
    deleted = session.query(PendingOrder).filter(
        PendingOrder.order_id == provider_order_id
    ).delete(synchronize_session=False)
    return deleted == 1


def consume_pending_gift(session, provider_order_id: str) -> bool:
    """Conditional delete of a pending gift. See consume_pending_order."""
    deleted = session.query(PendingGift).filter(
        PendingGift.order_id == provider_order_id
    ).delete(synchronize_session=False)
    return deleted == 1


def sweep_stale_pending(
    session,
    now: Optional[datetime] = None,
    max_age: timedelta = DEFAULT_RETENTION
) -> Tuple[int, int]:
    """
    Delete pending orders and pending gifts older than max_age.

    Payment state lives with the provider, so dropping an abandoned checkout
    loses nothing. Commits.

    Returns:
        (pending_orders_deleted, pending_gifts_deleted)
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - max_age

    try:
        orders = session.query(PendingOrder).filter(
            PendingOrder.created_at < cutoff
        ).delete(synchronize_session=False)
        gifts = session.query(PendingGift).filter(
            PendingGift.created_at < cutoff
        ).delete(synchronize_session=False)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[CLEANUP] Removed {orders} stale pending orders and {gifts} stale pending gifts")
    return orders, gifts
