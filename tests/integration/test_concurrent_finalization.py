"""
Integration tests for finalization under concurrent traffic (file-backed SQLite).
"""

import threading
import time
import pytest
from shop.database import get_session
from shop.models import Coupon, GiftCode, Order, PendingOrder
from shop.services import discount_service
from shop.services import finalization_service, gift_code_service
from shop.services.cart_snapshot import CartLine
from shop.services.finalization_service import finalize_order, FinalizationStatus
from shop.services.gift_code_service import issue_gift_code


def _run_in_app_thread(app, target, results, errors):
    """Run target(session) on a worker thread with its own app context and scoped session."""
    def runner():
        with app.app_context():
            try:
                results.append(target(get_session()))
            except Exception as e:
                errors.append(e)
            finally:
                get_session().remove()
    return threading.Thread(target=runner)


@pytest.mark.file_db
class TestConcurrentFinalization:

    def test_request_on_other_thread_keeps_span_intact(self, app, session, gateway,
                                                       make_coupon, make_pending_order, mocker):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=3)
        pending = make_pending_order(lines=[CartLine('menu', 'Menu', 4550, 1)], coupon_code='SAVE10',
                                     discount_cents=455, discount_source='coupon')
        real_decrement = discount_service.decrement
        statuses = []

        def decrement_with_traffic(*args, **kwargs):
            updated = real_decrement(*args, **kwargs)
            # Another request opens, uses and tears down its session mid-span
            worker = threading.Thread(
                target=lambda: statuses.append(app.test_client().get('/api/orders/not-there').status_code)
            )
            worker.start()
            worker.join(timeout=10)
            return updated

        mocker.patch('shop.services.discount_service.decrement', side_effect=decrement_with_traffic)

        outcome = finalize_order(session, gateway, pending.order_id)

        assert statuses == [404]
        assert outcome.status == FinalizationStatus.FINALIZED
        session.expire_all()
        order = session.query(Order).filter_by(provider_order_id=pending.order_id).one()
        assert order.id == outcome.order_id
        assert session.query(PendingOrder).count() == 0
        assert session.query(Coupon).filter_by(code='SAVE10').one().remaining_uses == 2

    def test_redirect_and_webhook_race(self, app, session, gateway,
                                       make_coupon, make_pending_order, mocker):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=3)
        pending = make_pending_order(lines=[CartLine('menu', 'Menu', 4550, 1)], coupon_code='SAVE10',
                                     discount_cents=455, discount_source='coupon')
        provider_id = pending.order_id

        # Both callers pass the pending lookup before either deletes
        barrier = threading.Barrier(2)
        real_consume = finalization_service.consume_pending_order
        real_decrement = discount_service.decrement

        def consume_together(s, order_id):
            barrier.wait(timeout=5)
            return real_consume(s, order_id)

        def slow_decrement(*args, **kwargs):
            time.sleep(0.2)
            return real_decrement(*args, **kwargs)

        mocker.patch('shop.services.finalization_service.consume_pending_order', side_effect=consume_together)
        mocker.patch('shop.services.discount_service.decrement', side_effect=slow_decrement)

        results, errors = [], []
        workers = [
            _run_in_app_thread(app, lambda s: finalize_order(s, gateway, provider_id), results, errors)
            for _ in range(2)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=20)

        assert errors == []
        assert sorted(r.status.value for r in results) == ['already_processed', 'finalized']
        assert all(r.succeeded for r in results)
        assert results[0].order_id == results[1].order_id
        assert gateway.captured == [provider_id, provider_id]

        session.expire_all()
        assert session.query(Order).count() == 1
        assert session.query(PendingOrder).count() == 0
        assert session.query(Coupon).filter_by(code='SAVE10').one().remaining_uses == 2

    def test_gift_issuance_race(self, app, session, gateway, make_pending_gift, mocker):
        provider_id = make_pending_gift(amount_cents=5000).order_id

        barrier = threading.Barrier(2)
        real_consume = gift_code_service.consume_pending_gift

        def consume_together(s, order_id):
            barrier.wait(timeout=5)
            return real_consume(s, order_id)

        mocker.patch('shop.services.gift_code_service.consume_pending_gift', side_effect=consume_together)

        results, errors = [], []
        workers = [
            _run_in_app_thread(app, lambda s: issue_gift_code(s, gateway, provider_id), results, errors)
            for _ in range(2)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=20)

        assert errors == []
        assert all(r.succeeded for r in results)
        assert results[0].code == results[1].code

        session.expire_all()
        gift = session.query(GiftCode).one()
        assert gift.value_cents == 5500
        assert session.query(Order).filter_by(provider_order_id=provider_id).count() == 1
