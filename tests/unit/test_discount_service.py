"""
Unit tests for coupon and gift code resolution.
"""

import pytest
from shop.exceptions import ValidationError, NotFoundError
from shop.models import Coupon, GiftCode
from shop.services import discount_service
from shop.services.discount_service import DiscountSource


class TestEvaluate:

    def test_percent_coupon(self, session, make_coupon):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=5)
        result = discount_service.evaluate(session, 'save10', 4550)
        assert result.applies
        assert result.source == DiscountSource.COUPON
        assert result.discount_cents == 455
        assert result.canonical_code == 'SAVE10'

    def test_amount_off_wins_over_percent(self, session, make_coupon):
        make_coupon(code='BOTH', percent_off=50, amount_off=300, remaining_uses=1)
        assert discount_service.evaluate(session, 'BOTH', 5000).discount_cents == 300

    def test_exhausted_coupon_is_invalid(self, session, make_coupon):
        make_coupon(code='USED', percent_off=10, remaining_uses=0)
        assert not discount_service.evaluate(session, 'USED', 5000).applies

    def test_coupon_without_discount_is_invalid(self, session, make_coupon):
        make_coupon(code='EMPTY', remaining_uses=3)
        assert not discount_service.evaluate(session, 'EMPTY', 5000).applies

    def test_gift_code_capped_at_subtotal(self, session, make_gift_code):
        gift = make_gift_code(value_cents=5500)
        result = discount_service.evaluate(session, gift.code.upper(), 2000)
        assert result.source == DiscountSource.GIFT_CODE
        assert result.discount_cents == 2000
        assert result.canonical_code == gift.code

    def test_gift_code_checked_before_coupon(self, session, make_gift_code, make_coupon):
        gift = make_gift_code(value_cents=700, code='abcdef')
        make_coupon(code='ABCDEF', percent_off=50, remaining_uses=1)
        result = discount_service.evaluate(session, 'abcdef', 5000)
        assert result.source == DiscountSource.GIFT_CODE
        assert result.discount_cents == 700

    def test_spent_gift_code_falls_through(self, session, make_gift_code):
        gift = make_gift_code(value_cents=1000, remaining_cents=0)
        assert not discount_service.evaluate(session, gift.code, 5000).applies

    def test_blank_and_unknown_codes(self, session):
        assert not discount_service.evaluate(session, '   ', 5000).applies
        assert not discount_service.evaluate(session, None, 5000).applies
        assert not discount_service.evaluate(session, 'NOPE', 5000).applies

    def test_negative_subtotal_rejected(self, session):
        with pytest.raises(ValidationError):
            discount_service.evaluate(session, 'SAVE10', -1)

    def test_total_never_negative(self):
        assert discount_service.total(2000, 5000) == 0
        assert discount_service.total(4550, 455) == 4095


class TestDescribeAndLookup:

    def test_describe_coupon(self, session, make_coupon):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=1)
        assert discount_service.describe_code(session, 'save10', 4550) == {
            'valid': True, 'amount_off': None, 'percent_off': 10,
        }

    def test_describe_gift_code_reports_amount(self, session, make_gift_code):
        gift = make_gift_code(value_cents=1500)
        body = discount_service.describe_code(session, gift.code, 1000)
        assert body == {'valid': True, 'amount_off': 1000, 'percent_off': None}

    def test_describe_gift_code_on_empty_cart(self, session, make_gift_code):
        gift = make_gift_code(value_cents=1500)
        assert discount_service.describe_code(session, gift.code, 0)['valid'] is False

    def test_lookup_gift_code(self, session, make_gift_code):
        gift = make_gift_code(value_cents=5500, remaining_cents=1200, email='a@test.com')
        body = discount_service.lookup_code(session, gift.code)
        assert body['balance'] == 1200
        assert body['customer_email'] == 'a@test.com'

    def test_lookup_spent_code_not_found(self, session, make_gift_code, make_coupon):
        gift = make_gift_code(value_cents=500, remaining_cents=0)
        make_coupon(code='DONE', percent_off=10, remaining_uses=0)
        with pytest.raises(NotFoundError):
            discount_service.lookup_code(session, gift.code)
        with pytest.raises(NotFoundError):
            discount_service.lookup_code(session, 'DONE')


class TestDecrement:

    def test_coupon_use_consumed(self, session, make_coupon):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=2)
        assert discount_service.decrement(session, 'SAVE10', 455, source='coupon') == 1
        session.commit()
        session.expire_all()
        assert session.query(Coupon).filter_by(code='SAVE10').one().remaining_uses == 1

    def test_coupon_floor_at_zero(self, session, make_coupon):
        make_coupon(code='LAST', percent_off=10, remaining_uses=0)
        discount_service.decrement(session, 'LAST', 0, source='coupon')
        session.commit()
        session.expire_all()
        assert session.query(Coupon).filter_by(code='LAST').one().remaining_uses == 0

    def test_gift_code_balance_reduced(self, session, make_gift_code):
        gift = make_gift_code(value_cents=5500)
        discount_service.decrement(session, gift.code, 2000, source='gift_code')
        session.commit()
        session.expire_all()
        assert session.query(GiftCode).filter_by(code=gift.code).one().remaining_cents == 3500

    def test_gift_code_floor_at_zero(self, session, make_gift_code):
        gift = make_gift_code(value_cents=1000, remaining_cents=300)
        discount_service.decrement(session, gift.code, 1000, source='gift_code')
        session.commit()
        session.expire_all()
        assert session.query(GiftCode).filter_by(code=gift.code).one().remaining_cents == 0

    def test_unknown_source_tries_gift_then_coupon(self, session, make_coupon):
        make_coupon(code='LEGACY', amount_off=500, remaining_uses=3)
        assert discount_service.decrement(session, 'legacy', 500) == 1
        session.commit()
        session.expire_all()
        assert session.query(Coupon).filter_by(code='LEGACY').one().remaining_uses == 2

    def test_missing_code_updates_nothing(self, session):
        assert discount_service.decrement(session, 'GONE', 100, source='coupon') == 0
