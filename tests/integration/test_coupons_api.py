"""
Integration tests for coupon endpoints.
"""

from shop.models import Coupon


class TestApplyCoupon:

    def test_valid_coupon(self, client, make_coupon):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=1)
        response = client.post('/api/coupons/apply', json={'code': 'save10', 'cart': []})
        assert response.status_code == 200
        assert response.get_json() == {'valid': True, 'amount_off': None, 'percent_off': 10}

    def test_invalid_coupon(self, client):
        response = client.post('/api/coupons/apply', json={'code': 'NOPE'})
        assert response.get_json() == {'valid': False, 'amount_off': None, 'percent_off': None}

    def test_gift_code_against_cart(self, client, make_gift_code):
        gift = make_gift_code(value_cents=5500)
        cart = [{'productId': 'a', 'unitAmount': 2000, 'quantity': 1}]
        body = client.post('/api/coupons/apply', json={'code': gift.code, 'cart': cart}).get_json()
        assert body == {'valid': True, 'amount_off': 2000, 'percent_off': None}

    def test_apply_persists_nothing(self, client, session, make_coupon):
        coupon = make_coupon(code='ONE', amount_off=100, remaining_uses=1)
        client.post('/api/coupons/apply', json={'code': 'ONE'})
        session.expire_all()
        assert session.query(Coupon).filter_by(code='ONE').one().remaining_uses == 1


class TestValidateCoupon:

    def test_gift_code_lookup(self, client, make_gift_code):
        gift = make_gift_code(value_cents=5500, remaining_cents=4000, email='owner@test.com')
        body = client.post('/api/coupons/validate', json={'code': gift.code}).get_json()
        assert body['code'] == gift.code
        assert body['balance'] == 4000
        assert body['customer_email'] == 'owner@test.com'

    def test_unknown_code_404(self, client):
        response = client.post('/api/coupons/validate', json={'code': 'NOPE'})
        assert response.status_code == 404
        assert response.get_json()['message'] == 'Invalid code'
