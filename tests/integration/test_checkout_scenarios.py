"""
End-to-end checkout scenarios: start, PayPal return, resulting state.
"""

from shop.models import Coupon, GiftCode, Order
from shop.services.email_service import mail


class TestCheckoutScenarios:

    def test_percent_coupon_checkout(self, client, session, gateway, make_coupon):
        make_coupon(code='SAVE10', percent_off=10, remaining_uses=3)
        cart = [{'productId': 'menu', 'name': 'Menu', 'unitAmount': 4550, 'quantity': 1}]

        client.post('/api/checkout', json={'cart': cart, 'coupon': 'SAVE10', 'email': 'a@test.com'})
        provider_id = gateway.created[0]['id']
        assert gateway.created[0]['amount_cents'] == 4095

        with mail.record_messages() as outbox:
            client.get(f'/api/paypal/return?token={provider_id}')

        session.expire_all()
        order = session.query(Order).filter_by(provider_order_id=provider_id).one()
        assert order.total_cents == 4095
        assert order.coupon_code == 'SAVE10'
        assert session.query(Coupon).filter_by(code='SAVE10').one().remaining_uses == 2
        assert 'Total paid: €40.95' in outbox[0].body

    def test_gift_code_covers_whole_cart(self, client, session, gateway, make_gift_code):
        gift = make_gift_code(value_cents=2000)
        cart = [{'productId': 'pasta', 'name': 'Pasta', 'unitAmount': 1500, 'quantity': 1}]

        client.post('/api/checkout', json={'cart': cart, 'coupon': gift.code, 'email': 'b@test.com'})
        provider_id = gateway.created[0]['id']
        assert gateway.created[0]['amount_cents'] == 0

        client.get(f'/api/paypal/return?token={provider_id}')

        session.expire_all()
        assert session.query(Order).filter_by(provider_order_id=provider_id).one().total_cents == 0
        assert session.query(GiftCode).filter_by(code=gift.code).one().remaining_cents == 500

    def test_bought_gift_code_spent_on_next_order(self, client, session, gateway):
        client.post('/api/gift-coupons/buy', json={'amount_eur': 50, 'email': 'giver@test.com'})
        location = client.get(f"/api/paypal/gift/return?token={gateway.created[0]['id']}").headers['Location']
        code = location.split('code=', 1)[1]

        cart = [{'productId': 'feast', 'name': 'Feast', 'unitAmount': 6000, 'quantity': 1}]
        client.post('/api/checkout', json={'cart': cart, 'coupon': code, 'email': 'friend@test.com'})
        assert gateway.created[1]['amount_cents'] == 500

        client.get(f"/api/paypal/return?token={gateway.created[1]['id']}")

        session.expire_all()
        gift = session.query(GiftCode).filter_by(code=code).one()
        assert gift.value_cents == 5500
        assert gift.remaining_cents == 0
        assert client.post('/api/coupons/validate', json={'code': code}).status_code == 404
