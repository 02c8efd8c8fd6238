"""Checkout blueprint: starts a PayPal checkout for the cart."""
import logging
from flask import Blueprint, request, jsonify, current_app
from shop.database import get_session
from shop.exceptions import ValidationError
from shop.services.checkout_service import start_checkout
from shop.services.identity_service import current_identity
from shop.services.paypal_client import get_payment_gateway

logger = logging.getLogger(__name__)

checkout_bp = Blueprint('checkout', __name__, url_prefix='/api')


@checkout_bp.route('/checkout', methods=['POST'])
def start():
    """
    Start checkout.

    Body: {"cart": [...], "coupon": "SAVE10", "email": "buyer@example.com"}
    Returns: {"url": <PayPal approval URL or fallback page>}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON body')

    result = start_checkout(
        get_session(),
        get_payment_gateway(),
        cart=data.get('cart'),
        coupon_code=data.get('coupon'),
        buyer_email=data.get('email'),
        identity=current_identity(),
        app_url=current_app.config['APP_URL'],
        currency=current_app.config.get('CURRENCY', 'EUR'),
    )
    return jsonify({'url': result.url}), 200
