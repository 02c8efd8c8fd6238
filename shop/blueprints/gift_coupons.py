"""Gift coupon blueprint: buy a stored-value gift code."""
from flask import Blueprint, request, jsonify, current_app
from shop.database import get_session
from shop.exceptions import ValidationError
from shop.services.gift_code_service import start_gift_purchase
from shop.services.identity_service import current_identity
from shop.services.paypal_client import get_payment_gateway

gift_coupons_bp = Blueprint('gift_coupons', __name__, url_prefix='/api/gift-coupons')


@gift_coupons_bp.route('/buy', methods=['POST'])
def buy():
    """
    Body: {"amount_eur": 50, "email": "buyer@example.com"}
    Returns: {"url": <PayPal approval URL or fallback page>}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON body')

    result = start_gift_purchase(
        get_session(),
        get_payment_gateway(),
        amount_eur=data.get('amount_eur'),
        buyer_email=data.get('email'),
        identity=current_identity(),
        app_url=current_app.config['APP_URL'],
        currency=current_app.config.get('CURRENCY', 'EUR'),
        bonus_percent=current_app.config.get('GIFT_BONUS_PERCENT', 10),
    )
    return jsonify({'url': result.url}), 200
