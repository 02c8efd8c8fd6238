"""Coupon blueprint: code checks for the cart UI and for staff."""
from flask import Blueprint, request, jsonify
from shop.database import get_session
from shop.exceptions import ValidationError
from shop.services.cart_snapshot import CartLine, cart_subtotal
from shop.services.discount_service import describe_code, lookup_code

coupons_bp = Blueprint('coupons', __name__, url_prefix='/api/coupons')


@coupons_bp.route('/apply', methods=['POST'])
def apply():
    """Tell the cart whether a code is valid and what it takes off. Persists nothing."""
    data = request.get_json(silent=True) or {}
    code = data.get('code')
    if code is not None and not isinstance(code, str):
        raise ValidationError('code must be a string')

    cart = data.get('cart') or []
    if not isinstance(cart, list):
        raise ValidationError('cart must be a list')
    subtotal = cart_subtotal([CartLine.from_payload(item) for item in cart])

    return jsonify(describe_code(get_session(), code, subtotal)), 200


@coupons_bp.route('/validate', methods=['POST'])
def validate():
    """Look up a scanned gift coupon or coupon code. 404 when unusable."""
    data = request.get_json(silent=True) or {}
    return jsonify(lookup_code(get_session(), data.get('code'))), 200
