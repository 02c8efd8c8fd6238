"""
Webhooks Blueprint for PayPal notifications.
Delivers the same finalization as the browser redirect; either may come first.
"""

import logging
import hmac
import hashlib
from flask import Blueprint, request, jsonify, current_app
from shop.database import get_session
from shop.exceptions import PersistenceError
from shop.services.finalization_service import handle_webhook_event
from shop.services.paypal_client import get_payment_gateway

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint('webhooks', __name__, url_prefix='/api/webhooks')


def verify_paypal_signature(request_data: bytes, signature: str) -> bool:
    """
    Verify the HMAC-SHA256 signature of a webhook body.
    """
    secret = current_app.config.get('PAYPAL_WEBHOOK_SECRET')

    # No secret configured (local development): accept
    if not secret:
        logger.info("Skipping PayPal webhook signature verification (no secret configured)")
        return True

    if not signature:
        logger.warning("Missing X-Signature header in PayPal webhook")
        return False

    expected_signature = hmac.new(
        secret.encode('utf-8'),
        request_data,
        hashlib.sha256
    ).hexdigest()

    is_valid = hmac.compare_digest(signature, expected_signature)
    if not is_valid:
        logger.warning("Invalid PayPal webhook signature")
    return is_valid


@webhooks_bp.route('/paypal', methods=['POST'])
def paypal_webhook():
    """
    Handle PayPal order notifications.

    Accepted bodies:
    - {"id": ..., "status": "COMPLETED", "purchase_units": [...]}
    - {"event_type": "CHECKOUT.ORDER.APPROVED", "resource": {"id": ..., "status": ...}}
    """
    signature = request.headers.get('X-Signature', '')
    if not verify_paypal_signature(request.get_data(), signature):
        return jsonify({'error': 'Invalid signature'}), 401

    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        logger.warning("Empty webhook payload")
        return jsonify({'error': 'Empty payload'}), 400

    for unit in data.get('purchase_units') or []:
        amount = (unit or {}).get('amount') or {}
        logger.info(f"Purchase unit amount: {amount.get('currency_code')} {amount.get('value')}")

    gateway = get_payment_gateway()
    if gateway is None:
        logger.error("PayPal webhook received but PayPal is not configured")
        return jsonify({'status': 'failed', 'reason': 'gateway not configured'}), 503

    try:
        result = handle_webhook_event(get_session(), gateway, data)
    except PersistenceError as e:
        # Non-2xx makes PayPal redeliver later
        logger.error(f"Error processing PayPal webhook: {e.message}")
        return jsonify({'status': 'failed'}), 500

    return jsonify(result), 200


@webhooks_bp.route('/test', methods=['GET'])
def test_webhook():
    """Test endpoint to verify webhook is accessible."""
    return jsonify({
        'status': 'ok',
        'message': 'Webhook endpoint is active'
    }), 200
