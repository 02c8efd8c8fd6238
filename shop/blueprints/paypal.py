"""
PayPal browser redirects.

PayPal sends the buyer back here after approval with ?token=<order id>.
Finalization problems never reach the buyer as errors: they land on the
generic thank-you page and the webhook (or support) finishes the job.
"""
import logging
from urllib.parse import quote
from flask import Blueprint, request, redirect, current_app
from shop.database import get_session
from shop.exceptions import PersistenceError
from shop.services.finalization_service import finalize_order
from shop.services.gift_code_service import issue_gift_code
from shop.services.paypal_client import get_payment_gateway

logger = logging.getLogger(__name__)

paypal_bp = Blueprint('paypal', __name__, url_prefix='/api/paypal')


def _thank_you(suffix: str = ''):
    return redirect(f"{current_app.config['APP_URL']}/thank-you{suffix}")


@paypal_bp.route('/return', methods=['GET'])
def paypal_return():
    """Finalize the order and send the buyer to its confirmation page."""
    order_id = request.args.get('token')
    gateway = get_payment_gateway()
    if not order_id or gateway is None:
        return _thank_you()

    try:
        outcome = finalize_order(get_session(), gateway, order_id)
    except PersistenceError:
        logger.error(f"[PAYPAL] Finalization of {order_id} failed on storage, showing generic page")
        return _thank_you()

    if outcome.succeeded and outcome.order_id:
        return _thank_you(f"/{quote(outcome.order_id)}")
    return _thank_you()


@paypal_bp.route('/cancel', methods=['GET'])
def paypal_cancel():
    return 'CANCEL', 200


@paypal_bp.route('/gift/return', methods=['GET'])
def paypal_gift_return():
    """Issue the gift code and show it on the thank-you page."""
    order_id = request.args.get('token')
    gateway = get_payment_gateway()
    if not order_id or gateway is None:
        return _thank_you()

    try:
        bonus = current_app.config.get('GIFT_BONUS_PERCENT', 10)
        outcome = issue_gift_code(get_session(), gateway, order_id, bonus_percent=bonus)
    except PersistenceError:
        logger.error(f"[PAYPAL] Gift issuance for {order_id} failed on storage, showing generic page")
        return _thank_you()

    if outcome.succeeded and outcome.code:
        return _thank_you(f"?code={quote(outcome.code)}")
    return _thank_you()


@paypal_bp.route('/gift/cancel', methods=['GET'])
def paypal_gift_cancel():
    return 'CANCEL', 200
