"""Orders blueprint: order details for the thank-you page."""
import logging
from flask import Blueprint, jsonify
from shop.database import get_session
from shop.services.order_service import get_order_details

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('/<order_id>', methods=['GET'])
def get_order(order_id):
    logger.info(f"Fetching order: {order_id}")
    return jsonify(get_order_details(get_session(), order_id)), 200
