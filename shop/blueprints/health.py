"""Health check endpoint."""
import logging
from flask import Blueprint, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from shop.database import ping
from shop.services.paypal_client import get_payment_gateway

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/api')


@health_bp.route('/health', methods=['GET'])
def health():
    cfg = current_app.config
    try:
        database_ok = ping()
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database_ok = False

    body = {
        'status': 'ok' if database_ok else 'degraded',
        'database': database_ok,
        'paypal_configured': get_payment_gateway() is not None,
        'smtp_configured': bool(cfg.get('MAIL_SERVER') and cfg.get('MAIL_USERNAME')),
    }
    return jsonify(body), 200 if database_ok else 503
