"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException
from shop.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection
    csrf = CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'Session expired. Reload the page.'}), 400

    # Sentry error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for order confirmations and gift codes
    from shop.services.email_service import init_mail
    init_mail(app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,
            x_proto=1,
            x_host=1,
            x_port=1,
            x_prefix=0
        )

    # Initialize database
    init_db(app)

    # Payment gateway (None when PayPal credentials are missing)
    from shop.services.paypal_client import PayPalClient
    app.extensions['payment_gateway'] = PayPalClient.from_config(app.config)

    # Error Handlers
    from shop.exceptions import ShopError

    @app.errorhandler(ShopError)
    def handle_shop_error(error):
        """Handle custom application exceptions."""
        app.logger.error(f"ShopError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException) and error.code != 500:
            return jsonify({'status': 'error', 'message': error.name}), error.code
        app.logger.exception(f"Unhandled Exception on {request.path}: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from shop.blueprints.checkout import checkout_bp
    from shop.blueprints.coupons import coupons_bp
    from shop.blueprints.gift_coupons import gift_coupons_bp
    from shop.blueprints.paypal import paypal_bp
    from shop.blueprints.orders import orders_bp
    from shop.blueprints.health import health_bp
    from shop.blueprints.webhooks import webhooks_bp

    # JSON API and provider callbacks carry no CSRF token
    for bp in (checkout_bp, coupons_bp, gift_coupons_bp, paypal_bp, orders_bp, health_bp, webhooks_bp):
        csrf.exempt(bp)
        app.register_blueprint(bp)

    # Register CLI commands
    from shop.cli_commands import init_cli_commands
    init_cli_commands(app)

    # Hourly sweep of abandoned checkouts
    if app.config.get('PENDING_CLEANUP_ENABLED') and not app.config.get('TESTING'):
        from shop.services.cleanup_service import start_cleanup_scheduler
        start_cleanup_scheduler(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    app.logger.info(f"PAYPAL_API_BASE={app.config.get('PAYPAL_API_BASE')}")

    return app
