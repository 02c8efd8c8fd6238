"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Public URL of the storefront (redirect targets, email links)
    APP_URL = os.getenv('APP_URL', 'http://localhost:5173').rstrip('/')

    # Authentication: tokens are issued by the auth service, we only verify them
    JWT_SECRET = os.getenv('JWT_SECRET', 'dev_secret')
    JWT_ALGORITHM = 'HS256'
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL')

    # Error tracking (production only)
    SENTRY_DSN = os.getenv('SENTRY_DSN')

    # Database
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///app.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # PayPal (Orders v2)
    PAYPAL_CLIENT_ID = os.getenv('PAYPAL_CLIENT_ID')
    PAYPAL_SECRET = os.getenv('PAYPAL_SECRET')
    PAYPAL_API_BASE = os.getenv('PAYPAL_API_BASE', 'https://api-m.sandbox.paypal.com')
    PAYPAL_TIMEOUT = float(os.getenv('PAYPAL_TIMEOUT', '10'))
    PAYPAL_WEBHOOK_SECRET = os.getenv('PAYPAL_WEBHOOK_SECRET')

    # Checkout
    CURRENCY = os.getenv('CURRENCY', 'EUR')
    GIFT_BONUS_PERCENT = int(os.getenv('GIFT_BONUS_PERCENT', '10'))

    # Pending order retention and sweep
    PENDING_RETENTION_HOURS = int(os.getenv('PENDING_RETENTION_HOURS', '24'))
    PENDING_CLEANUP_INTERVAL = int(os.getenv('PENDING_CLEANUP_INTERVAL', '3600'))  # 1 hour
    PENDING_CLEANUP_ENABLED = os.getenv('PENDING_CLEANUP_ENABLED', 'true').lower() == 'true'

    # Email configuration
    MAIL_SERVER = os.getenv('SMTP_HOST', '')
    MAIL_PORT = int(os.getenv('SMTP_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USE_SSL = False
    MAIL_USERNAME = os.getenv('SMTP_USERNAME') or ''
    MAIL_PASSWORD = os.getenv('SMTP_PASSWORD') or ''
    MAIL_DEFAULT_SENDER = (
        os.getenv('SMTP_FROM')
        or MAIL_USERNAME
        or 'no-reply@localhost'
    )
    MAIL_SUPPRESS_SEND = os.getenv('MAIL_SUPPRESS_SEND', 'false').lower() == 'true'


class TestingConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    WTF_CSRF_ENABLED = False

    PAYPAL_CLIENT_ID = 'test-client'
    PAYPAL_SECRET = 'test-secret'
    PAYPAL_API_BASE = 'https://paypal.test'
    PAYPAL_WEBHOOK_SECRET = None

    APP_URL = 'http://shop.test'
    JWT_SECRET = 'test-jwt-secret'

    PENDING_CLEANUP_ENABLED = False

    MAIL_SERVER = 'smtp.test'
    MAIL_USERNAME = 'mailer'
    MAIL_DEFAULT_SENDER = 'orders@shop.test'
    MAIL_SUPPRESS_SEND = True
