"""Send a sample order confirmation to check SMTP settings: python scripts/send_test_email.py you@example.com"""
import sys
import os

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shop import create_app
from shop.services.cart_snapshot import CartLine
from shop.services.email_service import send_order_confirmation


def send_test_email(to_email):
    app = create_app()
    with app.app_context():
        print("Testing email sending...")
        print(f"MAIL_SERVER: {app.config.get('MAIL_SERVER')}")
        print(f"MAIL_PORT: {app.config.get('MAIL_PORT')}")
        print(f"MAIL_USERNAME: {app.config.get('MAIL_USERNAME')}")
        print(f"MAIL_SUPPRESS_SEND: {app.config.get('MAIL_SUPPRESS_SEND')}")

        lines = [CartLine(product_id='demo', name='Margherita', unit_amount=1250, quantity=2)]
        result = send_order_confirmation(to_email, 'test-order', lines, 2500)
        print(f"Result: {result}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/send_test_email.py <recipient>")
        sys.exit(1)
    send_test_email(sys.argv[1])
