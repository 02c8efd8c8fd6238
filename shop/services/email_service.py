"""
Email service for order confirmations and gift coupon delivery.
Uses Flask-Mail for SMTP integration. Failures are logged, never raised.
"""
import logging
from typing import List, Optional

from flask import current_app
from flask_mail import Mail, Message

from shop.exceptions import EmailError
from shop.utils.money import format_cents

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is configured.
    Flask-Mail's own MAIL_SUPPRESS_SEND still applies on top of this.
    """
    cfg = current_app.config
    return bool(cfg.get("MAIL_SERVER") and cfg.get("MAIL_USERNAME"))


def _deliver(msg: Message) -> None:
    """Hand a message to SMTP, wrapping any transport failure in EmailError."""
    try:
        mail.send(msg)
    except Exception as e:
        raise EmailError(f"SMTP delivery failed: {e}")


def send_email(to: str, subject: str, body: str, content_type: str = 'text') -> bool:
    """
    Send a single email.

    Args:
        to: Recipient email
        subject: Subject line
        body: Message body
        content_type: 'text' or 'html'

    Returns:
        True if sent (or mail is disabled), False if delivery failed
    """
    if not to:
        logger.warning(f"[EMAIL] No recipient for '{subject}', skipped")
        return False

    if not _mail_enabled():
        logger.warning(f"[MAIL DISABLED] Email skipped for {to}")
        return True

    if content_type == 'html':
        msg = Message(subject=subject, recipients=[to], html=body)
    else:
        msg = Message(subject=subject, recipients=[to], body=body)

    try:
        _deliver(msg)
        logger.info(f"[EMAIL] ✓ '{subject}' sent to {to}")
        return True
    except EmailError as e:
        logger.exception(f"[EMAIL] ✗ Failed to send '{subject}' to {to}: {e.message}")
        return False


def _order_lines(lines: List) -> str:
    return "".join(
        f"- {line.name or line.product_id} x{line.quantity} @ {format_cents(line.unit_amount)}\n"
        for line in lines
    )


def send_order_confirmation(
    to_email: str,
    order_id: str,
    lines: List,
    total_cents: int,
    discount_cents: int = 0,
    coupon_code: Optional[str] = None
) -> bool:
    """Plain-text order confirmation with a link to the invoice page."""
    app_url = current_app.config.get('APP_URL', '')

    discount_line = ""
    if discount_cents and coupon_code:
        discount_line = f"Discount ({coupon_code}): -{format_cents(discount_cents)}\n"

    body = (
        "Thank you for your order!\n\n"
        f"Items:\n{_order_lines(lines)}\n"
        f"{discount_line}"
        f"Total paid: {format_cents(total_cents)}\n\n"
        f"Order ID: {order_id}\n\n"
        f"You can view your invoice at: {app_url}/thank-you/{order_id}"
    )
    return send_email(to_email, "Your Order Confirmation", body)


def send_gift_code_email(to_email: str, code: str, value_cents: int, paid_cents: int) -> bool:
    """HTML email carrying a freshly issued gift code."""
    app_url = current_app.config.get('APP_URL', '')
    bonus_cents = value_cents - paid_cents

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <style>
            body {{ font-family: Arial, sans-serif; color: #333; }}
            .container {{ max-width: 600px; margin: auto; padding: 20px; }}
            .header {{ border-bottom: 2px solid #e67e22; padding-bottom: 10px; }}
            .code {{
                font-family: monospace;
                font-size: 22px;
                background: #f5f5f5;
                padding: 12px;
                text-align: center;
                letter-spacing: 1px;
            }}
            .amount {{ font-size: 24px; font-weight: bold; color: #e67e22; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h2>Your Gift Coupon</h2>
            </div>
            <p>Thank you for your purchase!</p>
            <p class="amount">{format_cents(value_cents)}</p>
            <p>You paid {format_cents(paid_cents)} and received a bonus of {format_cents(bonus_cents)}.</p>
            <p>Your code:</p>
            <div class="code">{code}</div>
            <p>Enter it at checkout on <a href="{app_url}">{app_url}</a> or show it at the restaurant.
            Any unused balance stays on the code for next time.</p>
        </div>
    </body>
    </html>
    """
    return send_email(to_email, "Your Gift Coupon", html_body, content_type='html')
