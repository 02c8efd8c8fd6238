"""
Flask CLI commands for shop administration.

Commands:
- flask init-db: Create the database tables
- flask create-coupon: Create a discount coupon
- flask cleanup-pending: Remove abandoned checkouts now
"""

import click
from datetime import timedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from shop.database import create_all, get_session
from shop.models import Coupon
from shop.services.pending_order_service import sweep_stale_pending


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_all()
        click.echo(click.style('✅ Database tables created', fg='green'))

    @app.cli.command('create-coupon')
    @click.option('--code', required=True, help='Coupon code (stored uppercase)')
    @click.option('--percent-off', type=int, default=None, help='Percentage discount 1-100')
    @click.option('--amount-off', type=int, default=None, help='Fixed discount in cents')
    @click.option('--uses', type=int, default=1, show_default=True, help='Number of redemptions')
    def create_coupon(code, percent_off, amount_off, uses):
        """Create a discount coupon."""
        if not percent_off and not amount_off:
            click.echo(click.style('❌ Give --percent-off or --amount-off', fg='red'))
            return
        if percent_off is not None and not 0 < percent_off <= 100:
            click.echo(click.style('❌ --percent-off must be between 1 and 100', fg='red'))
            return
        if (amount_off is not None and amount_off < 0) or uses < 0:
            click.echo(click.style('❌ Amounts and uses cannot be negative', fg='red'))
            return

        code = code.strip().upper()
        db_session = get_session()
        if db_session.query(Coupon).filter_by(code=code).first():
            click.echo(click.style(f'❌ Coupon already exists: {code}', fg='red'))
            return

        try:
            coupon = Coupon(code=code, percent_off=percent_off, amount_off=amount_off, remaining_uses=uses)
            db_session.add(coupon)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Error creating coupon: {e}', fg='red'))
            return

        click.echo(click.style('\n✅ Coupon created!', fg='green', bold=True))
        click.echo(f'   Code: {coupon.code}')
        click.echo(f'   ID: {coupon.id}')
        click.echo(f'   Uses: {coupon.remaining_uses}')

    @app.cli.command('cleanup-pending')
    @click.option('--hours', type=int, default=None, help='Override retention in hours')
    def cleanup_pending(hours):
        """Delete pending orders and gifts older than the retention window."""
        hours = hours if hours is not None else current_app.config.get('PENDING_RETENTION_HOURS', 24)
        orders, gifts = sweep_stale_pending(get_session(), max_age=timedelta(hours=hours))
        click.echo(f'Removed {orders} pending orders and {gifts} pending gifts older than {hours}h')
