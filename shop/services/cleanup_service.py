"""
Hourly sweep of stale pending orders and pending gifts.

Runs in a daemon thread inside the web process. Deployments with several
workers can turn it off (PENDING_CLEANUP_ENABLED=false) and schedule
`flask cleanup-pending` instead.
"""
import logging
import threading
from datetime import timedelta

from shop.database import get_session
from shop.services.pending_order_service import sweep_stale_pending

logger = logging.getLogger(__name__)

_stop_event = threading.Event()
_thread = None


def run_cleanup(app):
    """Run one sweep inside an application context."""
    with app.app_context():
        session = get_session()
        try:
            max_age = timedelta(hours=app.config.get('PENDING_RETENTION_HOURS', 24))
            return sweep_stale_pending(session, max_age=max_age)
        finally:
            session.remove()


def _loop(app, interval: int):
    while not _stop_event.wait(interval):
        try:
            run_cleanup(app)
        except Exception as e:
            # Keep the thread alive; next tick retries
            logger.error(f"[CLEANUP] Cleanup task failed: {e}")


def start_cleanup_scheduler(app):
    """Start the sweep thread once per process."""
    global _thread
    if _thread is not None and _thread.is_alive():
        return _thread

    interval = app.config.get('PENDING_CLEANUP_INTERVAL', 3600)
    _stop_event.clear()
    _thread = threading.Thread(
        target=_loop, args=(app, interval), name='pending-cleanup', daemon=True
    )
    _thread.start()
    logger.info(f"[CLEANUP] Pending order sweep scheduled every {interval}s")
    return _thread


def stop_cleanup_scheduler():
    _stop_event.set()
