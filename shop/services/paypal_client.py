"""PayPal Orders v2 client used for checkout and gift coupon purchases."""
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

import requests

from shop.exceptions import GatewayError
from shop.utils.money import cents_to_decimal_string

logger = logging.getLogger(__name__)

# Settlement success sentinel
STATUS_COMPLETED = 'COMPLETED'


@dataclass(frozen=True)
class ProviderOrder:
    """Order created at the provider, waiting for buyer approval."""
    id: str
    approval_url: Optional[str]


@dataclass(frozen=True)
class CaptureResult:
    """Result of capturing a provider order."""
    id: str
    status: str

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED


def find_approval_url(order: Dict[str, Any]) -> Optional[str]:
    """Pick the buyer approval link out of a PayPal order response."""
    for link in order.get('links') or []:
        if link.get('rel') in ('approve', 'payer-action'):
            return link.get('href')
    return None


class PayPalClient:
    """Client for the PayPal REST API (client-credentials auth)."""

    def __init__(
        self,
        client_id: str,
        secret: str,
        api_base: str,
        app_url: str,
        timeout: float = 10
    ):
        """
        Initialize PayPal client.

        Args:
            client_id: REST app client id
            secret: REST app secret
            api_base: https://api-m.sandbox.paypal.com or https://api-m.paypal.com
            app_url: public storefront URL; return/cancel paths are appended to it
            timeout: seconds per HTTP round-trip
        """
        if not client_id or not secret:
            raise ValueError("PAYPAL_CLIENT_ID and PAYPAL_SECRET are required")

        self.client_id = client_id
        self.secret = secret
        self.api_base = api_base.rstrip('/')
        self.app_url = app_url.rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> Optional['PayPalClient']:
        """Build a client from Flask config, or None when PayPal is not configured."""
        if not config.get('PAYPAL_CLIENT_ID') or not config.get('PAYPAL_SECRET'):
            logger.warning("[PAYPAL] Credentials not configured; checkout will fall back")
            return None
        return cls(
            client_id=config['PAYPAL_CLIENT_ID'],
            secret=config['PAYPAL_SECRET'],
            api_base=config.get('PAYPAL_API_BASE', 'https://api-m.sandbox.paypal.com'),
            app_url=config.get('APP_URL', ''),
            timeout=config.get('PAYPAL_TIMEOUT', 10),
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request, mapping transport failures to GatewayError."""
        url = f"{self.api_base}{path}"
        try:
            return requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"[PAYPAL] {method} {path} failed: {e}")
            raise GatewayError(f"PayPal unreachable: {e}")

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            raise GatewayError(f"PayPal returned a non-JSON response ({response.status_code})")
        if not isinstance(data, dict):
            raise GatewayError("PayPal returned an unexpected response body")
        return data

    def get_access_token(self) -> str:
        """
        Obtain an OAuth2 access token.

        Raises:
            GatewayError: on transport errors or a rejected credential exchange
        """
        response = self._request(
            'POST',
            '/v1/oauth2/token',
            auth=(self.client_id, self.secret),
            data={'grant_type': 'client_credentials'},
            headers={'Accept': 'application/json'},
        )
        if response.status_code != 200:
            logger.error(f"[PAYPAL] Token request rejected: {response.status_code} {response.text}")
            raise GatewayError("PayPal authentication failed")

        token = self._json(response).get('access_token')
        if not token:
            raise GatewayError("PayPal token response without access_token")
        return token

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.get_access_token()}',
            'Content-Type': 'application/json',
        }

    def create_order(
        self,
        amount_cents: int,
        currency: str,
        return_path: str,
        cancel_path: str,
        description: Optional[str] = None
    ) -> ProviderOrder:
        """
        Create a CAPTURE-intent order.

        Args:
            amount_cents: total to charge, in cents
            currency: ISO currency code (EUR)
            return_path: path on APP_URL PayPal redirects to after approval
            cancel_path: path on APP_URL PayPal redirects to on cancel
            description: purchase unit description

        Returns:
            ProviderOrder with the provider id and the buyer approval URL

        Raises:
            GatewayError: transport failure or non-2xx response
        """
        purchase_unit = {
            'amount': {
                'currency_code': currency,
                'value': cents_to_decimal_string(amount_cents),
            }
        }
        if description:
            purchase_unit['description'] = description

        payload = {
            'intent': 'CAPTURE',
            'purchase_units': [purchase_unit],
            'application_context': {
                'return_url': f"{self.app_url}{return_path}",
                'cancel_url': f"{self.app_url}{cancel_path}",
            },
        }

        logger.info(f"[PAYPAL] Creating order for {amount_cents} cents {currency}")
        response = self._request('POST', '/v2/checkout/orders', json=payload, headers=self._headers())
        if response.status_code not in (200, 201):
            logger.error(f"[PAYPAL] Error creating order: {response.status_code} {response.text}")
            raise GatewayError("PayPal rejected the order")

        data = self._json(response)
        order_id = data.get('id')
        if not order_id:
            raise GatewayError("PayPal order response without id")

        approval_url = find_approval_url(data)
        logger.info(f"[PAYPAL] Order created: {order_id} - approval: {approval_url}")
        return ProviderOrder(id=order_id, approval_url=approval_url)

    def get_order(self, provider_order_id: str) -> CaptureResult:
        """Read an order's current status."""
        response = self._request(
            'GET', f'/v2/checkout/orders/{provider_order_id}', headers=self._headers()
        )
        if response.status_code != 200:
            logger.error(f"[PAYPAL] Error reading order {provider_order_id}: {response.status_code}")
            raise GatewayError("PayPal order lookup failed")
        data = self._json(response)
        return CaptureResult(id=data.get('id', provider_order_id), status=data.get('status', ''))

    def capture_order(self, provider_order_id: str) -> CaptureResult:
        """
        Capture an approved order.

        A capture of an already captured order (redirect and webhook both
        firing) is answered by PayPal with 422 ORDER_ALREADY_CAPTURED; the
        order is then read back so the caller still sees COMPLETED.

        Raises:
            GatewayError: transport failure or unexpected response
        """
        logger.info(f"[PAYPAL] Capturing order: {provider_order_id}")
        response = self._request(
            'POST', f'/v2/checkout/orders/{provider_order_id}/capture', headers=self._headers()
        )

        if response.status_code == 422 and 'ORDER_ALREADY_CAPTURED' in response.text:
            logger.info(f"[PAYPAL] Order {provider_order_id} already captured, reading status")
            return self.get_order(provider_order_id)

        if response.status_code not in (200, 201):
            # Not settled (e.g. ORDER_NOT_APPROVED) is a status, not a transport failure
            if 400 <= response.status_code < 500:
                logger.warning(
                    f"[PAYPAL] Capture refused for {provider_order_id}: "
                    f"{response.status_code} {response.text}"
                )
                return CaptureResult(id=provider_order_id, status=f'HTTP_{response.status_code}')
            logger.error(f"[PAYPAL] Capture error for {provider_order_id}: {response.status_code}")
            raise GatewayError("PayPal capture failed")

        data = self._json(response)
        result = CaptureResult(id=data.get('id', provider_order_id), status=data.get('status', ''))
        logger.info(f"[PAYPAL] Capture status: {result.status} - {provider_order_id}")
        return result


def get_payment_gateway():
    """Gateway registered by the app factory (None when PayPal is not configured)."""
    from flask import current_app
    return current_app.extensions.get('payment_gateway')
