"""
M-Pesa Gateway Client
Based on the Safaricom Daraja API.

Supported flows
---------------
STK Push (Lipa na M-Pesa Online)
    POST /mpesa/stkpush/v1/processrequest

Authentication
    GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
    Tokens are cached by an AccessTokenCache and refreshed on expiry.

The STK Push outcome is delivered later to CallBackURL and handled by
stkpay.services.callback_service.

Required config keys
--------------------
    consumer_key        – From Safaricom Developer Portal app
    consumer_secret     – From Safaricom Developer Portal app
    environment         – "sandbox" (default) | "production" ("live" is accepted)

Optional config keys
--------------------
    timeout             – Seconds for every outbound call (default 15)
    token_safety_margin – Seconds before expiry at which a token is refreshed (default 5)
    token_default_ttl   – Token lifetime used when the gateway omits expires_in (default 3600)
"""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from stkpay.errors import UpstreamAuthError, UpstreamGatewayError
from stkpay.providers.token_cache import AccessTokenCache

logger = logging.getLogger(__name__)

# Daraja base URLs
_BASE_URLS = {
    "sandbox":    "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

_ENV_ALIASES = {"live": "production"}


def _response_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text[:300]}


class MPesaProvider:
    """M-Pesa (Daraja API) gateway client."""

    # Daraja endpoint paths
    _EP_AUTH     = "/oauth/v1/generate"
    _EP_STK_PUSH = "/mpesa/stkpush/v1/processrequest"

    def __init__(self, config: Dict[str, Any], token_cache: Optional[AccessTokenCache] = None):
        self.consumer_key    = config.get("consumer_key") or ""
        self.consumer_secret = config.get("consumer_secret") or ""
        environment          = (config.get("environment") or "sandbox").lower()
        self.environment     = _ENV_ALIASES.get(environment, environment)
        self.timeout         = float(config.get("timeout") or 15)

        if not self.consumer_key or not self.consumer_secret:
            raise ValueError("MPesaProvider: 'consumer_key' and 'consumer_secret' are required")
        if self.environment not in _BASE_URLS:
            raise ValueError(f"MPesaProvider: environment must be 'sandbox' or 'production', got '{environment}'")

        self.base_url = _BASE_URLS[self.environment]

        self.token_cache = token_cache or AccessTokenCache(
            self.request_access_token,
            safety_margin=float(config.get("token_safety_margin", AccessTokenCache.DEFAULT_SAFETY_MARGIN)),
            default_lifetime=int(config.get("token_default_ttl", AccessTokenCache.DEFAULT_LIFETIME)),
        )

        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    # Public

    def get_access_token(self) -> str:
        """Return a valid OAuth access token, refreshing if expired."""
        return self.token_cache.get_token()

    def request_access_token(self) -> Tuple[str, Optional[int]]:
        """Perform the client-credentials exchange. Returns (token, expires_in)."""
        url = f"{self.base_url}{self._EP_AUTH}?grant_type=client_credentials"
        try:
            resp = requests.get(
                url,
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamAuthError(
                f"MPesaProvider: failed to obtain access token – {exc}"
            ) from exc

        data = _response_body(resp)
        if not resp.ok:
            raise UpstreamAuthError(
                f"MPesaProvider: token request rejected with HTTP {resp.status_code}",
                details=data,
            )

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise UpstreamAuthError(
                "MPesaProvider: token response did not include access_token",
                details=data,
            )

        return token, data.get("expires_in")

    def stk_push(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send an STK Push request built by PaymentRequestBuilder.

        Returns the gateway acknowledgment, which carries MerchantRequestID and
        CheckoutRequestID. The payment outcome arrives later on CallBackURL.
        """
        resp = self._post(self._EP_STK_PUSH, payload, context="stk_push")

        if not resp.get("CheckoutRequestID"):
            raise UpstreamGatewayError(
                "MPesaProvider [stk_push]: response did not include CheckoutRequestID",
                details=resp,
            )
        if str(resp.get("ResponseCode", "0")) != "0":
            raise UpstreamGatewayError(
                f"MPesaProvider [stk_push]: request not accepted – {resp.get('ResponseDescription')}",
                details=resp,
            )

        logger.info(
            "STK Push accepted: CheckoutRequestID=%s MerchantRequestID=%s",
            resp.get("CheckoutRequestID"), resp.get("MerchantRequestID"),
        )
        return resp

    # Private – HTTP helpers

    def _post(
        self, endpoint: str, payload: Dict[str, Any], context: str = ""
    ) -> Dict[str, Any]:
        """Execute an authenticated POST to a Daraja endpoint."""
        token = self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }

        url = f"{self.base_url}{endpoint}"
        try:
            resp = self._session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamGatewayError(
                f"MPesaProvider [{context}]: network error – {exc}"
            ) from exc

        return self._handle_response(resp, context)

    def _handle_response(
        self, resp: requests.Response, context: str
    ) -> Dict[str, Any]:
        """Parse Daraja response, raising on error codes."""
        data = _response_body(resp)
        if not isinstance(data, dict):
            data = {"raw": data}

        logger.debug("MPesa [%s] HTTP %s: %s", context, resp.status_code, data)

        # Daraja sometimes returns 200 with an error in the body
        error_code = data.get("errorCode")
        error_msg  = (
            data.get("errorMessage")
            or data.get("ResponseDescription")
            or resp.text[:300]
        )

        if resp.status_code == 401:
            # Token revoked early; drop it so the next request fetches a new one
            self.token_cache.invalidate()

        if not resp.ok:
            raise UpstreamGatewayError(
                f"MPesaProvider [{context}] HTTP {resp.status_code}: {error_msg}",
                details=data,
            )

        # Daraja error codes in 200 responses (e.g. "500.001.1001")
        if error_code and str(error_code).startswith(("500", "400", "401", "404")):
            raise UpstreamGatewayError(
                f"MPesaProvider [{context}] Daraja error {error_code}: {error_msg}",
                details=data,
            )

        return data
