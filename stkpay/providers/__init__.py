from flask import current_app

from stkpay.providers.mpesa_provider import MPesaProvider
from stkpay.providers.stk_request_builder import PaymentRequestBuilder
from stkpay.providers.token_cache import AccessTokenCache

_EXTENSION_KEY = 'stkpay.mpesa'


def get_provider() -> MPesaProvider:
    """
    Get the application's M-Pesa gateway client.

    One client (and therefore one token cache) is kept per Flask app, so the
    access token is shared by every request the app serves.
    """
    provider = current_app.extensions.get(_EXTENSION_KEY)
    if provider is None:
        provider = current_app.extensions.setdefault(
            _EXTENSION_KEY, MPesaProvider(_get_provider_config())
        )
    return provider


def get_request_builder() -> PaymentRequestBuilder:
    """Build a PaymentRequestBuilder from Flask app config."""
    cfg = current_app.config
    return PaymentRequestBuilder(
        shortcode=cfg.get('MPESA_SHORTCODE'),
        passkey=cfg.get('MPESA_PASSKEY'),
        callback_url=cfg.get('MPESA_CALLBACK_URL'),
        transaction_type=cfg.get('MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline'),
        account_reference=cfg.get('MPESA_ACCOUNT_REFERENCE'),
    )


def _get_provider_config() -> dict:
    """Get provider configuration from Flask app config."""
    cfg = current_app.config
    return {
        # Required
        'consumer_key':    cfg.get('MPESA_CONSUMER_KEY'),
        'consumer_secret': cfg.get('MPESA_CONSUMER_SECRET'),
        # Environment
        'environment':     cfg.get('MPESA_ENV', 'sandbox'),
        # Timeouts and token cache
        'timeout':             cfg.get('MPESA_TIMEOUT', 15),
        'token_safety_margin': cfg.get('MPESA_TOKEN_SAFETY_MARGIN', AccessTokenCache.DEFAULT_SAFETY_MARGIN),
        'token_default_ttl':   cfg.get('MPESA_TOKEN_DEFAULT_TTL', AccessTokenCache.DEFAULT_LIFETIME),
    }


__all__ = ['get_provider', 'get_request_builder', 'MPesaProvider', 'PaymentRequestBuilder', 'AccessTokenCache']
