"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (the default)
- StripeGateway when ``TICKETING_GATEWAY=stripe``
"""

from ticketing.config import get_settings
from ticketing.gateway.fake_adapter import FakeGateway
from ticketing.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.gateway == "stripe":
        from ticketing.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=settings.stripe_api_key,
            webhook_secret=settings.stripe_webhook_secret,
            timeout=settings.gateway_timeout_seconds,
            max_network_retries=settings.gateway_max_network_retries,
        )
    return FakeGateway(webhook_secret=settings.webhook_secret)


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
